# tests/test_project_query.py
import uuid

from conftest import make_project, make_user
from utils.project_query import find_project, is_uuid


def test_is_uuid():
    assert is_uuid(str(uuid.uuid4()))
    assert is_uuid(str(uuid.uuid4()).upper())
    assert not is_uuid("my-thesis")
    assert not is_uuid("")


def test_find_by_id_and_slug(db_session):
    user = make_user(db_session)
    project = make_project(db_session, user, slug="lit-review")

    assert find_project(db_session, project.id, user.id).id == project.id
    assert find_project(db_session, "lit-review", user.id).id == project.id


def test_uuid_shaped_slug_matches(db_session):
    user = make_user(db_session)
    slug = str(uuid.uuid4())
    project = make_project(db_session, user, slug=slug)

    assert find_project(db_session, slug, user.id).id == project.id


def test_other_users_project_is_invisible(db_session):
    owner = make_user(db_session)
    other = make_user(db_session)
    project = make_project(db_session, owner, slug="shared-name")

    assert find_project(db_session, project.id, other.id) is None
    assert find_project(db_session, "shared-name", other.id) is None
