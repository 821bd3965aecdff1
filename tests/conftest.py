# tests/conftest.py
import os
import sys
import uuid
from datetime import datetime, timedelta

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import Base
from database.models.auth_models import User
from database.models.library_models import (
    Annotation,
    Entry,
    EntryProject,
    EntrySimilarity,
    EntryTag,
    Project,
    Tag,
)
from api.dependencies.auth import get_db
from api.main import app

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ----------------------------------------------------------------------
# Data helpers. Each one commits so request sessions can see the rows.
# ----------------------------------------------------------------------

def make_user(db, tier="pro", email=None):
    user = User(
        id=str(uuid.uuid4()),
        email=email or f"{uuid.uuid4().hex[:8]}@example.com",
        subscription_tier=tier,
    )
    db.add(user)
    db.commit()
    return user


def make_entry(db, user, title, authors=None, age_minutes=0, year=None, entry_type="journal_article"):
    """age_minutes orders entries: smaller is more recent."""
    entry = Entry(
        user_id=user.id,
        title=title,
        authors=authors or [],
        year=year,
        entry_type=entry_type,
        created_at=BASE_TIME - timedelta(minutes=age_minutes),
        updated_at=BASE_TIME - timedelta(minutes=age_minutes),
    )
    db.add(entry)
    db.commit()
    return entry


def make_tag(db, user, name, color="#6B7280"):
    tag = Tag(user_id=user.id, name=name, color=color)
    db.add(tag)
    db.commit()
    return tag


def tag_entry(db, entry, *tags):
    for tag in tags:
        db.add(EntryTag(entry_id=entry.id, tag_id=tag.id))
    db.commit()


def make_similarity(db, entry, related, score):
    db.add(EntrySimilarity(entry_id=entry.id, related_entry_id=related.id, score=score))
    db.commit()


def make_project(db, user, name="Thesis", slug=None, entries=()):
    project = Project(user_id=user.id, name=name, slug=slug)
    db.add(project)
    db.commit()
    for entry in entries:
        db.add(EntryProject(entry_id=entry.id, project_id=project.id))
    db.commit()
    return project


def annotate(db, entry, content="Useful for chapter 2"):
    db.add(Annotation(entry_id=entry.id, user_id=entry.user_id, content=content))
    db.commit()


def auth_headers(user_id):
    token = jwt.encode(
        {"sub": user_id, "exp": datetime.utcnow() + timedelta(minutes=5)},
        os.environ["AUTH_SECRET"],
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def scenario_library(db_session):
    """
    Three entries: 1 and 2 share author "Smith, J.", 2 and 3 share two tags.
    Entry 1 is the most recent.
    """
    user = make_user(db_session, tier="light")
    e1 = make_entry(db_session, user, "Deep Learning Foundations", ["Smith, J.", "Doe, A."], age_minutes=0)
    e2 = make_entry(db_session, user, "Transformers in Practice", [" smith,  J. "], age_minutes=1)
    e3 = make_entry(db_session, user, "Attention Survey", [{"firstName": "Kim", "lastName": "Brown"}], age_minutes=2)

    ml = make_tag(db_session, user, "ml")
    nlp = make_tag(db_session, user, "nlp")
    tag_entry(db_session, e2, ml, nlp)
    tag_entry(db_session, e3, ml, nlp)

    return {
        "user_id": user.id,
        "entry_ids": [e1.id, e2.id, e3.id],
        "user": user,
        "entries": [e1, e2, e3],
        "tags": [ml, nlp],
    }
