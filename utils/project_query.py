# utils/project_query.py
import re
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from database.models.library_models import Project

UUID_REGEX = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def is_uuid(value: str) -> bool:
    return bool(UUID_REGEX.match(value or ""))


def project_filter(project_id_or_slug: str, user_id: str):
    """
    A UUID may be either the id or a slug that happens to look like one;
    anything else can only be a slug. Ownership is always enforced.
    """
    if is_uuid(project_id_or_slug):
        match = or_(Project.id == project_id_or_slug, Project.slug == project_id_or_slug)
    else:
        match = Project.slug == project_id_or_slug

    return match, Project.user_id == user_id


def find_project(db: Session, project_id_or_slug: str, user_id: str) -> Optional[Project]:
    return db.query(Project).filter(*project_filter(project_id_or_slug, user_id)).first()
