# File: api/routers/tags.py
from typing import List
from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.dependencies.auth import get_current_user, get_db
from api.models.tag_models import CreateTagRequest, DeleteTagResponse, TagResponse, UpdateTagRequest
from database.models.auth_models import User
from database.models.library_models import Tag
from services.library_repository import LibraryRepository

import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_response(tag: Tag, entry_count: int = 0) -> TagResponse:
    return TagResponse(
        id=tag.id,
        name=tag.name,
        color=tag.color,
        description=tag.description,
        group_name=tag.group_name,
        created_at=tag.created_at,
        entry_count=int(entry_count or 0),
    )


@router.get("/tags", response_model=List[TagResponse])
def list_tags(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    repo = LibraryRepository(db)
    return [_to_response(tag, count) for tag, count in repo.tag_entry_counts(current_user.id)]


@router.post("/tags", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
def create_tag(
    payload: CreateTagRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Tag name is required")

    repo = LibraryRepository(db)
    if repo.find_tag(current_user.id, name=name):
        raise HTTPException(status_code=409, detail="A tag with this name already exists")

    tag = Tag(
        user_id=current_user.id,
        name=name,
        color=payload.color,
        description=payload.description,
        group_name=payload.group_name,
    )
    try:
        db.add(tag)
        db.commit()
        db.refresh(tag)
    except IntegrityError:
        # Lost a race against a concurrent create with the same name
        db.rollback()
        raise HTTPException(status_code=409, detail="A tag with this name already exists")

    logger.info(f"TAG_CREATED user_id={current_user.id} tag_id={tag.id}")
    return _to_response(tag)


@router.put("/tags/{tag_id}", response_model=TagResponse)
def update_tag(
    tag_id: str,
    payload: UpdateTagRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = LibraryRepository(db)
    tag = repo.find_tag(current_user.id, tag_id=tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")

    updates = payload.model_dump(exclude_unset=True)
    # An explicit null for name or color keeps the current value
    for field in ("name", "color"):
        if updates.get(field, "") is None:
            updates.pop(field)

    if "name" in updates:
        name = updates["name"].strip()
        if not name:
            raise HTTPException(status_code=400, detail="Tag name is required")
        if name != tag.name and repo.find_tag(current_user.id, name=name):
            raise HTTPException(status_code=409, detail="A tag with this name already exists")
        updates["name"] = name

    for field, value in updates.items():
        setattr(tag, field, value)
    try:
        db.commit()
        db.refresh(tag)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="A tag with this name already exists")

    logger.info(f"TAG_UPDATED user_id={current_user.id} tag_id={tag_id} fields={sorted(updates)}")
    return _to_response(tag, repo.tag_entry_count(tag.id))


@router.delete("/tags/{tag_id}", response_model=DeleteTagResponse)
def delete_tag(tag_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    repo = LibraryRepository(db)
    tag = repo.find_tag(current_user.id, tag_id=tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")

    db.delete(tag)
    db.commit()

    logger.info(f"TAG_DELETED user_id={current_user.id} tag_id={tag_id}")
    return DeleteTagResponse(success=True, deleted_id=tag_id)
