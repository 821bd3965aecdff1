# api/models/tag_models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateTagRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255, description="Tag name, unique per user")
    color: str = Field("#6B7280", pattern=r"^#[0-9A-Fa-f]{6}$")
    description: Optional[str] = None
    group_name: Optional[str] = Field(None, alias="groupName")


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    color: Optional[str] = None
    description: Optional[str] = None
    group_name: Optional[str] = Field(None, serialization_alias="groupName")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    entry_count: int = Field(0, serialization_alias="entryCount")


class DeleteTagResponse(BaseModel):
    success: bool
    deleted_id: str = Field(..., serialization_alias="deletedId")


class UpdateTagRequest(BaseModel):
    """Partial update: only the fields present in the body are changed."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    description: Optional[str] = None
    group_name: Optional[str] = Field(None, alias="groupName")
