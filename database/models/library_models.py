# database/models/library_models.py
from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Float,
    Boolean,
    JSON,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from database.db import Base
from database.models.auth_models import _utcnow
import uuid


def _uuid() -> str:
    return str(uuid.uuid4())


class Entry(Base):
    """A bibliographic record owned by exactly one user."""
    __tablename__ = "entries"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    entry_type = Column(String(64), nullable=False, default="journal_article")
    title = Column(Text, nullable=False)
    # List of "Last, F." strings or {"firstName": ..., "lastName": ...} objects
    authors = Column(JSON, default=lambda: [])
    year = Column(Integer, nullable=True, index=True)
    entry_metadata = Column("metadata", JSON, default=lambda: {})
    notes = Column(Text, nullable=True)
    is_favorite = Column(Boolean, default=False)

    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="entries")
    tag_links = relationship("EntryTag", back_populates="entry", cascade="all, delete-orphan")
    project_links = relationship("EntryProject", back_populates="entry", cascade="all, delete-orphan")
    annotations = relationship("Annotation", back_populates="entry", cascade="all, delete-orphan")
    similarities = relationship(
        "EntrySimilarity",
        foreign_keys="EntrySimilarity.entry_id",
        cascade="all, delete-orphan",
    )
    reverse_similarities = relationship(
        "EntrySimilarity",
        foreign_keys="EntrySimilarity.related_entry_id",
        cascade="all, delete-orphan",
    )


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    color = Column(String(7), default="#6B7280")
    description = Column(Text, nullable=True)
    group_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    owner = relationship("User", back_populates="tags")
    entry_links = relationship("EntryTag", back_populates="tag", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_tags_user_name"),
    )


class EntryTag(Base):
    __tablename__ = "entry_tags"

    id = Column(String, primary_key=True, default=_uuid)
    entry_id = Column(String, ForeignKey("entries.id", ondelete="CASCADE"), nullable=False)
    tag_id = Column(String, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False)

    entry = relationship("Entry", back_populates="tag_links")
    tag = relationship("Tag", back_populates="entry_links")

    __table_args__ = (
        UniqueConstraint("entry_id", "tag_id", name="uq_entry_tags"),
    )


class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    color = Column(String(7), default="#4F46E5")
    is_archived = Column(Boolean, default=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    owner = relationship("User", back_populates="projects")
    entry_links = relationship("EntryProject", back_populates="project", cascade="all, delete-orphan")


class EntryProject(Base):
    __tablename__ = "entry_projects"

    id = Column(String, primary_key=True, default=_uuid)
    entry_id = Column(String, ForeignKey("entries.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    added_at = Column(DateTime, default=_utcnow, nullable=False)

    entry = relationship("Entry", back_populates="project_links")
    project = relationship("Project", back_populates="entry_links")

    __table_args__ = (
        UniqueConstraint("entry_id", "project_id", name="uq_entry_projects"),
    )


class Annotation(Base):
    __tablename__ = "annotations"

    id = Column(String, primary_key=True, default=_uuid)
    entry_id = Column(String, ForeignKey("entries.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    annotation_type = Column(String(32), default="descriptive", nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    entry = relationship("Entry", back_populates="annotations")


class EntrySimilarity(Base):
    """Precomputed similarity between two entries; direction carries no meaning."""
    __tablename__ = "entry_similarities"

    id = Column(String, primary_key=True, default=_uuid)
    entry_id = Column(String, ForeignKey("entries.id", ondelete="CASCADE"), nullable=False)
    related_entry_id = Column(String, ForeignKey("entries.id", ondelete="CASCADE"), nullable=False)
    score = Column(Float, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("entry_id", "related_entry_id", name="uq_entry_similarity_pair"),
        Index("ix_entry_similarities_related", "related_entry_id"),
    )
