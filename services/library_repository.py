# services/library_repository.py
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models.library_models import (
    Annotation,
    Entry,
    EntryProject,
    EntrySimilarity,
    EntryTag,
    Tag,
)

logger = logging.getLogger(__name__)


class LibraryRepository:
    """
    Read-only access to a user's library.
    Every query is scoped by the owning user id.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_entries(self, user_id: str, limit: int) -> List[Entry]:
        """Most recent first; id breaks created_at ties so paging is stable."""
        return (
            self.db.query(Entry)
            .filter(Entry.user_id == user_id)
            .order_by(Entry.created_at.desc(), Entry.id.asc())
            .limit(limit)
            .all()
        )

    def list_project_entries(self, project_id: str, user_id: str) -> List[Entry]:
        return (
            self.db.query(Entry)
            .join(EntryProject, EntryProject.entry_id == Entry.id)
            .filter(
                EntryProject.project_id == project_id,
                Entry.user_id == user_id,
            )
            .order_by(Entry.created_at.desc(), Entry.id.asc())
            .all()
        )

    def tags_by_entry(self, entry_ids: Iterable[str], user_id: str) -> Dict[str, List[Tag]]:
        entry_ids = list(entry_ids)
        if not entry_ids:
            return {}

        rows = (
            self.db.query(EntryTag.entry_id, Tag)
            .join(Tag, Tag.id == EntryTag.tag_id)
            .filter(
                EntryTag.entry_id.in_(entry_ids),
                Tag.user_id == user_id,
            )
            .order_by(Tag.name.asc(), Tag.id.asc())
            .all()
        )

        result: Dict[str, List[Tag]] = defaultdict(list)
        for entry_id, tag in rows:
            result[entry_id].append(tag)
        return dict(result)

    def annotation_counts(self, entry_ids: Iterable[str]) -> Dict[str, int]:
        entry_ids = list(entry_ids)
        if not entry_ids:
            return {}

        rows = (
            self.db.query(Annotation.entry_id, func.count(Annotation.id))
            .filter(Annotation.entry_id.in_(entry_ids))
            .group_by(Annotation.entry_id)
            .all()
        )
        return {entry_id: int(count) for entry_id, count in rows}

    def similarities_between(
        self,
        entry_ids: Iterable[str],
        min_score: Optional[float] = None,
    ) -> List[EntrySimilarity]:
        """
        Similarity rows whose two endpoints are both in entry_ids.
        Restricting to the caller's own entries keeps other tenants out.
        """
        entry_ids = list(entry_ids)
        if len(entry_ids) < 2:
            return []

        query = self.db.query(EntrySimilarity).filter(
            EntrySimilarity.entry_id.in_(entry_ids),
            EntrySimilarity.related_entry_id.in_(entry_ids),
            EntrySimilarity.entry_id != EntrySimilarity.related_entry_id,
        )
        if min_score is not None:
            query = query.filter(EntrySimilarity.score >= min_score)

        return query.order_by(EntrySimilarity.id.asc()).all()

    def tag_entry_counts(self, user_id: str) -> List[tuple]:
        """(Tag, entry count) pairs for the tag listing, ordered by name."""
        entry_count = func.count(EntryTag.id)
        return (
            self.db.query(Tag, entry_count)
            .outerjoin(EntryTag, EntryTag.tag_id == Tag.id)
            .filter(Tag.user_id == user_id)
            .group_by(Tag.id)
            .order_by(Tag.name.asc())
            .all()
        )

    def find_tag(self, user_id: str, tag_id: Optional[str] = None, name: Optional[str] = None) -> Optional[Tag]:
        query = self.db.query(Tag).filter(Tag.user_id == user_id)
        if tag_id is not None:
            query = query.filter(Tag.id == tag_id)
        if name is not None:
            query = query.filter(Tag.name == name)
        return query.first()

    def tag_entry_count(self, tag_id: str) -> int:
        return self.db.query(func.count(EntryTag.id)).filter(EntryTag.tag_id == tag_id).scalar() or 0
