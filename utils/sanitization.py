# utils/sanitization.py
from typing import Any, Optional
import re

CONTROL_CHARS = r"[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f-\x9f]"


def clean_text(value: Optional[str]) -> str:
    if value is None:
        return ""

    text = re.sub(CONTROL_CHARS, "", value)
    text = text.strip()
    text = re.sub(r"\s+", " ", text)

    return text


def _as_text(value: Any) -> str:
    # Free-form JSON: numbers are stringified, anything else that is not a string is dropped
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def author_display_name(author: Any) -> Optional[str]:
    """
    Accepts the shapes stored in Entry.authors:
    "Smith, J.", {"name": "..."} or {"firstName": "...", "lastName": "..."}.
    """
    if isinstance(author, str):
        name = author
    elif isinstance(author, dict):
        name = _as_text(author.get("name")) or f"{_as_text(author.get('firstName'))} {_as_text(author.get('lastName'))}"
    else:
        return None

    name = clean_text(name)
    return name or None


def author_key(name: str) -> str:
    """Grouping key for same-author matching: trimmed, case-insensitive."""
    return clean_text(name).lower()


def truncate_label(title: Optional[str], max_length: int = 50) -> str:
    label = clean_text(title)
    if len(label) > max_length:
        return label[: max_length - 3] + "..."
    return label
