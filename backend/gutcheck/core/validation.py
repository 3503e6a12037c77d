# gutcheck/core/validation.py
"""
Input validation helpers shared by the API layer and the idea pipeline.
Each validator raises ValidationError with a message fit for the end user.
"""
import re
from typing import Optional

from gutcheck.core.errors import ValidationError

MAX_TITLE_LENGTH = 200
MAX_IDEA_TEXT_LENGTH = 5000
MAX_NOTES_LENGTH = 1000

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def sanitize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(sanitize_email(email)))


def validate_title(title: Optional[str]) -> str:
    """Return the trimmed title."""
    if not title or not title.strip():
        raise ValidationError("Title cannot be empty", extra={"field": "title"})
    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title must be at most {MAX_TITLE_LENGTH} characters",
            extra={"field": "title", "maxLength": MAX_TITLE_LENGTH},
        )
    return title


def validate_idea_text(text: Optional[str]) -> str:
    if not text or not text.strip():
        raise ValidationError("Idea text cannot be empty", extra={"field": "rawText"})
    if len(text) > MAX_IDEA_TEXT_LENGTH:
        raise ValidationError(
            f"Idea text must be at most {MAX_IDEA_TEXT_LENGTH} characters",
            extra={"field": "rawText", "maxLength": MAX_IDEA_TEXT_LENGTH},
        )
    return text


def validate_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes must be at most {MAX_NOTES_LENGTH} characters",
            extra={"field": "userNotes", "maxLength": MAX_NOTES_LENGTH},
        )
    return notes
