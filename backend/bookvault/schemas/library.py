from pydantic import BaseModel, field_validator
from typing import Any, List, Optional
import enum
import json
import logging

logger = logging.getLogger(__name__)


class ReadingStatus(str, enum.Enum):
    UNREAD = "unread"
    READING = "reading"
    PAUSED = "paused"
    READ = "read"


class LibraryEntry(BaseModel):
    """
    One row of the caller's library snapshot. Read-only input.

    The storage layer keeps `subjects` as a JSON-encoded string, so both a
    list and a string are accepted. Unparseable `rating` / `subjects` values
    are dropped to None / [] instead of rejecting the whole entry.
    """
    id: Optional[int] = None
    isbn: str = ""
    title: str = ""
    authors: str = ""
    status: ReadingStatus = ReadingStatus.UNREAD
    rating: Optional[int] = None
    subjects: List[str] = []
    notes: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None

    @field_validator("isbn", "title", "authors", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v: Any) -> ReadingStatus:
        if isinstance(v, ReadingStatus):
            return v
        if isinstance(v, str):
            value = v.strip().lower()
            if value in {s.value for s in ReadingStatus}:
                return ReadingStatus(value)
        logger.debug("Unknown reading status %r, treating as unread", v)
        return ReadingStatus.UNREAD

    @field_validator("rating", mode="before")
    @classmethod
    def _parse_rating(cls, v: Any) -> Optional[int]:
        if v is None or isinstance(v, bool):
            return None
        try:
            rating = int(float(v))
        except (TypeError, ValueError):
            logger.debug("Ignoring unparseable rating %r", v)
            return None
        if rating < 1 or rating > 10:
            return None
        return rating

    @field_validator("subjects", mode="before")
    @classmethod
    def _parse_subjects(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            raw = v.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    v = json.loads(raw)
                except ValueError:
                    logger.debug("Ignoring unparseable subjects %r", raw[:80])
                    return []
            else:
                v = raw.split(",")
        if not isinstance(v, list):
            return []
        return [str(s).strip() for s in v if isinstance(s, (str, int, float)) and str(s).strip()]
