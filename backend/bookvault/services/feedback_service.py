"""
Preference store for recommendation feedback.

Like / dislike / block signals are appended to recommendation_events and
read back as PreferenceSignals. Reads never throw outward: a database error
degrades to empty signals so recommendations still work.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from bookvault.models import RecommendationEvent, RecommendationEventType
from bookvault.services.catalog_client import normalize_isbn
from bookvault.services.preference_overlay import PreferenceSignals, preference_key_for

logger = logging.getLogger(__name__)

BLOCKLIST_LIMIT = 500

ACTION_EVENTS = {
    "like": RecommendationEventType.PREF_LIKE,
    "dislike": RecommendationEventType.PREF_DISLIKE,
}


class InvalidFeedbackAction(ValueError):
    pass


def _value_json(title: str, authors: str, isbn: str, rec_id: Optional[str], action: Optional[str] = None) -> dict:
    value = {
        "title": (title or "").strip(),
        "authors": (authors or "").strip(),
        "isbn": normalize_isbn(isbn or ""),
        "rec_id": rec_id,
    }
    if action:
        value["action"] = action
    return value


def _insert_event(db: Session, user_id: int, key: str, event: RecommendationEventType, value: dict) -> RecommendationEvent:
    row = RecommendationEvent(user_id=user_id, work_key=key, event=event, value_json=value)
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store %s event for user_id=%s key=%s", event.value, user_id, key)
        raise
    return row


def record_preference(
    db: Session,
    user_id: int,
    action: str,
    rec_id: Optional[str] = None,
    work_key: Optional[str] = None,
    title: str = "",
    authors: str = "",
    isbn: str = "",
) -> str:
    """
    Store a like or dislike and return the key it was saved under.

    Raises InvalidFeedbackAction for anything but "like" / "dislike".
    """
    action = (action or "").strip().lower()
    event = ACTION_EVENTS.get(action)
    if event is None:
        raise InvalidFeedbackAction(f"Invalid action: {action!r}")

    key = preference_key_for(rec_id=rec_id, work_key=work_key, title=title, authors=authors, isbn=isbn)
    _insert_event(db, user_id, key, event, _value_json(title, authors, isbn, rec_id, action))
    logger.debug("Preference stored: user_id=%s key=%s action=%s", user_id, key, action)
    return key


def load_signals(db: Session, user_id: Optional[int]) -> PreferenceSignals:
    signals = PreferenceSignals()
    if user_id is None:
        return signals

    try:
        rows = (
            db.query(RecommendationEvent.work_key, RecommendationEvent.event)
            .filter(RecommendationEvent.user_id == user_id)
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Could not load preference signals for user_id=%s: %s", user_id, e)
        return signals

    for key, event in rows:
        if event == RecommendationEventType.PREF_LIKE:
            signals.liked_keys.add(key)
        elif event == RecommendationEventType.PREF_DISLIKE:
            signals.disliked_keys.add(key)
        elif event == RecommendationEventType.BLOCKED:
            signals.blocked_keys.add(key)
    return signals


def add_block(
    db: Session,
    user_id: int,
    rec_id: Optional[str] = None,
    work_key: Optional[str] = None,
    title: str = "",
    authors: str = "",
    isbn: str = "",
) -> RecommendationEvent:
    key = preference_key_for(rec_id=rec_id, work_key=work_key, title=title, authors=authors, isbn=isbn)
    row = _insert_event(db, user_id, key, RecommendationEventType.BLOCKED, _value_json(title, authors, isbn, rec_id))
    logger.debug("Blocked: user_id=%s key=%s", user_id, key)
    return row


def list_blocked(db: Session, user_id: int) -> List[RecommendationEvent]:
    return (
        db.query(RecommendationEvent)
        .filter(
            RecommendationEvent.user_id == user_id,
            RecommendationEvent.event == RecommendationEventType.BLOCKED,
        )
        .order_by(RecommendationEvent.created_at.desc(), RecommendationEvent.id.desc())
        .limit(BLOCKLIST_LIMIT)
        .all()
    )


def remove_block(db: Session, user_id: int, block_id: int) -> bool:
    """Delete one blocklist row owned by user_id. False when no such row exists."""
    row = (
        db.query(RecommendationEvent)
        .filter(
            RecommendationEvent.id == block_id,
            RecommendationEvent.user_id == user_id,
            RecommendationEvent.event == RecommendationEventType.BLOCKED,
        )
        .first()
    )
    if row is None:
        return False
    try:
        db.delete(row)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to remove block id=%s for user_id=%s", block_id, user_id)
        raise
    return True
