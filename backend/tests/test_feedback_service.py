"""Tests for the preference store."""
import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookvault.models import RecommendationEvent, RecommendationEventType
from bookvault.services import feedback_service
from bookvault.services.feedback_service import InvalidFeedbackAction


def test_record_preference_stores_event_and_returns_key(db: Session):
    key = feedback_service.record_preference(db, user_id=1, action="dislike", title="Story B", authors="Author X")
    assert key == "na:author x|story b"

    row = db.query(RecommendationEvent).one()
    assert row.user_id == 1
    assert row.work_key == key
    assert row.event == RecommendationEventType.PREF_DISLIKE
    assert row.value_json["title"] == "Story B"
    assert row.value_json["action"] == "dislike"


def test_record_preference_prefers_rec_id(db: Session):
    key = feedback_service.record_preference(
        db, user_id=1, action="LIKE", rec_id="wd:Q1", work_key="/works/OL1W", title="T", authors="A"
    )
    assert key == "wd:Q1"


def test_invalid_action_is_rejected(db: Session):
    with pytest.raises(InvalidFeedbackAction):
        feedback_service.record_preference(db, user_id=1, action="meh", title="T")
    assert db.query(RecommendationEvent).count() == 0


def test_load_signals_groups_by_event(db: Session):
    feedback_service.record_preference(db, 1, "like", work_key="/works/OL1W")
    feedback_service.record_preference(db, 1, "dislike", title="Story B", authors="Author X")
    feedback_service.add_block(db, 1, isbn="9780000000001")
    feedback_service.record_preference(db, 2, "like", work_key="/works/OL2W")

    signals = feedback_service.load_signals(db, 1)
    assert signals.liked_keys == {"ol:/works/OL1W"}
    assert signals.disliked_keys == {"na:author x|story b"}
    assert signals.blocked_keys == {"isbn:9780000000001"}


def test_load_signals_without_user_or_on_db_error(db: Session, monkeypatch):
    assert feedback_service.load_signals(db, None).is_empty

    def broken_query(*args, **kwargs):
        raise SQLAlchemyError("no such table")

    monkeypatch.setattr(db, "query", broken_query)
    assert feedback_service.load_signals(db, 1).is_empty


def test_blocklist_add_list_remove(db: Session):
    first = feedback_service.add_block(db, 1, title="Story B", authors="Author X")
    second = feedback_service.add_block(db, 1, work_key="/works/OL9W", title="Nine")
    feedback_service.add_block(db, 2, title="Other user")
    feedback_service.record_preference(db, 1, "like", title="Liked", authors="A")

    blocked = feedback_service.list_blocked(db, 1)
    assert [row.id for row in blocked] == [second.id, first.id]
    assert blocked[0].work_key == "ol:/works/OL9W"

    assert feedback_service.remove_block(db, 2, first.id) is False
    assert feedback_service.remove_block(db, 1, first.id) is True
    assert feedback_service.remove_block(db, 1, first.id) is False
    assert [row.id for row in feedback_service.list_blocked(db, 1)] == [second.id]
