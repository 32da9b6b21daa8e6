from sqlalchemy import Column, String, Integer, DateTime, Enum as SQLEnum, JSON
from datetime import datetime
import enum
import sqlalchemy as sa
from bookvault.database import Base


class RecommendationEventType(str, enum.Enum):
    PREF_LIKE = "pref_like"
    PREF_DISLIKE = "pref_dislike"
    BLOCKED = "blocked"


class RecommendationEvent(Base):
    """
    Append-only preference signals for recommendations.

    work_key holds the preference key the signal was saved under
    (wd:/ol:/na:/isbn:/manual:). value_json keeps the display fields.
    """
    __tablename__ = "recommendation_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    work_key = Column(String, nullable=False, index=True)
    event = Column(
        SQLEnum(
            RecommendationEventType,
            name="recommendationeventtype",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
    )
    value_json = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        sa.Index('idx_recommendation_events_user_event', 'user_id', 'event'),
    )
