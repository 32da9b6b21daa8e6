"""
Like / dislike feedback on recommendations.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from bookvault.database import get_db
from bookvault.schemas.recommendation import PreferenceFeedbackRequest, PreferenceFeedbackResponse
from bookvault.services.feedback_service import InvalidFeedbackAction, record_preference

logger = logging.getLogger(__name__)

router = APIRouter(tags=["feedback"])


@router.post("/recommendation-feedback", response_model=PreferenceFeedbackResponse)
def post_recommendation_feedback(
    request: PreferenceFeedbackRequest,
    db: Session = Depends(get_db),
):
    """Store a like or dislike; returns the key future recommendations match against."""
    try:
        key = record_preference(
            db=db,
            user_id=request.user_id,
            action=request.action,
            rec_id=request.rec_id,
            work_key=request.work_key,
            title=request.title,
            authors=request.authors,
            isbn=request.isbn,
        )
    except InvalidFeedbackAction:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")
    except SQLAlchemyError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not store feedback")

    return PreferenceFeedbackResponse(ok=True, key=key, action=request.action.strip().lower())
