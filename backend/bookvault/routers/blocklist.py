from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from bookvault.database import get_db
from bookvault.schemas.recommendation import BlockedItem, BlocklistResponse, BlockRequest, BlockResponse
from bookvault.services import feedback_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["blocklist"])


@router.get("/blocklist", response_model=BlocklistResponse)
def get_blocklist(
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    rows = feedback_service.list_blocked(db, user_id)
    items = []
    for row in rows:
        value = row.value_json or {}
        items.append(
            BlockedItem(
                id=row.id,
                work_key=row.work_key,
                title=str(value.get("title") or ""),
                authors=str(value.get("authors") or ""),
                isbn=str(value.get("isbn") or ""),
                created_at=row.created_at,
            )
        )
    return BlocklistResponse(ok=True, items=items)


@router.post("/blocklist", response_model=BlockResponse)
def post_blocklist(
    request: BlockRequest,
    db: Session = Depends(get_db),
):
    try:
        row = feedback_service.add_block(
            db=db,
            user_id=request.user_id,
            rec_id=request.rec_id,
            work_key=request.work_key,
            title=request.title,
            authors=request.authors,
            isbn=request.isbn,
        )
    except SQLAlchemyError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not store block")
    return BlockResponse(ok=True, id=row.id)


@router.delete("/blocklist/{block_id}", response_model=BlockResponse)
def delete_blocklist(
    block_id: int,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    if not feedback_service.remove_block(db, user_id, block_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blocklist entry not found")
    return BlockResponse(ok=True, id=block_id)
