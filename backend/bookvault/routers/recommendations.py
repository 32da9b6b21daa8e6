from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging
import uuid as uuid_lib

from bookvault.database import get_db
from bookvault.core.config import settings
from bookvault.core.dependencies import get_catalog_client, get_identity_resolver
from bookvault.services import recommendation_engine
from bookvault.services.recommendation_engine import RecommendationError
from bookvault.services.catalog_client import OpenLibraryClient
from bookvault.services.identity_resolver import IdentityResolver
from bookvault.schemas.recommendation import RecommendationRequest, RecommendationsResponse
from bookvault.utils.timing import now_ms, log_elapsed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recommendations"])


@router.post("/recommendations", response_model=RecommendationsResponse)
def post_recommendations(
    request: RecommendationRequest,
    debug: bool = Query(False, description="Include debug counters in response"),
    db: Session = Depends(get_db),
    catalog: OpenLibraryClient = Depends(get_catalog_client),
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    # Sync handler: FastAPI runs it in the threadpool, the engine blocks on catalog I/O
    t0 = now_ms()
    request_id = str(uuid_lib.uuid4())

    logger.info(
        "Recommendations requested: req_id=%s user=%s entries=%s limit=%s seed_mode=%s",
        request_id,
        request.user_id,
        len(request.entries),
        request.limit,
        request.seed_mode,
    )

    try:
        response = recommendation_engine.get_recommendations(
            db=db,
            request=request,
            catalog=catalog,
            resolver=resolver,
            debug=debug,
        )
    except RecommendationError as e:
        logger.exception("Recommendations failed: req_id=%s user=%s", request_id, request.user_id)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})

    if settings.DEBUG:
        log_elapsed(t0, f"req_id={request_id} user={request.user_id} total", logger.debug)
    if not debug:
        # debug block only on request
        return JSONResponse(content=jsonable_encoder(response, exclude={"debug"}))
    return response
