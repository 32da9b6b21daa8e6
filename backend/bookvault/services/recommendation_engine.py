"""
Recommendation orchestration.

profile -> catalog queries (bounded fan-out) -> scoring -> owned index ->
dedup/diversification -> ranked list. The library snapshot is read-only;
nothing here writes to it.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from bookvault.core.config import settings
from bookvault.schemas.library import LibraryEntry
from bookvault.schemas.recommendation import (
    CatalogCallInfo,
    DebugStats,
    RecommendationItem,
    RecommendationRequest,
    RecommendationsResponse,
)
from bookvault.services import feedback_service
from bookvault.services.candidate_scorer import literature_types, score_candidate
from bookvault.services.catalog_client import CatalogCall, CatalogDocument, OpenLibraryClient
from bookvault.services.dedup_engine import ScoredCandidate, build_owned_index, select
from bookvault.services.identity_resolver import IdentityResolver
from bookvault.services.preference_overlay import PreferenceSignals
from bookvault.services.profile_builder import Profile, build_profile
from bookvault.utils.concurrency import map_limit
from bookvault.utils.timing import Deadline, log_elapsed, now_ms

logger = logging.getLogger(__name__)


class RecommendationError(Exception):
    """Unexpected failure while building recommendations (not an empty result)."""


@dataclass
class CatalogQuery:
    kind: str  # subject | author
    query: str
    limit: int


@dataclass
class RecommendationResult:
    profile: Profile
    items: List[RecommendationItem] = field(default_factory=list)
    stats: DebugStats = field(default_factory=DebugStats)


def _clamp(n: int, low: int, high: int) -> int:
    return max(low, min(high, n))


def build_queries(profile: Profile, limit: int) -> List[CatalogQuery]:
    """subject:"..." per top subject, then author:"..." per top author."""
    subject_limit = _clamp(limit, 10, 40)
    author_limit = _clamp(math.ceil(limit * 0.6), 8, 25)
    queries = [CatalogQuery("subject", f'subject:"{s}"', subject_limit) for s, _ in profile.top_subjects]
    queries += [CatalogQuery("author", f'author:"{a}"', author_limit) for a, _ in profile.top_authors]
    return queries


def _run_queries(
    catalog: OpenLibraryClient,
    queries: List[CatalogQuery],
    call_log: List[CatalogCall],
    deadline: Optional[Deadline] = None,
) -> List[CatalogDocument]:
    deadline = deadline or Deadline(None)
    # One log per query keeps call order aligned with query order
    logs: List[List[CatalogCall]] = [[] for _ in queries]

    def run(i: int) -> List[CatalogDocument]:
        q = queries[i]
        if deadline.expired():
            logs[i].append(CatalogCall(kind=q.kind, query=q.query, limit=q.limit, got=0, error="deadline"))
            return []
        return catalog.search(q.query, q.limit, kind=q.kind, call_log=logs[i])

    chunks = map_limit(list(range(len(queries))), settings.CATALOG_QUERY_CONCURRENCY, run)
    for log in logs:
        call_log.extend(log)
    return [doc for chunk in chunks for doc in chunk]


def score_documents(
    docs: List[CatalogDocument],
    profile: Profile,
    types: Optional[List[str]] = None,
    preferred_language: Optional[str] = None,
    preferred_language_only: bool = False,
    stats: Optional[DebugStats] = None,
) -> List[ScoredCandidate]:
    stats = stats if stats is not None else DebugStats()
    wanted_types = set(types or [])
    scored: List[ScoredCandidate] = []

    for doc in docs:
        if not doc.identifier or not doc.title:
            continue

        lit_types = literature_types(doc.subjects)
        if wanted_types and not wanted_types.intersection(lit_types):
            stats.bump("dropped_type_filter")
            continue

        result = score_candidate(doc, profile, preferred_language)
        if preferred_language_only and not result.language_match:
            stats.bump("dropped_language_filter")
            continue
        if result.relevance <= 0:
            continue
        scored.append(ScoredCandidate(doc=doc, result=result, literature_types=lit_types))

    stats.candidates_scored = len(scored)
    return scored


def recommend(
    entries: List[LibraryEntry],
    catalog: OpenLibraryClient,
    resolver: IdentityResolver,
    signals: Optional[PreferenceSignals] = None,
    min_rating: int = 4,
    seed_mode: str = "liked",
    limit: int = 25,
    selected_seed_ids: Optional[List[int]] = None,
    types: Optional[List[str]] = None,
    preferred_language_only: bool = False,
    preferred_language: Optional[str] = None,
    deadline: Optional[Deadline] = None,
) -> RecommendationResult:
    t0 = now_ms()
    deadline = deadline or Deadline(settings.REQUEST_DEADLINE_SECONDS)
    signals = signals or PreferenceSignals()
    preferred_language = preferred_language if preferred_language is not None else settings.PREFERRED_LANGUAGE

    stats = DebugStats(entry_count=len(entries))
    stats.read_count = sum(1 for e in entries if e.status == "read")

    profile = build_profile(entries, min_rating, seed_mode, selected_seed_ids)
    stats.liked_count = profile.liked_count
    stats.top_subjects_count = len(profile.top_subjects)
    stats.top_authors_count = len(profile.top_authors)

    if profile.is_empty:
        logger.info("No seed books for min_rating=%s seed_mode=%s, returning empty list", min_rating, seed_mode)
        stats.total_ms = round(now_ms() - t0, 1)
        return RecommendationResult(profile=profile, stats=stats)

    t1 = log_elapsed(t0, "phase=profile", logger.debug) if settings.DEBUG else now_ms()

    queries = build_queries(profile, limit)
    call_log: List[CatalogCall] = []
    docs = _run_queries(catalog, queries, call_log, deadline)
    stats.queries = len(queries)
    stats.catalog_calls = [CatalogCallInfo(**vars(c)) for c in call_log]
    stats.docs_total = len(docs)
    t2 = log_elapsed(t1, f"phase=catalog_queries queries={len(queries)} docs={len(docs)}", logger.debug) if settings.DEBUG else now_ms()

    scored = score_documents(docs, profile, types, preferred_language, preferred_language_only, stats)
    t3 = log_elapsed(t2, f"phase=score candidates={len(scored)}", logger.debug) if settings.DEBUG else now_ms()

    owned = build_owned_index(entries, resolver, stats, deadline)
    t4 = log_elapsed(t3, "phase=owned_index", logger.debug) if settings.DEBUG else now_ms()

    items = select(
        scored,
        owned,
        signals,
        limit,
        resolver,
        cover_url_for=catalog.cover_url,
        stats=stats,
        deadline=deadline,
    )
    if settings.DEBUG:
        log_elapsed(t4, f"phase=select accepted={len(items)}", logger.debug)

    if stats.deadline_hit:
        logger.warning("Recommendation deadline reached after %.0fms, returning partial results", deadline.elapsed_ms())

    stats.total_ms = round(now_ms() - t0, 1)
    logger.info(
        "Recommendations built: seeds=%s docs=%s scored=%s returned=%s in %.0fms",
        profile.liked_count,
        len(docs),
        len(scored),
        len(items),
        stats.total_ms,
    )
    return RecommendationResult(profile=profile, items=items, stats=stats)


def get_recommendations(
    db: Session,
    request: RecommendationRequest,
    catalog: OpenLibraryClient,
    resolver: IdentityResolver,
    debug: bool = False,
) -> RecommendationsResponse:
    """
    Entry point for the HTTP layer.

    Raises:
        RecommendationError: on any unexpected failure, so callers can tell
        a broken run apart from an honest empty result.
    """
    try:
        signals = feedback_service.load_signals(db, request.user_id)
        result = recommend(
            entries=request.entries,
            catalog=catalog,
            resolver=resolver,
            signals=signals,
            min_rating=request.min_rating,
            seed_mode=request.seed_mode,
            limit=request.limit,
            selected_seed_ids=request.selected_seed_ids,
            types=request.types,
            preferred_language_only=request.preferred_language_only,
        )
    except RecommendationError:
        raise
    except Exception as e:
        raise RecommendationError(str(e) or e.__class__.__name__) from e

    return RecommendationsResponse(
        ok=True,
        profile=result.profile.summary(),
        recommendations=result.items,
        debug=result.stats if debug else None,
    )
