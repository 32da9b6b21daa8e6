"""
Owned-book exclusion, identity dedup and author diversification.

Candidates are walked best-first. Cheap text filters run before the
network-backed identity steps, and once the request deadline has passed the
network steps are skipped in favour of the document's own work key and the
ol:/na: keys.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from bookvault.core.config import settings
from bookvault.schemas.library import LibraryEntry
from bookvault.schemas.recommendation import DebugStats, Reason, RecommendationItem
from bookvault.services.candidate_scorer import ScoreResult
from bookvault.services.catalog_client import CatalogDocument, normalize_isbn
from bookvault.services.identity_resolver import (
    IdentityResolver,
    fallback_key,
    is_title_near_duplicate,
    work_canonical_key,
)
from bookvault.services.preference_overlay import PreferenceSignals, candidate_keys, evaluate
from bookvault.services.text_normalizer import primary_author_key, title_token_key
from bookvault.utils.concurrency import map_limit
from bookvault.utils.timing import Deadline

logger = logging.getLogger(__name__)

PREFERENCE_REASON = Reason(label="Your preference", detail="Matches your stated preference")
MAX_REASONS = 3


@dataclass
class OwnedIndex:
    isbns: Set[str] = field(default_factory=set)
    author_titles: Set[str] = field(default_factory=set)  # "author|tokenkey"
    titles_by_author: Dict[str, List[str]] = field(default_factory=dict)
    work_keys: Set[str] = field(default_factory=set)
    canonical_keys: Set[str] = field(default_factory=set)


@dataclass
class ScoredCandidate:
    doc: CatalogDocument
    result: ScoreResult
    literature_types: List[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        return self.result.score


def _sort_key(c: ScoredCandidate):
    return (-c.score, c.doc.title.lower(), c.doc.identifier or "")


def build_owned_index(
    entries: List[LibraryEntry],
    resolver: IdentityResolver,
    stats: Optional[DebugStats] = None,
    deadline: Optional[Deadline] = None,
) -> OwnedIndex:
    """Every way an entry of the library can be recognised again (all statuses count)."""
    stats = stats if stats is not None else DebugStats()
    deadline = deadline or Deadline(None)
    owned = OwnedIndex()
    titles_by_author: Dict[str, List[str]] = defaultdict(list)

    for entry in entries:
        isbn = normalize_isbn(entry.isbn)
        if isbn:
            owned.isbns.add(isbn)
        author_key = primary_author_key(entry.authors)
        token_key = title_token_key(entry.title)
        if token_key:
            owned.author_titles.add(f"{author_key}|{token_key}")
        if entry.title and author_key:
            titles_by_author[author_key].append(entry.title)
    owned.titles_by_author = dict(titles_by_author)

    entry_work_keys: List[Optional[str]] = [None] * len(entries)

    def work_key_by_isbn(i: int) -> Optional[str]:
        if deadline.expired():
            return None
        return resolver.resolve_work_key_by_identifier(entries[i].isbn)

    def work_key_by_title(i: int) -> Optional[str]:
        if deadline.expired():
            return None
        return resolver.resolve_work_key_by_title_author(entries[i].title, entries[i].authors)

    if not deadline.expired():
        with_isbn = [i for i, e in enumerate(entries) if normalize_isbn(e.isbn)]
        stats.bump("owned_work_lookups_tried", len(with_isbn))
        found = map_limit(with_isbn, settings.OWNED_WORK_LOOKUP_CONCURRENCY, work_key_by_isbn)
        for i, work_key in zip(with_isbn, found):
            if work_key:
                entry_work_keys[i] = work_key
                stats.bump("owned_work_lookups_succeeded")

    if not deadline.expired():
        missing = [i for i, e in enumerate(entries) if entry_work_keys[i] is None and e.title]
        stats.bump("owned_title_fallback_tried", len(missing))
        found = map_limit(missing, settings.TITLE_LOOKUP_CONCURRENCY, work_key_by_title)
        for i, work_key in zip(missing, found):
            if work_key:
                entry_work_keys[i] = work_key
                stats.bump("owned_title_fallback_hit")

    owned.work_keys = {wk for wk in entry_work_keys if wk}

    def canonical_for(i: int) -> Optional[str]:
        entry = entries[i]
        work_key = entry_work_keys[i]
        if not work_key and not title_token_key(entry.title):
            return None
        if deadline.expired():
            return work_canonical_key(work_key) if work_key else fallback_key(entry.title, entry.authors)
        return resolver.resolve_canonical_key(work_key, entry.title, entry.authors)

    canonical = map_limit(list(range(len(entries))), settings.TITLE_LOOKUP_CONCURRENCY, canonical_for)
    owned.canonical_keys = {key for key in canonical if key}

    if deadline.expired():
        stats.deadline_hit = True
    stats.owned_work_keys_count = len(owned.work_keys)
    stats.owned_canonical_keys_count = len(owned.canonical_keys)
    return owned


def _is_near_duplicate_of_any(title: str, titles: List[str]) -> bool:
    return any(is_title_near_duplicate(title, other) for other in titles)


def select(
    scored: List[ScoredCandidate],
    owned: OwnedIndex,
    signals: PreferenceSignals,
    limit: int,
    resolver: IdentityResolver,
    cover_url_for=None,
    stats: Optional[DebugStats] = None,
    deadline: Optional[Deadline] = None,
    author_cap: Optional[int] = None,
) -> List[RecommendationItem]:
    stats = stats if stats is not None else DebugStats()
    deadline = deadline or Deadline(None)
    cap = author_cap or settings.MAX_RECS_PER_PRIMARY_AUTHOR

    accepted: List[RecommendationItem] = []
    seen_work_or_isbn: Set[str] = set()
    seen_canonical: Set[str] = set()
    accepted_titles_by_author: Dict[str, List[str]] = defaultdict(list)
    per_author: Dict[str, int] = defaultdict(int)

    for cand in sorted(scored, key=_sort_key):
        if len(accepted) >= limit:
            break

        doc = cand.doc
        isbn = normalize_isbn(doc.identifier or "")
        author_key = primary_author_key(doc.authors)
        token_key = title_token_key(doc.title)

        # 1-3: text-only owned checks
        if isbn and isbn in owned.isbns:
            stats.bump("dropped_owned_isbn")
            continue
        if token_key and f"{author_key}|{token_key}" in owned.author_titles:
            stats.bump("dropped_owned_title")
            continue
        if author_key and _is_near_duplicate_of_any(doc.title, owned.titles_by_author.get(author_key, [])):
            stats.bump("dropped_owned_title")
            continue

        online = not deadline.expired()
        if not online:
            stats.deadline_hit = True

        # 4: work key
        work_key = doc.work_key
        if not work_key and online:
            work_key = resolver.resolve_work_key_by_title_author(doc.title, doc.authors)
        if work_key and work_key in owned.work_keys:
            stats.bump("dropped_owned_work")
            continue

        # 5: authors already in the library get an edition-level check
        if online and isbn and author_key in owned.titles_by_author:
            verified = resolver.resolve_work_key_by_identifier(isbn)
            if verified:
                work_key = verified
                if verified in owned.work_keys:
                    stats.bump("dropped_owned_work")
                    continue

        # 6: canonical identity
        if online:
            canonical = resolver.resolve_canonical_key(work_key, doc.title, doc.authors)
        elif work_key:
            canonical = work_canonical_key(work_key)
        else:
            canonical = fallback_key(doc.title, doc.authors)
        if canonical in owned.canonical_keys:
            stats.bump("dropped_owned_canonical")
            continue

        # 7: stored preferences
        score = cand.score
        reasons = list(cand.result.reasons)
        decision = evaluate(candidate_keys(canonical, work_key, doc.title, doc.authors, isbn), signals)
        if decision == "exclude":
            stats.bump("dropped_preference")
            continue
        if decision == "boost":
            score += settings.LIKE_BOOST
            reasons = [PREFERENCE_REASON] + reasons
            stats.bump("boosted_preference")

        # 8: duplicates of accepted results
        work_or_isbn = work_key or (f"isbn:{isbn}" if isbn else None)
        if work_or_isbn and work_or_isbn in seen_work_or_isbn:
            stats.bump("dropped_duplicate")
            continue
        if canonical in seen_canonical:
            stats.bump("dropped_duplicate")
            continue
        if author_key and _is_near_duplicate_of_any(doc.title, accepted_titles_by_author[author_key]):
            stats.bump("dropped_duplicate")
            continue

        # 9: diversification
        if author_key and per_author[author_key] >= cap:
            stats.bump("dropped_author_cap")
            continue

        if work_or_isbn:
            seen_work_or_isbn.add(work_or_isbn)
        seen_canonical.add(canonical)
        if author_key:
            accepted_titles_by_author[author_key].append(doc.title)
            per_author[author_key] += 1

        cover_url = doc.cover_url
        if not cover_url and isbn and cover_url_for is not None:
            cover_url = cover_url_for(isbn)

        accepted.append(
            RecommendationItem(
                rec_id=canonical,
                work_key=work_key,
                isbn=isbn,
                title=doc.title,
                authors=doc.authors,
                cover_url=cover_url,
                description=doc.description,
                score=round(score, 2),
                reasons=reasons[:MAX_REASONS],
                subjects=doc.subjects,
                language_match=cand.result.language_match,
                literature_types=cand.literature_types,
            )
        )

    # Boosts may have reordered scores; sorted() is stable
    return sorted(accepted, key=lambda r: -r.score)
