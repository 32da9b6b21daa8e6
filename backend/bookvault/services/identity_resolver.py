"""
Identity resolution: "is this the same literary work?"

Canonical keys, strongest first:
    wd:Q...           cross-language id (work cross-reference or title/author search)
    ol:/works/OL..W   Open Library work key
    na:author|title   normalized primary author + title token key

Every network-backed step degrades to None and the caller falls back to the
next weaker key. Answers are memoized per input in injected caches; a lookup
that failed (LookupUnavailable) is not, so a later request can retry it.
"""
import logging
from typing import Optional

from bookvault.services.cache import Cache, MemoCache, memoized
from bookvault.services.catalog_client import (
    LookupUnavailable,
    OpenLibraryClient,
    external_canonical_id,
    normalize_isbn,
    work_key_from_doc,
)
from bookvault.services.text_normalizer import (
    author_last_name,
    normalize,
    primary_author,
    primary_author_key,
    title_token_key,
    token_overlap_ratio,
)
from bookvault.services.wikidata_client import CrossReferenceSource

logger = logging.getLogger(__name__)

NEAR_DUPLICATE_OVERLAP = 0.7
TITLE_LOOKUP_LIMIT = 6


def is_title_near_duplicate(title_a: str, title_b: str) -> bool:
    """Same token key, one key contained in the other, or token overlap >= 0.7."""
    key_a = title_token_key(title_a)
    key_b = title_token_key(title_b)
    if not key_a or not key_b:
        return False
    if key_a == key_b:
        return True
    if key_a in key_b or key_b in key_a:
        return True
    return token_overlap_ratio(key_a.split(" "), key_b.split(" ")) >= NEAR_DUPLICATE_OVERLAP


def fallback_key(title: str, authors: str) -> str:
    """Text-only canonical key used when no catalog identity is available."""
    author_key = primary_author_key(authors)
    token_key = title_token_key(title)
    if token_key:
        return f"na:{author_key}|{token_key}"
    return f"na:{normalize(title)}|{normalize(author_last_name(primary_author(authors)))}"


def work_canonical_key(work_key: str) -> str:
    return f"ol:{work_key}"


class IdentityResolver:
    def __init__(
        self,
        catalog: OpenLibraryClient,
        cross_reference: Optional[CrossReferenceSource] = None,
        isbn_work_cache: Optional[Cache] = None,
        title_work_cache: Optional[Cache] = None,
        canonical_cache: Optional[Cache] = None,
    ):
        self.catalog = catalog
        self.cross_reference = cross_reference
        self.isbn_work_cache = isbn_work_cache if isbn_work_cache is not None else MemoCache()
        self.title_work_cache = title_work_cache if title_work_cache is not None else MemoCache()
        self.canonical_cache = canonical_cache if canonical_cache is not None else MemoCache()

    def resolve_work_key_by_identifier(self, identifier: str) -> Optional[str]:
        isbn = normalize_isbn(identifier)
        if not isbn:
            return None
        try:
            return memoized(self.isbn_work_cache, isbn, lambda: self._work_key_from_edition(isbn))
        except LookupUnavailable:
            return None

    def _work_key_from_edition(self, isbn: str) -> Optional[str]:
        edition = self.catalog.fetch_by_identifier(isbn)
        if not edition:
            return None
        works = edition.get("works") or []
        if works and isinstance(works[0], dict):
            key = works[0].get("key")
            if isinstance(key, str) and key:
                return key
        return None

    def resolve_work_key_by_title_author(self, title: str, authors: str) -> Optional[str]:
        title = (title or "").strip()
        if not title:
            return None
        cache_key = (title_token_key(title) or normalize(title), primary_author_key(authors))
        try:
            return memoized(self.title_work_cache, cache_key, lambda: self._work_key_from_search(title, authors))
        except LookupUnavailable:
            return None

    def _work_key_from_search(self, title: str, authors: str) -> Optional[str]:
        query = " ".join(x for x in (title, (authors or "").strip()) if x)
        docs = self.catalog.search_docs(query, limit=TITLE_LOOKUP_LIMIT)
        target_author = primary_author_key(authors)
        target_key = title_token_key(title)

        for doc in docs:
            work_key = work_key_from_doc(doc)
            if not work_key:
                continue
            names = doc.get("author_name") or []
            cand_author = normalize(str(names[0])) if names else ""
            if target_author and cand_author and target_author != cand_author:
                continue
            cand_title = str(doc.get("title") or "").strip()
            if not cand_title:
                continue
            if title_token_key(cand_title) == target_key or is_title_near_duplicate(title, cand_title):
                return work_key

        # Recall over precision: accept the first work key even without a strict match.
        for doc in docs:
            work_key = work_key_from_doc(doc)
            if work_key:
                return work_key
        return None

    def resolve_cross_reference(self, work_key: Optional[str], title: str, authors: str) -> Optional[str]:
        """
        wd: id via the work record first, then via title/author disambiguation.

        Raises LookupUnavailable when nothing was found and at least one of
        the lookups failed, so the caller does not memoize the weaker key.
        """
        unavailable: Optional[LookupUnavailable] = None
        if work_key:
            try:
                found = external_canonical_id(self.catalog.fetch_work(work_key))
            except LookupUnavailable as e:
                unavailable = e
                found = None
            if found:
                return found

        if self.cross_reference is not None and title_token_key(title):
            try:
                found = self.cross_reference.resolve_by_title_author(title, authors)
            except LookupUnavailable as e:
                unavailable = e
                found = None
            except Exception:
                logger.warning("Cross-reference lookup failed for '%s' by '%s'", title, authors, exc_info=True)
                found = None
            if found:
                return found

        if unavailable is not None:
            raise unavailable
        return None

    def resolve_canonical_key(self, work_key: Optional[str], title: str, authors: str) -> str:
        cache_key = (work_key or "", title_token_key(title) or normalize(title), primary_author_key(authors))
        try:
            return memoized(self.canonical_cache, cache_key, lambda: self._canonical_key(work_key, title, authors))
        except LookupUnavailable:
            # Not cached: a later call retries the cross-reference lookup.
            return self._weak_key(work_key, title, authors)

    def _canonical_key(self, work_key: Optional[str], title: str, authors: str) -> str:
        cross_ref = self.resolve_cross_reference(work_key, title, authors)
        if cross_ref:
            return cross_ref
        return self._weak_key(work_key, title, authors)

    @staticmethod
    def _weak_key(work_key: Optional[str], title: str, authors: str) -> str:
        if work_key:
            return work_canonical_key(work_key)
        return fallback_key(title, authors)
