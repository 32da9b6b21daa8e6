"""
Open Library catalog client.

Search results are cached under the fully qualified query URL with a TTL;
edition and work lookups are memoized without expiry (their key space is
bounded by the library size). Every call is time-boxed. search() degrades
a failed call to an empty list; the identity lookups raise LookupUnavailable
instead, and failures are never cached.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import requests

from bookvault.core.config import settings
from bookvault.services.cache import Cache, MemoCache, TTLCache

logger = logging.getLogger(__name__)

SEARCH_FIELDS = "title,author_name,isbn,subject,cover_i,edition_key,key,language,first_sentence"
IDENTITY_FIELDS = "key,title,author_name"
MAX_DOC_AUTHORS = 3
MAX_DOC_SUBJECTS = 12


class LookupUnavailable(Exception):
    """A catalog lookup failed (timeout, HTTP error, bad JSON) rather than finding nothing."""


@dataclass
class CatalogDocument:
    """One search-result document, reduced to what scoring and dedup need."""
    title: str
    authors: str
    identifier: Optional[str] = None
    subjects: List[str] = field(default_factory=list)
    work_key: Optional[str] = None
    description: Optional[str] = None
    languages: List[str] = field(default_factory=list)
    cover_url: Optional[str] = None
    edition_keys: List[str] = field(default_factory=list)

    @property
    def author_list(self) -> List[str]:
        return [a.strip() for a in self.authors.split(",") if a.strip()]


@dataclass
class CatalogCall:
    kind: str
    query: str
    limit: int
    got: int
    cached: bool = False
    error: Optional[str] = None


def normalize_isbn(raw: str) -> str:
    return "".join(ch for ch in (raw or "") if ch.isdigit() or ch in "xX").upper()


def best_isbn_from_doc(doc: Dict[str, Any]) -> Optional[str]:
    """Prefer an ISBN-13, else an ISBN-10; returned digits-only."""
    isbns = [normalize_isbn(str(x)) for x in (doc.get("isbn") or []) if x]
    for isbn in isbns:
        if len(isbn) == 13 and isbn.isdigit():
            return isbn
    for isbn in isbns:
        if len(isbn) == 10:
            return isbn
    return None


def work_key_from_doc(doc: Dict[str, Any]) -> Optional[str]:
    key = doc.get("key")
    if isinstance(key, str) and key.startswith("/works/"):
        return key
    return None


def authors_from_doc(doc: Dict[str, Any]) -> str:
    names = doc.get("author_name") or []
    if not isinstance(names, list):
        names = [str(names)]
    return ", ".join(str(n) for n in names[:MAX_DOC_AUTHORS] if n)


def subjects_from_doc(doc: Dict[str, Any]) -> List[str]:
    subjects = doc.get("subject") or []
    if not isinstance(subjects, list):
        return []
    return [str(s) for s in subjects[:MAX_DOC_SUBJECTS] if s]


def text_value(value: Any) -> Optional[str]:
    """Open Library text fields are either plain strings or {"type", "value"} objects."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, str):
        return value.strip() or None
    return None


def external_canonical_id(work: Optional[Dict[str, Any]]) -> Optional[str]:
    """Wikidata cross-reference on a work record, as "wd:Q..."."""
    if not work:
        return None
    identifiers = work.get("identifiers") or {}
    wikidata = identifiers.get("wikidata") if isinstance(identifiers, dict) else None
    if isinstance(wikidata, list) and wikidata:
        qid = str(wikidata[0]).strip()
        if qid.startswith("Q"):
            return f"wd:{qid}"
    return None


class OpenLibraryClient:
    """Thin, cached wrapper around the Open Library search/edition/work endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        covers_base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        search_timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        search_cache: Optional[Cache] = None,
        edition_cache: Optional[Cache] = None,
        work_cache: Optional[Cache] = None,
    ):
        self.base_url = (base_url or settings.OPENLIBRARY_BASE_URL).rstrip("/")
        self.covers_base_url = (covers_base_url or settings.COVERS_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.CATALOG_TIMEOUT_SECONDS
        self.search_timeout = search_timeout or settings.CATALOG_SEARCH_TIMEOUT_SECONDS
        self.headers = {"User-Agent": user_agent or settings.USER_AGENT, "Accept": "application/json"}
        self.search_cache = search_cache if search_cache is not None else TTLCache(
            settings.SEARCH_CACHE_MAX_ENTRIES, settings.SEARCH_CACHE_TTL_SECONDS
        )
        self.edition_cache = edition_cache if edition_cache is not None else MemoCache()
        self.work_cache = work_cache if work_cache is not None else MemoCache()

    def _get_json(self, url: str, timeout: float) -> Optional[Dict[str, Any]]:
        """
        Decoded JSON object for url.

        A 404 is a real "no such record" and gives None. Timeouts, other
        non-2xx statuses and undecodable bodies raise LookupUnavailable so
        callers can tell them apart from an empty answer and skip caching.
        """
        try:
            resp = requests.get(url, headers=self.headers, timeout=timeout)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            logger.warning("Open Library request failed for %s: %s", url, e)
            raise LookupUnavailable(url) from e
        except ValueError as e:
            logger.warning("Open Library returned invalid JSON for %s: %s", url, e)
            raise LookupUnavailable(url) from e
        return data if isinstance(data, dict) else None

    def cover_url(self, isbn: str) -> str:
        return f"{self.covers_base_url}/b/isbn/{quote(isbn)}-M.jpg"

    def _search_url(self, params: Dict[str, Any]) -> str:
        return f"{self.base_url}/search.json?{urlencode(params)}"

    def _cached_search(self, url: str) -> List[Dict[str, Any]]:
        """Raw docs for a search URL. Raises LookupUnavailable when the call failed."""
        cached = self.search_cache.get(url)
        if cached is not None:
            return cached

        data = self._get_json(url, self.search_timeout) or {}
        docs = data.get("docs") or []
        if not isinstance(docs, list):
            docs = []
        self.search_cache.set(url, docs)
        return docs

    def search(
        self,
        query: str,
        limit: int,
        kind: str = "query",
        call_log: Optional[List[CatalogCall]] = None,
    ) -> List[CatalogDocument]:
        """Free-text search, returning parsed candidate documents. Failures give []."""
        params = {"q": query, "mode": "everything", "limit": limit, "fields": SEARCH_FIELDS}
        url = self._search_url(params)
        was_cached = url in self.search_cache

        error = None
        try:
            docs = self._cached_search(url)
        except LookupUnavailable:
            docs = []
            error = "search failed"
        if call_log is not None:
            call_log.append(
                CatalogCall(
                    kind=kind,
                    query=query,
                    limit=limit,
                    got=len(docs),
                    cached=was_cached,
                    error=error,
                )
            )
        return [self.parse_doc(d) for d in docs if isinstance(d, dict)]

    def search_docs(self, query: str, limit: int = 6) -> List[Dict[str, Any]]:
        """Title/author search used for identity resolution (key, title, author_name)."""
        url = self._search_url({"q": query, "limit": limit, "fields": IDENTITY_FIELDS})
        return self._cached_search(url)

    def parse_doc(self, doc: Dict[str, Any]) -> CatalogDocument:
        isbn = best_isbn_from_doc(doc)
        cover_url = None
        if isbn:
            cover_url = self.cover_url(isbn)
        elif doc.get("cover_i"):
            cover_url = f"{self.covers_base_url}/b/id/{doc['cover_i']}-M.jpg"

        languages = doc.get("language") or []
        return CatalogDocument(
            title=str(doc.get("title") or "").strip(),
            authors=authors_from_doc(doc),
            identifier=isbn,
            subjects=subjects_from_doc(doc),
            work_key=work_key_from_doc(doc),
            description=text_value(doc.get("first_sentence")),
            languages=[str(x) for x in languages] if isinstance(languages, list) else [],
            cover_url=cover_url,
            edition_keys=[str(x) for x in (doc.get("edition_key") or [])][:5],
        )

    def fetch_by_identifier(self, isbn: str) -> Optional[Dict[str, Any]]:
        """Edition record for an ISBN, or None. Raises LookupUnavailable on failure (not cached)."""
        key = normalize_isbn(isbn)
        if not key:
            return None
        if key in self.edition_cache:
            return self.edition_cache.get(key)

        data = self._get_json(f"{self.base_url}/isbn/{quote(key)}.json", self.timeout)
        self.edition_cache.set(key, data)
        return data

    def fetch_work(self, work_key: str) -> Optional[Dict[str, Any]]:
        """Work record for "/works/OL...W", or None. Raises LookupUnavailable on failure (not cached)."""
        key = (work_key or "").strip()
        if not key.startswith("/works/"):
            return None
        if key in self.work_cache:
            return self.work_cache.get(key)

        data = self._get_json(f"{self.base_url}{key}.json", self.timeout)
        self.work_cache.set(key, data)
        return data
