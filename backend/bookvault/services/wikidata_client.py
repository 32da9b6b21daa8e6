"""
Wikidata entity search, used as the cross-language identity source.

A translated edition usually carries a different title, ISBN and even a
different Open Library work, but Wikidata labels the literary work in many
languages under one Q-id. resolve_by_title_author() searches the labels in
each configured language and accepts the best hit only when it scores above
CANONICAL_MIN_SCORE.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol

import requests

from bookvault.core.config import settings
from bookvault.services.cache import Cache, MemoCache
from bookvault.services.catalog_client import LookupUnavailable
from bookvault.services.text_normalizer import (
    author_last_name,
    normalize,
    primary_author,
    primary_author_key,
    title_token_key,
    title_tokens,
    token_overlap_ratio,
)

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 7
TITLE_WEIGHT = 0.6
AUTHOR_WEIGHT = 0.3
WORK_WEIGHT = 0.1

# Description words that mark an entity as a written work
WORK_MARKERS = {
    "novel", "book", "novella", "short story", "literary work", "written work", "memoir",
    "roman", "buch", "erzahlung", "novelle",
    "livre", "recit",
    "novela", "libro",
    "romanzo", "racconto",
}


class CrossReferenceSource(Protocol):
    """Capability interface for a secondary canonical-id source."""

    def resolve_by_title_author(self, title: str, authors: str) -> Optional[str]: ...


def score_hit(hit: Dict[str, Any], title: str, authors: str) -> float:
    """Score one search hit in [0, 1] against the wanted title and author."""
    label = str(hit.get("label") or "")
    description = normalize(str(hit.get("description") or ""))

    if title_token_key(label) and title_token_key(label) == title_token_key(title):
        title_score = 1.0
    else:
        title_score = token_overlap_ratio(title_tokens(title), title_tokens(label))

    author_score = 0.0
    last_name = normalize(author_last_name(primary_author(authors)))
    if last_name and last_name in description.split(" "):
        author_score = 1.0

    work_score = 1.0 if any(marker in description for marker in WORK_MARKERS) else 0.0

    return TITLE_WEIGHT * title_score + AUTHOR_WEIGHT * author_score + WORK_WEIGHT * work_score


class WikidataClient:
    def __init__(
        self,
        api_url: Optional[str] = None,
        languages: Optional[List[str]] = None,
        min_score: Optional[float] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        cache: Optional[Cache] = None,
    ):
        self.api_url = api_url or settings.WIKIDATA_API_URL
        self.languages = languages or settings.wikidata_languages_list
        self.min_score = settings.CANONICAL_MIN_SCORE if min_score is None else min_score
        self.timeout = timeout or settings.CATALOG_TIMEOUT_SECONDS
        self.headers = {"User-Agent": user_agent or settings.USER_AGENT}
        self.cache = cache if cache is not None else MemoCache()

    def search_by_title(self, title: str, lang: str) -> List[Dict[str, Any]]:
        """[{id, label, description}] for a label search in one language. Raises LookupUnavailable on failure."""
        params = {
            "action": "wbsearchentities",
            "search": title,
            "language": lang,
            "uselang": lang,
            "type": "item",
            "limit": SEARCH_LIMIT,
            "format": "json",
        }
        try:
            resp = requests.get(self.api_url, params=params, headers=self.headers, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Wikidata search failed for '%s' (%s): %s", title, lang, e)
            raise LookupUnavailable(self.api_url) from e

        hits = data.get("search") if isinstance(data, dict) else None
        if not isinstance(hits, list):
            return []
        return [
            {"id": h.get("id"), "label": h.get("label"), "description": h.get("description")}
            for h in hits
            if isinstance(h, dict) and h.get("id")
        ]

    def resolve_by_title_author(self, title: str, authors: str) -> Optional[str]:
        """
        Best "wd:Q..." id across languages, or None when nothing clears the threshold.

        A language whose search failed is skipped. If no id is found and any
        search failed, LookupUnavailable is raised and nothing is cached.
        """
        if not title_token_key(title):
            return None

        key = (title_token_key(title), primary_author_key(authors))
        if key in self.cache:
            return self.cache.get(key)

        best_id: Optional[str] = None
        best_score = 0.0
        unavailable: Optional[LookupUnavailable] = None
        for lang in self.languages:
            try:
                hits = self.search_by_title(title, lang)
            except LookupUnavailable as e:
                unavailable = e
                continue
            for hit in hits:
                score = score_hit(hit, title, authors)
                if score > best_score:
                    best_score = score
                    best_id = str(hit["id"])
            if best_score >= TITLE_WEIGHT + AUTHOR_WEIGHT:
                break

        result = f"wd:{best_id}" if best_id and best_score >= self.min_score else None
        logger.debug("Wikidata resolve '%s' / '%s' -> %s (score=%.2f)", title, authors, result, best_score)
        if result is None and unavailable is not None:
            raise unavailable
        self.cache.set(key, result)
        return result
