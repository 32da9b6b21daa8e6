"""
Shared service instances for FastAPI dependencies.

Caches live on these singletons so they persist across requests. Tests swap
them out through app.dependency_overrides.
"""
from functools import lru_cache
import logging

from bookvault.core.config import settings
from bookvault.services.cache import MemoCache, TTLCache
from bookvault.services.catalog_client import OpenLibraryClient
from bookvault.services.identity_resolver import IdentityResolver
from bookvault.services.wikidata_client import WikidataClient

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_catalog_client() -> OpenLibraryClient:
    return OpenLibraryClient(
        search_cache=TTLCache(settings.SEARCH_CACHE_MAX_ENTRIES, settings.SEARCH_CACHE_TTL_SECONDS),
        edition_cache=MemoCache(),
        work_cache=MemoCache(),
    )


@lru_cache(maxsize=1)
def get_identity_resolver() -> IdentityResolver:
    cross_reference = None
    if settings.WIKIDATA_ENABLED:
        cross_reference = WikidataClient()
    else:
        logger.info("Wikidata cross-reference disabled, canonical keys fall back to ol:/na:")
    return IdentityResolver(get_catalog_client(), cross_reference=cross_reference)
