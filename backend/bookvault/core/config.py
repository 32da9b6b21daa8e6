from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import json
from pathlib import Path


class Settings(BaseSettings):
    # Database (preference / blocklist signals)
    DATABASE_URL: str = "sqlite:///./bookvault.db"

    # CORS - can be JSON string or comma-separated string
    CORS_ORIGINS: str = '["http://localhost:3000", "http://localhost:5173"]'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Open Library catalog
    OPENLIBRARY_BASE_URL: str = "https://openlibrary.org"
    COVERS_BASE_URL: str = "https://covers.openlibrary.org"
    USER_AGENT: str = "bookvault/1.0 (personal)"
    CATALOG_TIMEOUT_SECONDS: float = 12.0
    CATALOG_SEARCH_TIMEOUT_SECONDS: float = 15.0

    # Secondary identity source (cross-language canonical ids)
    WIKIDATA_ENABLED: bool = True
    WIKIDATA_API_URL: str = "https://www.wikidata.org/w/api.php"
    WIKIDATA_LANGUAGES: str = "en,de,fr,es,it"
    CANONICAL_MIN_SCORE: float = 0.75

    # Caching
    SEARCH_CACHE_TTL_SECONDS: int = 10 * 60
    SEARCH_CACHE_MAX_ENTRIES: int = 120

    # Fan-out limits
    CATALOG_QUERY_CONCURRENCY: int = 4
    OWNED_WORK_LOOKUP_CONCURRENCY: int = 8
    TITLE_LOOKUP_CONCURRENCY: int = 4
    REQUEST_DEADLINE_SECONDS: Optional[float] = 45.0

    # Scoring weights (story > topic > author)
    STORY_WEIGHT: float = 60.0
    TOPIC_WEIGHT: float = 28.0
    AUTHOR_WEIGHT: float = 12.0
    LANGUAGE_BONUS: float = 6.0
    PREFERRED_LANGUAGE: Optional[str] = "ger"
    GENERIC_SUBJECT_DISCOUNT: float = 0.2

    # Selection
    MAX_RECS_PER_PRIMARY_AUTHOR: int = 1
    LIKE_BOOST: float = 8.0

    model_config = SettingsConfigDict(
        # Load from backend/.env (relative to this file's parent's parent)
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not (self.STORY_WEIGHT > self.TOPIC_WEIGHT > self.AUTHOR_WEIGHT >= 0):
            raise RuntimeError(
                "Scoring weights must keep STORY_WEIGHT > TOPIC_WEIGHT > AUTHOR_WEIGHT >= 0 "
                f"(got {self.STORY_WEIGHT}/{self.TOPIC_WEIGHT}/{self.AUTHOR_WEIGHT})"
            )

        for name in ("CATALOG_QUERY_CONCURRENCY", "OWNED_WORK_LOOKUP_CONCURRENCY", "TITLE_LOOKUP_CONCURRENCY"):
            if getattr(self, name) < 1:
                raise RuntimeError(f"{name} must be at least 1")

        if self.MAX_RECS_PER_PRIMARY_AUTHOR < 1:
            raise RuntimeError("MAX_RECS_PER_PRIMARY_AUTHOR must be at least 1")

    @property
    def wikidata_languages_list(self) -> list[str]:
        return [lang.strip() for lang in self.WIKIDATA_LANGUAGES.split(",") if lang.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from JSON string or comma-separated string."""
        if not self.CORS_ORIGINS:
            return ["http://localhost:3000", "http://localhost:5173"]

        try:
            # Try parsing as JSON first
            parsed = json.loads(self.CORS_ORIGINS)
            if isinstance(parsed, list):
                return parsed
            # If it's a string, treat as single origin
            return [str(parsed)]
        except (json.JSONDecodeError, TypeError):
            # Fall back to comma-separated string
            origins = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
            return origins if origins else ["http://localhost:3000", "http://localhost:5173"]


settings = Settings()
