from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
from bookvault.schemas.library import LibraryEntry


class Reason(BaseModel):
    label: str
    detail: str


class SubjectWeight(BaseModel):
    subject: str
    weight: float


class AuthorWeight(BaseModel):
    author: str
    weight: float


class ProfileSummary(BaseModel):
    liked_count: int = 0
    top_subjects: List[SubjectWeight] = []
    top_authors: List[AuthorWeight] = []


class RecommendationItem(BaseModel):
    rec_id: str  # canonical key of the work
    work_key: Optional[str] = None
    isbn: str
    title: str
    authors: str
    cover_url: Optional[str] = None
    description: Optional[str] = None
    score: float
    reasons: List[Reason] = []
    subjects: List[str] = []
    language_match: bool = False
    literature_types: List[str] = []


class CatalogCallInfo(BaseModel):
    kind: str
    query: str
    limit: int
    got: int
    cached: bool = False
    error: Optional[str] = None


class DebugStats(BaseModel):
    """Per-stage counters, only returned when debug is requested."""
    entry_count: Optional[int] = None
    read_count: Optional[int] = None
    liked_count: Optional[int] = None
    top_subjects_count: Optional[int] = None
    top_authors_count: Optional[int] = None
    queries: Optional[int] = None
    catalog_calls: Optional[List[CatalogCallInfo]] = None
    docs_total: Optional[int] = None
    candidates_scored: Optional[int] = None
    owned_work_lookups_tried: Optional[int] = None
    owned_work_lookups_succeeded: Optional[int] = None
    owned_title_fallback_tried: Optional[int] = None
    owned_title_fallback_hit: Optional[int] = None
    owned_work_keys_count: Optional[int] = None
    owned_canonical_keys_count: Optional[int] = None
    dropped_type_filter: Optional[int] = None
    dropped_language_filter: Optional[int] = None
    dropped_owned_isbn: Optional[int] = None
    dropped_owned_title: Optional[int] = None
    dropped_owned_work: Optional[int] = None
    dropped_owned_canonical: Optional[int] = None
    dropped_preference: Optional[int] = None
    dropped_duplicate: Optional[int] = None
    dropped_author_cap: Optional[int] = None
    boosted_preference: Optional[int] = None
    deadline_hit: Optional[bool] = None
    total_ms: Optional[float] = None

    def bump(self, name: str, by: int = 1) -> None:
        setattr(self, name, (getattr(self, name) or 0) + by)


class RecommendationRequest(BaseModel):
    user_id: Optional[int] = None
    entries: List[LibraryEntry] = []
    min_rating: int = Field(4, ge=0, le=10)
    seed_mode: Literal["liked", "all_read"] = "liked"
    limit: int = Field(25, ge=10, le=50)
    selected_seed_ids: Optional[List[int]] = None
    types: Optional[List[Literal["fiction", "nonfiction", "selfhelp", "biography", "science"]]] = None
    preferred_language_only: bool = False


class RecommendationsResponse(BaseModel):
    ok: bool = True
    profile: ProfileSummary
    recommendations: List[RecommendationItem]
    debug: Optional[DebugStats] = None  # Only included when debug=true


class PreferenceFeedbackRequest(BaseModel):
    user_id: int
    action: str  # like | dislike
    rec_id: Optional[str] = None
    work_key: Optional[str] = None
    title: str = ""
    authors: str = ""
    isbn: str = ""


class PreferenceFeedbackResponse(BaseModel):
    ok: bool = True
    key: str
    action: Literal["like", "dislike"]


class BlockRequest(BaseModel):
    user_id: int
    rec_id: Optional[str] = None
    work_key: Optional[str] = None
    title: str = ""
    authors: str = ""
    isbn: str = ""


class BlockedItem(BaseModel):
    id: int
    work_key: str
    title: str
    authors: str
    isbn: str
    created_at: datetime


class BlocklistResponse(BaseModel):
    ok: bool = True
    items: List[BlockedItem]


class BlockResponse(BaseModel):
    ok: bool = True
    id: int
