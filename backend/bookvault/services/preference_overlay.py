"""Stored like / dislike / block signals applied to candidates."""
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Set
import time

from bookvault.services.catalog_client import normalize_isbn
from bookvault.services.identity_resolver import fallback_key, work_canonical_key
from bookvault.services.text_normalizer import title_token_key

PreferenceDecision = Literal["exclude", "boost"]


@dataclass
class PreferenceSignals:
    liked_keys: Set[str] = field(default_factory=set)
    disliked_keys: Set[str] = field(default_factory=set)
    blocked_keys: Set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.liked_keys or self.disliked_keys or self.blocked_keys)


def candidate_keys(
    canonical_key: Optional[str],
    work_key: Optional[str],
    title: str,
    authors: str,
    isbn: Optional[str],
) -> List[str]:
    """Every key a stored signal may have been saved under for this candidate."""
    keys = []
    if canonical_key:
        keys.append(canonical_key)
    if work_key:
        keys.append(work_canonical_key(work_key))
    if title_token_key(title):
        keys.append(fallback_key(title, authors))
    clean_isbn = normalize_isbn(isbn or "")
    if clean_isbn:
        keys.append(f"isbn:{clean_isbn}")
    return list(dict.fromkeys(keys))


def evaluate(keys: List[str], signals: PreferenceSignals) -> Optional[PreferenceDecision]:
    """Dislike or block excludes; like boosts; otherwise no decision."""
    key_set = set(keys)
    if key_set & signals.disliked_keys or key_set & signals.blocked_keys:
        return "exclude"
    if key_set & signals.liked_keys:
        return "boost"
    return None


def preference_key_for(
    rec_id: Optional[str] = None,
    work_key: Optional[str] = None,
    title: str = "",
    authors: str = "",
    isbn: str = "",
) -> str:
    """Key a new signal is stored under: rec id > ol: > na: > isbn: > manual:."""
    if rec_id and rec_id.strip():
        return rec_id.strip()
    if work_key and work_key.strip():
        work_key = work_key.strip()
        # Already-prefixed keys (ol:/wd:/na:) are stored as given
        return work_canonical_key(work_key) if work_key.startswith("/") else work_key
    if title_token_key(title):
        return fallback_key(title, authors)
    clean_isbn = normalize_isbn(isbn)
    if clean_isbn:
        return f"isbn:{clean_isbn}"
    return f"manual:{int(time.time() * 1000)}"
