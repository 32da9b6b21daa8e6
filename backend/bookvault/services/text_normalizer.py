"""
Text normalization for titles and author strings.

Every function here is pure; the same input always yields the same output,
which the dedup keys and tests rely on.
"""
import re
import unicodedata
from typing import List

_QUOTES_RE = re.compile(r"[’‘'\"“”„«»]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

# Articles, conjunctions and short prepositions (EN, DE, FR, ES, IT)
TITLE_STOPWORDS = {
    "the", "a", "an", "and", "or", "of", "to", "in", "on", "for", "with",
    "der", "die", "das", "ein", "eine", "und", "oder", "von", "zu", "mit", "im", "am",
    "le", "la", "les", "de", "des", "du", "et", "un", "une",
    "el", "los", "las", "del", "y", "una",
    "il", "lo", "gli", "i", "dei", "degli", "e",
}

TITLE_KEY_TOKENS = 10


def normalize(text: str) -> str:
    """Lowercase, strip diacritics, quotes and punctuation, collapse whitespace."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _QUOTES_RE.sub("", stripped)
    return _NON_ALNUM_RE.sub(" ", stripped).strip()


def title_tokens(title: str) -> List[str]:
    return [t for t in normalize(title).split(" ") if t and t not in TITLE_STOPWORDS]


def title_token_key(title: str) -> str:
    """Near-duplicate fingerprint: first ten non-stopword title tokens."""
    return " ".join(title_tokens(title)[:TITLE_KEY_TOKENS])


def split_authors(authors: str) -> List[str]:
    return [a.strip() for a in (authors or "").split(",") if a.strip()]


def primary_author(authors: str) -> str:
    return (authors or "").split(",")[0].strip()


def primary_author_key(authors: str) -> str:
    return normalize(primary_author(authors))


def author_last_name(author: str) -> str:
    parts = (author or "").strip().split()
    return parts[-1] if parts else ""


def token_overlap_ratio(a: List[str], b: List[str]) -> float:
    """|A & B| / max(|A|, |B|) over the token sets."""
    set_a, set_b = set(a), set(b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / max(len(set_a), len(set_b))
