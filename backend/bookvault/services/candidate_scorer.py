"""
Candidate scoring against a taste profile.

score = story (0..STORY_WEIGHT) + topic (0..TOPIC_WEIGHT) + author (0 or AUTHOR_WEIGHT)
        + LANGUAGE_BONUS when the candidate is in the preferred language.
"""
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import List, Optional

from bookvault.core.config import settings
from bookvault.schemas.recommendation import Reason
from bookvault.services.catalog_client import CatalogDocument
from bookvault.services.profile_builder import (
    MOTIF_FACTOR,
    Profile,
    detect_motifs,
    is_generic_subject,
    story_tokens,
)
from bookvault.services.text_normalizer import normalize

logger = logging.getLogger(__name__)

MAX_REASONS = 3
GENERIC_TOPIC_CREDIT = 0.25
TOPIC_DIVISOR_CAP = 3
LANGUAGE_STOPWORD_RATIO = 0.15

# High-frequency function words per catalog language tag
LANGUAGE_STOPWORDS = {
    "ger": {"der", "die", "das", "und", "ist", "nicht", "ein", "eine", "mit", "sich", "von", "auf", "den", "dem", "des", "im", "zu", "fur", "uber", "auch", "wie"},
    "eng": {"the", "and", "of", "to", "is", "in", "that", "with", "for", "his", "her", "was", "on", "as", "by", "an"},
    "fre": {"le", "la", "les", "et", "est", "des", "une", "un", "du", "dans", "pour", "avec", "qui", "sur", "au", "aux"},
    "spa": {"el", "la", "los", "las", "y", "es", "una", "un", "del", "en", "por", "con", "que", "para", "su"},
    "ita": {"il", "lo", "la", "gli", "le", "e", "di", "una", "un", "del", "della", "che", "per", "con", "nel"},
}

# Characters that are a strong hint for the language
LANGUAGE_DIACRITICS = {
    "ger": "äöüß",
    "fre": "éèêàçœ",
    "spa": "ñáíóú¿¡",
    "ita": "àèìòù",
    "eng": "",
}

# Literature type -> subject cue words (normalized)
LITERATURE_TYPE_KEYWORDS = {
    "fiction": ["fiction", "novel", "novels", "roman", "stories", "fantasy", "mystery", "thriller", "science fiction", "romance", "belletristik", "erzahlungen"],
    "nonfiction": ["nonfiction", "non fiction", "history", "essays", "politics", "economics", "philosophy", "sachbuch", "journalism", "true crime"],
    "selfhelp": ["self help", "personal development", "self improvement", "motivation", "success", "happiness", "productivity", "ratgeber", "selbsthilfe"],
    "biography": ["biography", "autobiography", "memoir", "memoirs", "biographie", "biografie", "letters", "diaries"],
    "science": ["science", "physics", "biology", "chemistry", "astronomy", "mathematics", "evolution", "neuroscience", "naturwissenschaft", "medicine"],
}

_WORD_RE = re.compile(r"\w+", re.UNICODE)


@dataclass
class ScoreResult:
    score: float = 0.0
    reasons: List[Reason] = field(default_factory=list)
    story: float = 0.0
    topic: float = 0.0
    author: float = 0.0
    language_bonus: float = 0.0
    language_match: bool = False

    @property
    def relevance(self) -> float:
        return self.story + self.topic + self.author


def literature_types(subjects: List[str]) -> List[str]:
    """Literature types detected from subjects, in LITERATURE_TYPE_KEYWORDS order."""
    text = " " + " ".join(normalize(s) for s in subjects) + " "
    if not text.strip():
        return []
    # "science fiction" is a genre of fiction, not a science subject
    science_text = text.replace(" science fiction ", " fiction ")
    found = []
    for lit_type, cues in LITERATURE_TYPE_KEYWORDS.items():
        haystack = science_text if lit_type == "science" else text
        if any(f" {cue} " in haystack for cue in cues):
            found.append(lit_type)
    return found


def detect_language_match(candidate: CatalogDocument, preferred_language: Optional[str]) -> bool:
    """Explicit catalog language tag first, then a stopword/diacritic heuristic."""
    if not preferred_language:
        return False
    lang = preferred_language.lower()
    if candidate.languages:
        return lang in {str(x).lower() for x in candidate.languages}

    stopwords = LANGUAGE_STOPWORDS.get(lang)
    if not stopwords:
        return False

    raw = " ".join(x for x in (candidate.title, candidate.description or "") if x).lower()
    words = _WORD_RE.findall(raw)
    if not words:
        return False
    folded = ["".join(c for c in unicodedata.normalize("NFKD", w) if not unicodedata.combining(c)) for w in words]
    hits = sum(1 for w in folded if w in stopwords)
    marks = LANGUAGE_DIACRITICS.get(lang, "")
    has_marks = bool(marks) and any(ch in marks for ch in raw)

    ratio = hits / len(words)
    if ratio >= LANGUAGE_STOPWORD_RATIO:
        return True
    return has_marks and hits > 0


def _story_component(candidate: CatalogDocument, profile: Profile):
    text = " ".join([candidate.title, " ".join(candidate.subjects), candidate.description or ""])
    terms = set(story_tokens(text))
    motifs = detect_motifs(text)

    matched_terms = sorted((t for t in terms if t in profile.story.terms), key=lambda t: (-profile.story.terms[t], t))
    matched_motifs = sorted((m for m in motifs if m in profile.story.motifs), key=lambda m: (-profile.story.motifs[m], m))

    raw = sum(profile.story.terms[t] for t in matched_terms)
    raw += MOTIF_FACTOR * sum(profile.story.motifs[m] for m in matched_motifs)
    ratio = min(1.0, max(0.0, raw / profile.story.norm))
    return ratio * settings.STORY_WEIGHT, matched_terms, matched_motifs


def _topic_component(candidate: CatalogDocument, profile: Profile):
    if not profile.top_subjects:
        return 0.0, []
    cand = {normalize(s) for s in candidate.subjects}
    credit = 0.0
    hits = []
    for subject, _ in profile.top_subjects:
        if normalize(subject) in cand:
            credit += GENERIC_TOPIC_CREDIT if is_generic_subject(subject) else 1.0
            hits.append(subject)
    ratio = min(1.0, credit / min(TOPIC_DIVISOR_CAP, len(profile.top_subjects)))
    return ratio * settings.TOPIC_WEIGHT, hits


def _author_component(candidate: CatalogDocument, profile: Profile):
    cand = {normalize(a) for a in candidate.author_list}
    for author, _ in profile.top_authors:
        if normalize(author) in cand:
            return settings.AUTHOR_WEIGHT, author
    return 0.0, None


def score_candidate(
    candidate: CatalogDocument,
    profile: Profile,
    preferred_language: Optional[str] = None,
) -> ScoreResult:
    story, terms, motifs = _story_component(candidate, profile)
    topic, subject_hits = _topic_component(candidate, profile)
    author, author_hit = _author_component(candidate, profile)

    language_match = detect_language_match(candidate, preferred_language)
    bonus = settings.LANGUAGE_BONUS if language_match else 0.0

    reasons: List[Reason] = []
    if story > 0:
        if motifs:
            reasons.append(Reason(label="Similar story", detail=f"Shares themes you enjoy: {', '.join(motifs[:2])}"))
        else:
            reasons.append(Reason(label="Similar story", detail=f"Story elements like {', '.join(terms[:3])}"))
    if topic > 0:
        reasons.append(Reason(label="Topic overlap", detail=f"Matches \"{subject_hits[0]}\", frequent in your top books"))
    if author > 0:
        reasons.append(Reason(label="Author match", detail=f"{author_hit} appears strongly in your profile"))
    # Last, so the cut to MAX_REASONS drops it first
    if bonus > 0:
        reasons.append(Reason(label="Language", detail="Available in your preferred language"))

    return ScoreResult(
        score=story + topic + author + bonus,
        reasons=reasons[:MAX_REASONS],
        story=story,
        topic=topic,
        author=author,
        language_bonus=bonus,
        language_match=language_match,
    )
