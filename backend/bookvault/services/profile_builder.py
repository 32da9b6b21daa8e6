"""
Taste profile from the caller's library.

Only read books seed the profile (liked-only by default). Each seed carries
one weight derived from its rating, and that same weight feeds subjects,
authors and story terms, so raising a rating never lowers any contribution.
"""
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from bookvault.core.config import settings
from bookvault.schemas.library import LibraryEntry, ReadingStatus
from bookvault.schemas.recommendation import AuthorWeight, ProfileSummary, SubjectWeight
from bookvault.services.text_normalizer import normalize, split_authors

logger = logging.getLogger(__name__)

TOP_SUBJECTS = 6
TOP_AUTHORS = 4
TOP_TERMS = 20
TOP_MOTIFS = 8
NORM_TERMS = 10
NORM_MOTIFS = 4
MOTIF_FACTOR = 1.5
MIN_TERM_LENGTH = 4

# Subjects that say little about taste; counted at a discount
GENERIC_SUBJECTS = {
    "fiction",
    "general",
    "novel",
    "novels",
    "literature",
    "classic",
    "classics",
    "romance",
    "roman",
    "romans",
    "literatur",
    "belletristik",
    "fiction in english",
    "english fiction",
    "american fiction",
    "fiction general",
    "literary fiction",
    "fiction literary",
    "large type books",
    "accessible book",
    "protected daisy",
    "in library",
    "open library staff picks",
    "nyt bestseller",
}

# Function words (EN/DE/FR/ES/IT) and catalog boilerplate ignored as story terms
STORY_STOPWORDS = {
    # English
    "this", "that", "with", "from", "into", "their", "there", "they", "them", "then", "than",
    "have", "has", "had", "been", "were", "was", "will", "would", "could", "should", "about",
    "after", "before", "when", "where", "which", "while", "what", "who", "whom", "whose",
    "your", "yours", "ours", "other", "some", "more", "most", "only", "over", "under", "also",
    "very", "just", "each", "every", "such", "through", "between", "because", "being", "these",
    "those", "here", "until", "upon", "against", "among", "many", "much", "does", "doing",
    # German
    "nicht", "eine", "einer", "einem", "einen", "eines", "sich", "auch", "noch", "nach",
    "oder", "aber", "wird", "werden", "wurde", "sind", "sein", "seine", "seiner", "ihre",
    "ihrer", "ihren", "dass", "diese", "dieser", "dieses", "durch", "gegen", "ohne", "unter",
    "zwischen", "wenn", "weil", "schon", "immer", "alle", "allem", "mehr", "doch", "kann",
    # French
    "dans", "pour", "avec", "sans", "sont", "elle", "elles", "leur", "leurs", "mais", "comme",
    "cette", "tout", "tous", "toute", "plus", "nous", "vous", "entre", "apres", "avant",
    # Spanish
    "para", "como", "pero", "esta", "este", "esto", "estos", "estas", "entre", "sobre",
    "donde", "cuando", "todo", "todos", "sino", "tiene", "desde", "hasta",
    # Italian
    "della", "delle", "degli", "nella", "nelle", "sono", "anche", "questo", "questa", "quando",
    "come", "tutto", "tutti", "dopo", "prima", "senza",
    # Catalog boilerplate
    "fiction", "general", "novel", "novels", "book", "books", "literature", "literary",
    "edition", "editions", "english", "german", "french", "spanish", "italian", "translation",
    "translations", "roman", "romane", "literatur", "belletristik", "classic", "classics",
    "story", "stories", "series", "volume", "library", "accessible", "protected", "daisy",
    "large", "type", "print", "reading", "level", "juvenile", "readers", "author", "authors",
    "bestseller", "award", "winner", "staff", "picks", "open",
}

# Motif -> cue tokens / phrases found in normalized text
MOTIF_KEYWORDS: Dict[str, List[str]] = {
    "coming of age": ["coming of age", "adolescence", "teenager", "teenagers", "growing up", "erwachsenwerden", "jugend", "bildungsroman"],
    "mentorship": ["mentor", "mentorship", "teacher", "apprentice", "lehrer", "lehrling"],
    "friendship": ["friendship", "friends", "friend", "freundschaft", "freunde", "amitie"],
    "grief and loss": ["grief", "loss", "mourning", "death", "dying", "trauer", "verlust", "tod"],
    "self discovery": ["self discovery", "identity crisis", "finding himself", "finding herself", "selbstfindung", "soul searching"],
    "literary world": ["writer", "writers", "novelist", "poet", "bookshop", "bookstore", "publishing", "schriftsteller", "buchhandlung"],
    "family": ["family", "families", "father", "mother", "brother", "sister", "familie", "vater", "mutter"],
    "love": ["love", "lovers", "romance", "liebe", "amour", "amor"],
    "war": ["war", "wars", "soldier", "soldiers", "battle", "krieg", "guerre", "guerra"],
    "identity": ["identity", "identitat", "belonging", "self"],
    "journey": ["journey", "voyage", "travel", "travels", "road trip", "reise", "quest"],
    "crime and mystery": ["crime", "murder", "detective", "mystery", "krimi", "mord", "detektiv", "thriller"],
}


@dataclass
class StoryProfile:
    terms: Dict[str, float] = field(default_factory=dict)
    motifs: Dict[str, float] = field(default_factory=dict)
    norm: float = 1.0


@dataclass
class Profile:
    liked_count: int = 0
    top_subjects: List[Tuple[str, float]] = field(default_factory=list)
    top_authors: List[Tuple[str, float]] = field(default_factory=list)
    story: StoryProfile = field(default_factory=StoryProfile)

    @property
    def is_empty(self) -> bool:
        return self.liked_count == 0

    def summary(self) -> ProfileSummary:
        return ProfileSummary(
            liked_count=self.liked_count,
            top_subjects=[SubjectWeight(subject=s, weight=round(w, 2)) for s, w in self.top_subjects],
            top_authors=[AuthorWeight(author=a, weight=round(w, 2)) for a, w in self.top_authors],
        )


def is_generic_subject(subject: str) -> bool:
    return normalize(subject) in GENERIC_SUBJECTS


def story_tokens(text: str) -> List[str]:
    return [t for t in normalize(text).split() if len(t) >= MIN_TERM_LENGTH and t not in STORY_STOPWORDS and not t.isdigit()]


def detect_motifs(text: str) -> List[str]:
    """Motifs whose cues occur in text, as a whole token or a phrase."""
    normalized = normalize(text)
    if not normalized:
        return []
    tokens = set(normalized.split())
    padded = f" {normalized} "
    found = []
    for motif, cues in MOTIF_KEYWORDS.items():
        for cue in cues:
            if (" " not in cue and cue in tokens) or (" " in cue and f" {cue} " in padded):
                found.append(motif)
                break
    return found


def extract_story_signals(text: str) -> Tuple[Counter, List[str]]:
    """Term counts and detected motifs for a blob of text."""
    return Counter(story_tokens(text)), detect_motifs(text)


def entry_weight(rating: Optional[int], min_rating: int) -> float:
    floor = max(1, min_rating)
    value = rating if rating is not None else floor
    return float(max(floor, min(10, value)))


def select_seeds(
    entries: Iterable[LibraryEntry],
    min_rating: int,
    seed_mode: str = "liked",
    selected_seed_ids: Optional[List[int]] = None,
) -> List[LibraryEntry]:
    seeds = []
    for entry in entries:
        if entry.status != ReadingStatus.READ:
            continue
        if seed_mode == "liked" and (entry.rating is None or entry.rating < min_rating):
            continue
        seeds.append(entry)

    if selected_seed_ids:
        wanted = set(selected_seed_ids)
        seeds = [e for e in seeds if e.id is not None and e.id in wanted]
    return seeds


def _top(weights: Dict[str, float], k: int) -> List[Tuple[str, float]]:
    ranked = sorted(((name, w) for name, w in weights.items() if w > 0), key=lambda x: (-x[1], x[0]))
    return ranked[:k]


def build_profile(
    entries: Iterable[LibraryEntry],
    min_rating: int,
    seed_mode: str = "liked",
    selected_seed_ids: Optional[List[int]] = None,
) -> Profile:
    seeds = select_seeds(entries, min_rating, seed_mode, selected_seed_ids)
    if not seeds:
        return Profile()

    subject_weights: Dict[str, float] = defaultdict(float)
    subject_labels: Dict[str, str] = {}
    author_weights: Dict[str, float] = defaultdict(float)
    term_weights: Dict[str, float] = defaultdict(float)
    motif_weights: Dict[str, float] = defaultdict(float)

    for entry in seeds:
        w = entry_weight(entry.rating, min_rating)

        entry_subjects: Dict[str, str] = {}
        for s in entry.subjects:
            key = normalize(s)
            if key and key not in entry_subjects:
                entry_subjects[key] = s.strip()
        for key, subject in entry_subjects.items():
            # First spelling seen is the one shown
            display = subject_labels.setdefault(key, subject)
            factor = settings.GENERIC_SUBJECT_DISCOUNT if is_generic_subject(display) else 1.0
            subject_weights[display] += w * factor

        for author in split_authors(entry.authors):
            author_weights[author] += w

        text = " ".join([entry.title, entry.description or "", entry.notes or "", " ".join(entry.subjects)])
        counts, motifs = extract_story_signals(text)
        for term, count in counts.items():
            term_weights[term] += count * w / 10
        for motif in motifs:
            motif_weights[motif] += MOTIF_FACTOR * w / 10

    terms = _top(term_weights, TOP_TERMS)
    motifs = _top(motif_weights, TOP_MOTIFS)
    norm = sum(w for _, w in terms[:NORM_TERMS]) + MOTIF_FACTOR * sum(w for _, w in motifs[:NORM_MOTIFS])

    profile = Profile(
        liked_count=len(seeds),
        top_subjects=_top(subject_weights, TOP_SUBJECTS),
        top_authors=_top(author_weights, TOP_AUTHORS),
        story=StoryProfile(terms=dict(terms), motifs=dict(motifs), norm=max(1.0, norm)),
    )
    logger.debug(
        "Profile built: seeds=%s subjects=%s authors=%s terms=%s motifs=%s",
        profile.liked_count,
        len(profile.top_subjects),
        len(profile.top_authors),
        len(profile.story.terms),
        len(profile.story.motifs),
    )
    return profile
