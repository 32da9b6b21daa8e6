"""Tests for candidate scoring."""
import pytest

from bookvault.core.config import settings
from bookvault.services.candidate_scorer import (
    detect_language_match,
    literature_types,
    score_candidate,
)
from bookvault.services.profile_builder import build_profile
from conftest import make_doc, make_entry


@pytest.fixture
def profile():
    return build_profile(
        [make_entry("Node B", "Author X", rating=9, subjects=["grief", "fiction"])],
        min_rating=4,
    )


def test_related_candidate_outscores_unrelated(profile):
    related = make_doc("Quiet Days", "Author X", "9780000000010", subjects=["grief"])
    unrelated = make_doc("Gardening Basics", "Someone Else", "9780000000011", subjects=["gardening"])

    r = score_candidate(related, profile)
    u = score_candidate(unrelated, profile)

    assert r.score > u.score
    assert u.score == 0
    assert r.author == settings.AUTHOR_WEIGHT
    labels = [reason.label for reason in r.reasons]
    assert "Author match" in labels
    assert "Topic overlap" in labels


def test_components_respect_their_weights(profile):
    doc = make_doc("Node B Grief", "Author X", "9780000000012", subjects=["grief", "fiction"])
    result = score_candidate(doc, profile)
    assert 0 < result.story <= settings.STORY_WEIGHT
    assert 0 < result.topic <= settings.TOPIC_WEIGHT
    assert result.score == pytest.approx(result.story + result.topic + result.author)
    assert len(result.reasons) <= 3


def test_topic_credit_for_generic_subject_is_reduced(profile):
    specific = score_candidate(make_doc("A", "Z", "1", subjects=["grief"]), profile)
    generic = score_candidate(make_doc("A", "Z", "1", subjects=["fiction"]), profile)
    assert generic.topic == pytest.approx(specific.topic * 0.25)


def test_story_reason_prefers_motifs(profile):
    doc = make_doc("After", "Z", "1", description="A story of grief after a death in the family.")
    result = score_candidate(doc, profile)
    assert result.story > 0
    assert result.reasons[0].label == "Similar story"
    assert "grief and loss" in result.reasons[0].detail


def test_language_bonus_from_catalog_tag(profile):
    doc = make_doc("Trauer", "Author X", "1", subjects=["grief"], languages=["ger"])
    with_bonus = score_candidate(doc, profile, preferred_language="ger")
    without = score_candidate(doc, profile, preferred_language=None)
    assert with_bonus.language_match
    assert with_bonus.score - without.score == pytest.approx(settings.LANGUAGE_BONUS)


def test_language_bonus_carries_a_reason_after_the_others(profile):
    doc = make_doc("Elsewhere", "Author X", "9780000000013", languages=["ger"])
    result = score_candidate(doc, profile, preferred_language="ger")
    assert result.language_bonus == settings.LANGUAGE_BONUS
    assert [reason.label for reason in result.reasons] == ["Author match", "Language"]

    full = make_doc("Node B Grief", "Author X", "9780000000014", subjects=["grief"], languages=["ger"])
    result = score_candidate(full, profile, preferred_language="ger")
    assert result.language_match
    assert len(result.reasons) == 3
    assert "Language" not in [reason.label for reason in result.reasons]


def test_language_heuristic_without_tags():
    german = make_doc("Die Blechtrommel", "Günter Grass", "1", description="Der Roman erzählt die Geschichte von Oskar und der Trommel.")
    english = make_doc("The Tin Drum", "Günter Grass", "2", description="The story of a boy who refuses to grow.")
    assert detect_language_match(german, "ger")
    assert not detect_language_match(english, "ger")
    assert not detect_language_match(german, None)


def test_literature_types():
    assert literature_types(["Fiction", "Grief"]) == ["fiction"]
    assert literature_types(["Science fiction"]) == ["fiction"]
    assert literature_types(["Physics", "Popular science"]) == ["science"]
    assert literature_types(["Autobiography"]) == ["biography"]
    assert literature_types(["Self-help", "Happiness"]) == ["selfhelp"]
    assert literature_types(["History"]) == ["nonfiction"]
    assert literature_types([]) == []
