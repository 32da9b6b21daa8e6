"""Tests for preference keys and evaluation."""
from bookvault.services.preference_overlay import (
    PreferenceSignals,
    candidate_keys,
    evaluate,
    preference_key_for,
)


def test_candidate_keys_cover_all_identities():
    keys = candidate_keys("wd:Q1", "/works/OL1W", "Story B", "Author X", "978-0-00-000000-1")
    assert keys == ["wd:Q1", "ol:/works/OL1W", "na:author x|story b", "isbn:9780000000001"]
    assert candidate_keys(None, None, "", "", "") == []


def test_evaluate_dislike_and_block_exclude_like_boosts():
    keys = ["ol:/works/OL1W", "na:author x|story b"]
    assert evaluate(keys, PreferenceSignals(disliked_keys={"na:author x|story b"})) == "exclude"
    assert evaluate(keys, PreferenceSignals(blocked_keys={"ol:/works/OL1W"})) == "exclude"
    assert evaluate(keys, PreferenceSignals(liked_keys={"ol:/works/OL1W"})) == "boost"
    both = PreferenceSignals(liked_keys={"ol:/works/OL1W"}, disliked_keys={"ol:/works/OL1W"})
    assert evaluate(keys, both) == "exclude"
    assert evaluate(keys, PreferenceSignals()) is None


def test_preference_key_precedence():
    assert preference_key_for(rec_id="wd:Q1", work_key="/works/OL1W", title="T", authors="A") == "wd:Q1"
    assert preference_key_for(work_key="/works/OL1W", title="T", authors="A") == "ol:/works/OL1W"
    assert preference_key_for(work_key="na:a|t") == "na:a|t"
    assert preference_key_for(title="Story B", authors="Author X", isbn="1") == "na:author x|story b"
    assert preference_key_for(title="The", isbn="0-14-044913-2") == "isbn:0140449132"
    assert preference_key_for().startswith("manual:")
