"""Tests for title/author normalization helpers."""
from bookvault.services.text_normalizer import (
    author_last_name,
    normalize,
    primary_author,
    primary_author_key,
    split_authors,
    title_token_key,
    title_tokens,
    token_overlap_ratio,
)


def test_normalize_strips_diacritics_quotes_and_punctuation():
    assert normalize("  Der Zauberberg: Roman  ") == "der zauberberg roman"
    assert normalize("Émile's «Café»") == "emiles cafe"
    assert normalize("Ça—va!") == "ca va"


def test_normalize_empty():
    assert normalize("") == ""
    assert normalize(None) == ""


def test_title_tokens_drop_multilingual_stopwords():
    assert title_tokens("The Name of the Rose") == ["name", "rose"]
    assert title_tokens("Der Name der Rose") == ["name", "rose"]
    assert title_tokens("Il nome della rosa") == ["nome", "della", "rosa"]


def test_title_token_key_keeps_first_ten_tokens():
    title = "one two three four five six seven eight nine ten eleven twelve"
    assert title_token_key(title) == "one two three four five six seven eight nine ten"


def test_title_token_key_of_stopword_only_title_is_empty():
    assert title_token_key("The And Of") == ""


def test_author_helpers():
    authors = "Thomas Mann, Erika Mann"
    assert split_authors(authors) == ["Thomas Mann", "Erika Mann"]
    assert primary_author(authors) == "Thomas Mann"
    assert primary_author_key("Günter Grass, X") == "gunter grass"
    assert author_last_name("Thomas Mann") == "Mann"
    assert author_last_name("") == ""
    assert split_authors(" , ") == []


def test_token_overlap_ratio():
    assert token_overlap_ratio(["a", "b"], ["a", "b"]) == 1.0
    assert token_overlap_ratio(["a", "b", "c", "d"], ["a", "b"]) == 0.5
    assert token_overlap_ratio([], ["a"]) == 0.0
