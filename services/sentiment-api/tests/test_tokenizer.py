import pytest

from sentiment_api.nodes.tokenizer import tokenize


def _pairs(text):
    return [(t.value, t.tag) for t in tokenize(text)]


def test_splits_words_and_punctuation():
    assert _pairs("I love this, but I hate that.") == [
        ("I", "word"),
        ("love", "word"),
        ("this", "word"),
        (",", "punctuation"),
        ("but", "word"),
        ("I", "word"),
        ("hate", "word"),
        ("that", "word"),
        (".", "punctuation"),
    ]


def test_contractions_hyphens_and_numbers_stay_whole():
    assert _pairs("Don't miss the well-known 3.14 deal, 1,000 sold!") == [
        ("Don't", "word"),
        ("miss", "word"),
        ("the", "word"),
        ("well-known", "word"),
        ("3.14", "number"),
        ("deal", "word"),
        (",", "punctuation"),
        ("1,000", "number"),
        ("sold", "word"),
        ("!", "punctuation"),
    ]


def test_special_tokens():
    tokens = _pairs("see https://example.com/x, mail bob@example.org @bob #fun :) 21st")
    assert ("https://example.com/x", "url") in tokens
    assert (",", "punctuation") in tokens
    assert ("bob@example.org", "email") in tokens
    assert ("@bob", "mention") in tokens
    assert ("#fun", "hashtag") in tokens
    assert (":)", "emoticon") in tokens
    assert ("21st", "ordinal") in tokens


def test_url_keeps_balanced_parentheses():
    assert _pairs("see https://a.b/c?d=(e) now") == [
        ("see", "word"),
        ("https://a.b/c?d=(e)", "url"),
        ("now", "word"),
    ]


def test_url_drops_unmatched_closing_parenthesis():
    assert _pairs("(https://a.b/c)") == [
        ("(", "punctuation"),
        ("https://a.b/c", "url"),
        (")", "punctuation"),
    ]


def test_no_case_normalisation():
    assert [t.value for t in tokenize("LOVE Love love")] == ["LOVE", "Love", "love"]


@pytest.mark.parametrize("text", [
    "",
    "   \n\t ",
    "...!!?",
    "Hello,   world!! It's   5pm -- ok?",
    "naïve café — “quoted” text…",
    "emoji 😀 and symbols $ % ^ + =",
])
def test_every_non_whitespace_character_is_covered(text):
    tokens = list(tokenize(text))
    assert "".join(t.value for t in tokens) == "".join(text.split())
    assert all(t.value and not any(ch.isspace() for ch in t.value) for t in tokens)


def test_empty_and_punctuation_only_input():
    assert list(tokenize("")) == []
    assert {t.tag for t in tokenize(" ?! ")} == {"punctuation"}


def test_symbols_are_tagged_separately():
    assert _pairs("$ +") == [("$", "symbol"), ("+", "symbol")]


def test_stream_is_restartable():
    stream = tokenize("good and bad")
    assert list(stream) == list(stream)
    assert len(list(stream)) == 3
