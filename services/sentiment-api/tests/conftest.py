"""Shared fixtures: a tiny hand-built lexicon and stopword set so scoring
tests do not depend on the bundled dataset."""

import pytest

from sentiment_api.nodes.lexicon import LexiconIndex, StopwordSet

LEXICON_WORDS = {
    "love": 1,
    "great": 1,
    "good": 1,
    "hate": 2,
    "awful": 2,
    "slow": 2,
    "okay": 0,
}

STOPWORDS = ["i", "this", "but", "that", "the", "it", "is", "a", "and"]


@pytest.fixture
def lexicon():
    return LexiconIndex.from_words(LEXICON_WORDS)


@pytest.fixture
def stopwords():
    return StopwordSet.from_words(STOPWORDS)
