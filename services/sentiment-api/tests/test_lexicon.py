import json

import pytest

from sentiment_api.models import SentimentTag
from sentiment_api.nodes.lexicon import (
    LexiconIndex,
    LexiconLoadError,
    StopwordSet,
    hash_word,
    load_lexicon,
    load_stopwords,
)


def test_hash_is_deterministic_128_bit():
    h = hash_word("love")
    assert h == hash_word("love")
    assert h != hash_word("Love")
    assert 0 <= h < 2 ** 128


def test_lookup_hits_and_misses(lexicon):
    assert lexicon.lookup(hash_word("love")) is SentimentTag.POSITIVE
    assert lexicon.lookup(hash_word("hate")) is SentimentTag.NEGATIVE
    assert lexicon.lookup(hash_word("okay")) is SentimentTag.NEUTRAL
    assert lexicon.lookup(hash_word("table")) is None


def test_from_words_lowercases_keys():
    index = LexiconIndex.from_words({"Great": 1})
    assert index.lookup(hash_word("great")) is SentimentTag.POSITIVE


def test_stopword_set(stopwords):
    assert stopwords.contains(hash_word("this"))
    assert not stopwords.contains(hash_word("love"))
    assert StopwordSet.from_words([" The ", "", "  "]).contains(hash_word("the"))


@pytest.mark.asyncio
async def test_load_hashed_and_plain_keys(tmp_path):
    path = tmp_path / "lexicon.json"
    path.write_text(json.dumps({str(hash_word("love")): 1, "awful": 2}))

    index = await load_lexicon(path)

    assert len(index) == 2
    assert index.lookup(hash_word("love")) is SentimentTag.POSITIVE
    assert index.lookup(hash_word("awful")) is SentimentTag.NEGATIVE


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [
    '{"love": 5}',
    '{"love": "positive"}',
    '{"love": true}',
    '{"love": 1.0}',
    '["love"]',
    "{not json",
])
async def test_bad_lexicon_is_fatal(tmp_path, content):
    path = tmp_path / "lexicon.json"
    path.write_text(content)
    with pytest.raises(LexiconLoadError):
        await load_lexicon(path)


@pytest.mark.asyncio
async def test_missing_file_is_fatal(tmp_path):
    with pytest.raises(LexiconLoadError):
        await load_lexicon(tmp_path / "nope.json")
    with pytest.raises(LexiconLoadError):
        await load_stopwords(tmp_path / "nope.txt")


@pytest.mark.asyncio
async def test_load_stopwords_skips_comments(tmp_path):
    path = tmp_path / "stopwords.txt"
    path.write_text("# header\nThe\n\n  and  \n")

    stopwords = await load_stopwords(path)

    assert len(stopwords) == 2
    assert stopwords.contains(hash_word("the"))
    assert stopwords.contains(hash_word("and"))


@pytest.mark.asyncio
async def test_bundled_datasets_load():
    index = await load_lexicon()
    stopwords = await load_stopwords()

    assert index.lookup(hash_word("love")) is SentimentTag.POSITIVE
    assert index.lookup(hash_word("hate")) is SentimentTag.NEGATIVE
    assert stopwords.contains(hash_word("the"))
    assert not stopwords.contains(hash_word("love"))
