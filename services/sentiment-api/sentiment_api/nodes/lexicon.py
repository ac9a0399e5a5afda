"""Lexicon Index and Stopword Set.

Both tables are keyed by the XXH3-128 hash of the lowercased UTF-8 word and
are built once at startup, then only read.  Datasets may ship either
precomputed hashes (decimal strings, as produced by the upstream lexicon
build) or plain words that are hashed while loading.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Mapping

import aiofiles
import xxhash

from ..models import SentimentTag

log = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_LEXICON_PATH = DATA_DIR / "lexicon.json"
DEFAULT_STOPWORDS_PATH = DATA_DIR / "stopwords.txt"


class LexiconLoadError(RuntimeError):
    """The lexicon or stopword dataset could not be loaded."""


def hash_word(word: str) -> int:
    """128-bit XXH3 hash (seed 0) of *word* encoded as UTF-8."""
    return xxhash.xxh3_128_intdigest(word.encode("utf-8"))


class LexiconIndex:
    """Read-only mapping from word hash to ``SentimentTag``."""

    def __init__(self, entries: Mapping[int, SentimentTag]):
        self._entries: dict[int, SentimentTag] = dict(entries)

    def lookup(self, word_hash: int) -> SentimentTag | None:
        return self._entries.get(word_hash)

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_words(cls, words: Mapping[str, int]) -> LexiconIndex:
        """Build an index from a plain ``word -> tag`` mapping."""
        return cls(_parse_entries(words))


class StopwordSet:
    """Read-only set of hashed stopwords."""

    def __init__(self, hashes: Iterable[int]):
        self._hashes = frozenset(hashes)

    def contains(self, word_hash: int) -> bool:
        return word_hash in self._hashes

    def __len__(self) -> int:
        return len(self._hashes)

    @classmethod
    def from_words(cls, words: Iterable[str]) -> StopwordSet:
        return cls(hash_word(w.strip().lower()) for w in words if w.strip())


async def load_lexicon(path: str | Path = DEFAULT_LEXICON_PATH) -> LexiconIndex:
    """Read a JSON lexicon dataset into a ``LexiconIndex``.

    Raises ``LexiconLoadError`` for unreadable files, invalid JSON, or tag
    values outside 0/1/2.
    """
    raw = await _read_text(path)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LexiconLoadError(f"Lexicon {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LexiconLoadError(f"Lexicon {path} must be a JSON object")

    index = LexiconIndex(_parse_entries(data))
    log.info("Loaded lexicon from %s (%d entries)", path, len(index))
    return index


async def load_stopwords(path: str | Path = DEFAULT_STOPWORDS_PATH) -> StopwordSet:
    """Read a newline-separated stopword file.  Blank lines and lines
    starting with ``#`` are ignored."""
    raw = await _read_text(path)
    words = [
        line.strip()
        for line in raw.splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]
    stopwords = StopwordSet.from_words(words)
    log.info("Loaded stopwords from %s (%d entries)", path, len(stopwords))
    return stopwords


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _read_text(path: str | Path) -> str:
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise LexiconLoadError(f"Cannot read dataset {path}: {e}") from e


def _parse_entries(data: Mapping[str, int]) -> dict[int, SentimentTag]:
    """Turn dataset keys into hashes: all-digit keys are taken as
    precomputed hashes, anything else is hashed as a word."""
    entries: dict[int, SentimentTag] = {}
    for key, value in data.items():
        # Tags are JSON integers; true and 1.0 would otherwise coerce to POSITIVE.
        if isinstance(value, bool) or not isinstance(value, int):
            raise LexiconLoadError(f"Invalid sentiment tag {value!r} for {key!r}")
        try:
            tag = SentimentTag(value)
        except ValueError:
            raise LexiconLoadError(f"Invalid sentiment tag {value!r} for {key!r}") from None
        key = str(key)
        word_hash = int(key) if key.isascii() and key.isdigit() else hash_word(key.lower())
        entries[word_hash] = tag
    return entries
