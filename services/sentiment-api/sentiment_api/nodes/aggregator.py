"""Node 2 — Scoring Aggregator.

Walks the word tokens of one comment, classifies each against the lexicon
and folds the outcome into the request's ``AggregationState``.  A batch
request calls this once per comment with the same state.
"""

from __future__ import annotations

import logging

from ..models import AggregationState, SentimentTag
from ..timing import timed_node
from .lexicon import LexiconIndex, StopwordSet, hash_word
from .tokenizer import WORD, tokenize

log = logging.getLogger(__name__)


@timed_node("aggregator", "scoring")
def accumulate(
    comment: str,
    state: AggregationState,
    lexicon: LexiconIndex,
    stopwords: StopwordSet,
) -> AggregationState:
    """Score every word of *comment* into *state*.

    Positive and negative matches bump their counters and word sets;
    words missing from the lexicon are recorded as unidentified.  Words
    tagged neutral in the dataset are known but contribute nothing.
    Every non-stopword, matched or not, counts towards the keyword table.

    Modifies *state* in place and returns it.
    """
    for token in tokenize(comment):
        if token.tag != WORD:
            continue

        word = token.value.lower()
        word_hash = hash_word(word)
        tag = lexicon.lookup(word_hash)

        if tag is None:
            state.unidentified_words[word] = None
        elif tag == SentimentTag.POSITIVE:
            state.positive_score += 1
            state.positive_words[word] = None
        elif tag == SentimentTag.NEGATIVE:
            state.negative_score += 1
            state.negative_words[word] = None

        if not stopwords.contains(word_hash):
            state.keywords[word] = state.keywords.get(word, 0) + 1

    return state
