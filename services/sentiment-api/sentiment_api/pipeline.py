"""Pipeline orchestrator.

Runs the context-free analysis nodes in sequence for one request:

1. aggregator  — once per comment, into a single shared state
2. polarity    — once, after every comment is in
3. top_k       — reduce the keyword table to ``keyword_limit`` entries
4. word_cloud  — lay out and render the selected keywords

Node timings are collected into a report that is logged with the summary.
Scoring is pure computation over the received text; any exception raised
here is a bug and propagates to the caller.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .models import AggregationState, AnalysisResult
from .nodes import aggregator, polarity, top_k, word_cloud
from .nodes.lexicon import LexiconIndex, StopwordSet
from .timing import build_report, collect_metrics

log = logging.getLogger(__name__)

KEYWORD_LIMIT = 20
MAX_KEYWORDS = 20


def analyze_single(
    comment: str,
    lexicon: LexiconIndex,
    stopwords: StopwordSet,
    keyword_limit: int = KEYWORD_LIMIT,
) -> AnalysisResult:
    """Analyse one comment."""
    return run_pipeline([comment], lexicon, stopwords, keyword_limit)


def analyze_batch(
    comments: Iterable[str],
    lexicon: LexiconIndex,
    stopwords: StopwordSet,
    keyword_limit: int = KEYWORD_LIMIT,
) -> AnalysisResult:
    """Analyse several comments as one body of text.

    Equivalent to ``analyze_single`` over the space-joined comments.
    """
    return run_pipeline(comments, lexicon, stopwords, keyword_limit)


def run_pipeline(
    comments: Iterable[str],
    lexicon: LexiconIndex,
    stopwords: StopwordSet,
    keyword_limit: int = KEYWORD_LIMIT,
) -> AnalysisResult:
    """Run every node over *comments* and build the ``AnalysisResult``.

    At most ``MAX_KEYWORDS`` keywords are kept whatever *keyword_limit* asks.
    """
    state = AggregationState()
    comment_count = 0

    with collect_metrics() as metrics:
        for comment in comments:
            aggregator.accumulate(comment, state, lexicon, stopwords)
            comment_count += 1

        verdict = polarity.finalize(state)
        keywords = top_k.select_top_k(state.keywords, min(keyword_limit, MAX_KEYWORDS))
        svg = word_cloud.generate_word_cloud(keywords)

    report = build_report(metrics)

    log.info(
        "Pipeline complete: %d comment(s), +%d/-%d, polarity=%.3f (%s), "
        "%d keywords of %d | total=%dms (scoring=%dms, rendering=%dms)",
        comment_count, state.positive_score, state.negative_score,
        verdict.score, verdict.sentiment,
        len(keywords), len(state.keywords),
        report["total_duration_ms"],
        report["scoring_duration_ms"],
        report["rendering_duration_ms"],
    )

    return AnalysisResult(
        positive_score=state.positive_score,
        negative_score=state.negative_score,
        polarity_score=verdict.score,
        sentiment=verdict.sentiment,
        positive_words=list(state.positive_words),
        negative_words=list(state.negative_words),
        unidentified_words=list(state.unidentified_words),
        keywords=keywords,
        word_cloud=svg,
        report=report,
    )
