"""Data models for the context-free sentiment pipeline."""

from dataclasses import dataclass, field
from enum import IntEnum


SENTIMENT_POSITIVE = "Positive"
SENTIMENT_NEGATIVE = "Negative"
SENTIMENT_NEUTRAL = "Neutral"


class SentimentTag(IntEnum):
    """Value stored against a word hash in the lexicon dataset."""

    NEUTRAL = 0
    POSITIVE = 1
    NEGATIVE = 2


@dataclass(frozen=True)
class Token:
    """One lexical unit produced by the tokenizer."""

    value: str
    tag: str  # "word" | "number" | "punctuation" | ...


@dataclass
class AggregationState:
    """Mutable accumulator owned by a single analysis request.

    The word collections are dicts used as insertion-ordered sets so the
    output keeps first-seen order.
    """

    positive_score: int = 0
    negative_score: int = 0
    positive_words: dict[str, None] = field(default_factory=dict)
    negative_words: dict[str, None] = field(default_factory=dict)
    unidentified_words: dict[str, None] = field(default_factory=dict)
    keywords: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PolarityResult:
    score: float
    sentiment: str


@dataclass(frozen=True)
class PlacedWord:
    """A keyword after layout assigned it a position on the canvas."""

    text: str
    font_size: float
    x: float
    y: float
    width: float
    height: float


@dataclass
class NodeMetrics:
    """Timing and stats for one pipeline node."""

    node_name: str
    node_type: str  # "scoring" | "rendering"
    duration_ms: int = 0
    items_processed: int = 0


@dataclass
class AnalysisResult:
    """Complete output of one single or batch analysis."""

    positive_score: int
    negative_score: int
    polarity_score: float
    sentiment: str
    positive_words: list[str] = field(default_factory=list)
    negative_words: list[str] = field(default_factory=list)
    unidentified_words: list[str] = field(default_factory=list)
    keywords: dict[str, int] = field(default_factory=dict)
    word_cloud: str = ""
    report: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialized form returned by the API (the timing report is
        internal and not included)."""
        return {
            "positive_score": self.positive_score,
            "negative_score": self.negative_score,
            "polarity_score": self.polarity_score,
            "sentiment": self.sentiment,
            "positive_words": list(self.positive_words),
            "negative_words": list(self.negative_words),
            "unidentified_words": list(self.unidentified_words),
            "keywords": dict(self.keywords),
            "word_cloud": self.word_cloud,
        }
