"""Node 5 — Word-Cloud Layout.

Places keywords on a fixed canvas by walking an Archimedean spiral out
from the centre and renders the result as a self-contained SVG string.

The layout is deterministic: the same keywords and frequencies always give
the same placements and colours.  Packing is best effort; a word that finds
no free spot before the spiral reaches its radius cap is left out.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping
from xml.sax.saxutils import escape, quoteattr

from ..models import PlacedWord
from ..timing import timed_node

log = logging.getLogger(__name__)

CANVAS_WIDTH = 500
CANVAS_HEIGHT = 500
PADDING = 2
MARGIN = 10

MIN_FONT_SIZE = 14
MAX_FONT_SIZE = 50
UNIFORM_FONT_SIZE = 25        # every keyword has the same frequency
WIDTH_FACTOR = 0.6            # average glyph width relative to font size
BASELINE_FACTOR = 0.8

ANGLE_STEP = 0.15             # radians per spiral step
RADIUS_STEP = 0.4             # pixels per spiral step
MAX_RADIUS = max(CANVAS_WIDTH, CANVAS_HEIGHT) * 0.7

FONT_FAMILY = "Segoe UI, Roboto, Helvetica, Arial, sans-serif"
PALETTE = (
    "#6366f1",
    "#8b5cf6",
    "#ec4899",
    "#f43f5e",
    "#f59e0b",
    "#10b981",
    "#3b82f6",
)


@timed_node("word_cloud", "rendering")
def generate_word_cloud(keywords: Mapping[str, int]) -> str:
    """Lay out *keywords* and return the SVG markup."""
    placed = layout(keywords)
    if len(placed) < len(keywords):
        log.info("Word cloud placed %d/%d keywords", len(placed), len(keywords))
    return render_svg(placed)


def layout(keywords: Mapping[str, int]) -> list[PlacedWord]:
    """Assign non-overlapping positions to *keywords*, most frequent first."""
    words = sorted(keywords.items(), key=lambda item: item[1], reverse=True)
    if not words:
        return []

    max_freq = words[0][1]
    min_freq = words[-1][1]

    placed: list[PlacedWord] = []
    for text, freq in words:
        font_size = font_size_for(freq, min_freq, max_freq)
        width = len(text) * font_size * WIDTH_FACTOR
        height = font_size

        position = _find_position(width, height, placed)
        if position is None:
            log.debug("No room for %r (font %.1f)", text, font_size)
            continue

        x, y = position
        placed.append(PlacedWord(text, font_size, x, y, width, height))

    return placed


def font_size_for(freq: int, min_freq: int, max_freq: int) -> float:
    """Map *freq* linearly onto ``[MIN_FONT_SIZE, MAX_FONT_SIZE]``."""
    if max_freq == min_freq:
        return UNIFORM_FONT_SIZE
    span = MAX_FONT_SIZE - MIN_FONT_SIZE
    return MIN_FONT_SIZE + (freq - min_freq) / (max_freq - min_freq) * span


def collides(
    x: float, y: float, width: float, height: float, other: PlacedWord
) -> bool:
    """True if the padded box at (x, y) overlaps *other*'s padded box."""
    return (
        x < other.x + other.width + PADDING
        and x + width + PADDING > other.x
        and y < other.y + other.height + PADDING
        and y + height + PADDING > other.y
    )


def fits_canvas(x: float, y: float, width: float, height: float) -> bool:
    return (
        x >= MARGIN
        and x + width <= CANVAS_WIDTH - MARGIN
        and y >= MARGIN
        and y + height <= CANVAS_HEIGHT - MARGIN
    )


def render_svg(placed: list[PlacedWord]) -> str:
    """Emit one ``<text>`` element per placed word, colours cycling
    through ``PALETTE`` in placement order."""
    elements = []
    for index, word in enumerate(placed):
        color = PALETTE[index % len(PALETTE)]
        baseline = word.y + word.height * BASELINE_FACTOR
        elements.append(
            f'<text x="{_fmt(word.x)}" y="{_fmt(baseline)}" '
            f"font-family={quoteattr(FONT_FAMILY)} "
            f'font-size="{_fmt(word.font_size)}" fill="{color}" '
            f'font-weight="bold">{escape(word.text)}</text>'
        )

    body = "\n    ".join(elements)
    return (
        f'<svg width="{CANVAS_WIDTH}" height="{CANVAS_HEIGHT}" '
        f'viewBox="0 0 {CANVAS_WIDTH} {CANVAS_HEIGHT}" '
        f'xmlns="http://www.w3.org/2000/svg" style="background-color: transparent;">\n'
        f"    {body}\n"
        f"</svg>"
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _find_position(
    width: float, height: float, placed: list[PlacedWord]
) -> tuple[float, float] | None:
    """Walk the spiral until a free, in-bounds spot turns up.

    The radius cap bounds the walk to ``MAX_RADIUS / RADIUS_STEP`` steps.
    """
    angle = 0.0
    radius = 0.0
    while radius < MAX_RADIUS:
        x = CANVAS_WIDTH / 2 + radius * math.cos(angle) - width / 2
        y = CANVAS_HEIGHT / 2 + radius * math.sin(angle) - height / 2

        if fits_canvas(x, y, width, height) and not any(
            collides(x, y, width, height, other) for other in placed
        ):
            return x, y

        angle += ANGLE_STEP
        radius += RADIUS_STEP
    return None


def _fmt(value: float) -> str:
    """Compact number formatting for SVG attributes."""
    return f"{value:.2f}".rstrip("0").rstrip(".")
