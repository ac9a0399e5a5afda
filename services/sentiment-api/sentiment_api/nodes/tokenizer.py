"""Node 1 — Tokenizer.

Regex scanner that splits comment text into tagged tokens.  Every
non-whitespace character of the input lands in exactly one token, in input
order, so downstream nodes never lose text.

Handles:
- Contractions and hyphenation (don't, well-known) as single words
- Numerals with separators (3.14, 1,000) and ordinals (21st)
- URLs (a closing parenthesis belongs to the URL only when it closes one
  opened inside it), e-mail addresses, @mentions, #hashtags and simple emoticons
- Any leftover character as a one-character punctuation/symbol token

No case or accent normalisation happens here; the aggregator lowercases.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterator

from ..models import Token

WORD = "word"
PUNCTUATION = "punctuation"
SYMBOL = "symbol"

# Combining marks for Latin diacritics and the Indic blocks (Devanagari
# through Malayalam), minus the danda/double danda sentence marks.
_MARKS = "\u0300-\u036f\u0900-\u0963\u0966-\u0dff"
_WORD_CHAR = rf"(?:[^\W_]|[{_MARKS}])"

_TOKEN_RE = re.compile(
    rf"""
      (?P<space>\s+)
    | (?P<url>(?:https?://|www\.)(?:\([^\s()]*\)|[^\s)])+?(?=[.,;:!?)\]]*(?:\s|$)))
    | (?P<email>[\w.+-]+@[\w-]+(?:\.[\w-]+)+)
    | (?P<mention>@\w+)
    | (?P<hashtag>\#\w+)
    | (?P<emoticon>(?<!\w)[:;=][\-']?[()\[\]DPp/\\|](?!\w))
    | (?P<ordinal>\d+(?:st|nd|rd|th)\b)
    | (?P<number>\d+(?:[.,]\d+)*)
    | (?P<word>[^\W\d_]{_WORD_CHAR}*(?:['’\-]{_WORD_CHAR}+)*)
    | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)


class TokenStream:
    """Lazy, restartable sequence of tokens over one text.

    Each iteration rescans the text from the start, so the stream can be
    consumed more than once.
    """

    def __init__(self, text: str):
        self.text = text

    def __iter__(self) -> Iterator[Token]:
        for match in _TOKEN_RE.finditer(self.text):
            kind = match.lastgroup
            if kind == "space":
                continue
            value = match.group()
            if kind == "other":
                kind = _classify_char(value)
            yield Token(value, kind)

    def __repr__(self) -> str:
        return f"TokenStream({self.text[:40]!r})"


def tokenize(text: str) -> TokenStream:
    """Return the token stream for *text* (empty text yields nothing)."""
    return TokenStream(text)


def _classify_char(ch: str) -> str:
    """Unicode P* categories are punctuation, everything else a symbol."""
    return PUNCTUATION if unicodedata.category(ch).startswith("P") else SYMBOL
