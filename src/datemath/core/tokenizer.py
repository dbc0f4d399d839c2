"""
Tokenizer for date-math expressions.

Converts an expression string into a sequence of typed tokens. The
tokenizer never fails: characters it does not understand become UNKNOWN
tokens and the parser reports them in context.
"""

from __future__ import annotations

import logging
import re
from enum import StrEnum, auto

logger = logging.getLogger(__name__)


class TokenKind(StrEnum):
    """Token types for date-math expressions."""

    # Literals
    INT = auto()
    DATE = auto()  # 2021-01-31 or 1/31/2021
    WORD = auto()

    # Operators and punctuation
    PLUS = auto()
    MINUS = auto()
    COMMA = auto()

    # Anything else
    UNKNOWN = auto()

    # End of input
    EOF = auto()


class Token:
    """A single token from the expression tokenizer."""

    __slots__ = ("kind", "value", "pos")

    def __init__(self, kind: TokenKind, value: str, pos: int) -> None:
        self.kind = kind
        self.value = value
        self.pos = pos

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, pos={self.pos})"

    @property
    def end(self) -> int:
        return self.pos + len(self.value)

    @property
    def word(self) -> str:
        """Lower-cased value, for case-insensitive table lookups."""
        return self.value.lower()


# 2021-01-31 / 2021-1-2, not followed by more digits
_ISO_DATE_RE = re.compile(r"\d{4}-\d{1,2}-\d{1,2}(?!\d)")
# 1/31/2021
_SLASH_DATE_RE = re.compile(r"\d{1,2}/\d{1,2}/\d{4}(?!\d)")
_INT_RE = re.compile(r"\d+")
_SIGNED_INT_RE = re.compile(r"[+-]\d+")
_WORD_RE = re.compile(r"[^\W\d_]+")


def tokenize(source: str) -> list[Token]:
    """Tokenize an expression string into a list of tokens."""
    tokens: list[Token] = []
    i = 0
    n = len(source)

    while i < n:
        c = source[i]

        # Skip whitespace
        if c.isspace():
            i += 1
            continue

        # Dates written as a single literal
        m = _ISO_DATE_RE.match(source, i) or _SLASH_DATE_RE.match(source, i)
        if m:
            tokens.append(Token(TokenKind.DATE, m.group(0), i))
            i = m.end()
            continue

        # Signed integers: "-3 days", but not "1 day-3 days"
        if c in "+-" and (i == 0 or source[i - 1].isspace()):
            m = _SIGNED_INT_RE.match(source, i)
            if m:
                tokens.append(Token(TokenKind.INT, m.group(0), i))
                i = m.end()
                continue

        m = _INT_RE.match(source, i)
        if m:
            tokens.append(Token(TokenKind.INT, m.group(0), i))
            i = m.end()
            continue

        # Words: month names, units, keywords
        m = _WORD_RE.match(source, i)
        if m:
            tokens.append(Token(TokenKind.WORD, m.group(0), i))
            i = m.end()
            continue

        single_map: dict[str, TokenKind] = {
            "+": TokenKind.PLUS,
            "-": TokenKind.MINUS,
            ",": TokenKind.COMMA,
        }
        tokens.append(Token(single_map.get(c, TokenKind.UNKNOWN), c, i))
        i += 1

    tokens.append(Token(TokenKind.EOF, "", n))
    logger.debug("Tokenized %r into %s", source, tokens)
    return tokens
