"""
Recursive descent parser for date-math expressions.

Grammar:
    expression   → difference | phrase | chain
    chain        → anchor term_op*
                 | ("+" | "-")? term term_op*
    term_op      → ("+" | "-") term | signed_term
    term         → INT unit
    difference   → anchor "-" anchor
    phrase       → term_list ("ago" | ("from" | "after" | "before") anchor)
    term_list    → term
                 | term "and" term
                 | term ("," term)+ ","? "and" term
    anchor       → date | "today" | "now" | "yesterday" | "tomorrow"
    date         → month INT ("," INT)? | DATE
    unit         → "day" | "week" | "month" | "year" (+ plurals)
"""

from __future__ import annotations

import calendar
import logging
from datetime import date
from types import MappingProxyType

from datemath.core.errors import (
    CalendarOverflowError,
    DateMathError,
    EmptyInputError,
    MalformedDateError,
    MalformedTermError,
    TrailingGarbageError,
    UnknownUnitError,
    make_error,
)
from datemath.core.ir import (
    Anchor,
    DateDifference,
    DateMath,
    DurationTerm,
    DurationUnit,
    ExplicitDate,
    ParsedExpression,
    RelativeDate,
    RelativeDay,
)
from datemath.core.tokenizer import Token, TokenKind, tokenize

logger = logging.getLogger(__name__)

MONTHS = MappingProxyType(
    {
        "jan": 1,
        "january": 1,
        "feb": 2,
        "february": 2,
        "mar": 3,
        "march": 3,
        "apr": 4,
        "april": 4,
        "may": 5,
        "jun": 6,
        "june": 6,
        "jul": 7,
        "july": 7,
        "aug": 8,
        "august": 8,
        "sep": 9,
        "sept": 9,
        "september": 9,
        "oct": 10,
        "october": 10,
        "nov": 11,
        "november": 11,
        "dec": 12,
        "december": 12,
    }
)

UNITS = MappingProxyType(
    {
        "day": DurationUnit.DAY,
        "days": DurationUnit.DAY,
        "week": DurationUnit.WEEK,
        "weeks": DurationUnit.WEEK,
        "month": DurationUnit.MONTH,
        "months": DurationUnit.MONTH,
        "year": DurationUnit.YEAR,
        "years": DurationUnit.YEAR,
    }
)

RELATIVE_DAYS = MappingProxyType(
    {
        "today": RelativeDay.TODAY,
        "now": RelativeDay.TODAY,
        "yesterday": RelativeDay.YESTERDAY,
        "tomorrow": RelativeDay.TOMORROW,
    }
)

_PHRASE_KEYWORDS = frozenset({"and", "ago", "from", "after", "before"})


class _Parser:
    """Recursive descent parser over a token list."""

    def __init__(self, source: str, tokens: list[Token]) -> None:
        self.source = source
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]  # EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def match(self, *kinds: TokenKind) -> Token | None:
        if self.current.kind in kinds:
            return self.advance()
        return None

    def match_word(self, word: str) -> Token | None:
        if self.current.kind == TokenKind.WORD and self.current.word == word:
            return self.advance()
        return None

    def error(
        self, error_cls: type[DateMathError], message: str, start: Token, end: Token | None = None
    ) -> DateMathError:
        """Build an error pointing at the tokens from ``start`` to ``end``."""
        stop = (end or start).end
        return make_error(error_cls, message, self.source, start.pos, max(1, stop - start.pos))

    def to_int(self, tok: Token, error_cls: type[DateMathError], what: str) -> int:
        """Convert an INT token, reporting numbers too long to convert as ``error_cls``."""
        try:
            return int(tok.value)
        except ValueError as e:
            raise self.error(error_cls, f"{what} has too many digits", tok) from e

    # -- Grammar rules --

    def parse_expression(self) -> DateMath:
        """Top level: difference, phrase or chain."""
        tok = self.current

        if _starts_anchor(tok):
            anchor = self.parse_anchor()
            if self.current.kind == TokenKind.MINUS and _starts_anchor(self.peek(1)):
                self.advance()
                end = self.parse_anchor()
                self.expect_end()
                return DateDifference(start=anchor, end=end)
            terms = self.parse_term_ops()
            self.expect_end()
            return ParsedExpression(anchor=anchor, terms=terms)

        if tok.kind in (TokenKind.PLUS, TokenKind.MINUS):
            self.advance()
            sign = 1 if tok.kind == TokenKind.PLUS else -1
            terms = [self.parse_term(sign, after=tok)]
            terms.extend(self.parse_term_ops())
            self.expect_end()
            return ParsedExpression(terms=terms)

        if tok.kind == TokenKind.INT:
            first = self.parse_term()
            if _is_unsigned(tok) and self._at_phrase_continuation():
                return self.parse_phrase(first)
            terms = [first]
            terms.extend(self.parse_term_ops())
            self.expect_end()
            return ParsedExpression(terms=terms)

        if tok.kind == TokenKind.WORD:
            raise self.error(
                MalformedTermError, f"expected a date or a duration term, got {tok.value!r}", tok
            )
        raise self.error(MalformedTermError, f"unexpected {tok.value!r}", tok)

    def parse_term_ops(self) -> list[DurationTerm]:
        """term_op*"""
        terms: list[DurationTerm] = []
        while True:
            tok = self.current
            if tok.kind in (TokenKind.PLUS, TokenKind.MINUS):
                self.advance()
                sign = 1 if tok.kind == TokenKind.PLUS else -1
                terms.append(self.parse_term(sign, after=tok))
            elif tok.kind == TokenKind.INT and not _is_unsigned(tok):
                terms.append(self.parse_term())
            else:
                return terms

    def parse_term(self, sign: int = 1, after: Token | None = None) -> DurationTerm:
        """INT unit"""
        count_tok = self.current
        if count_tok.kind != TokenKind.INT:
            if after is not None and count_tok.kind == TokenKind.EOF:
                raise self.error(
                    MalformedTermError, f"expected a duration term after {after.value!r}", after
                )
            raise self.error(
                MalformedTermError, f"expected a number, got {count_tok.value!r}", count_tok
            )
        self.advance()

        unit_tok = self.current
        if unit_tok.kind != TokenKind.WORD:
            raise self.error(
                MalformedTermError,
                f"expected a unit after {count_tok.value!r}",
                count_tok,
                unit_tok if unit_tok.kind != TokenKind.EOF else None,
            )
        unit = UNITS.get(unit_tok.word)
        if unit is None:
            raise self.error(UnknownUnitError, f"unknown unit {unit_tok.value!r}", unit_tok)
        self.advance()

        count = self.to_int(count_tok, CalendarOverflowError, "count")
        return DurationTerm(count=sign * count, unit=unit)

    def parse_phrase(self, first: DurationTerm) -> ParsedExpression:
        """term_list ("ago" | ("from" | "after" | "before") anchor)"""
        terms = [first]
        if self.match_word("and"):
            terms.append(self.parse_plain_term())
        elif self.current.kind == TokenKind.COMMA:
            # A comma list is closed by "and": "1 year, 2 months, and 3 days"
            while self.match(TokenKind.COMMA):
                if len(terms) > 1 and self.match_word("and"):
                    terms.append(self.parse_plain_term())
                    break
                terms.append(self.parse_plain_term())
                if self.match_word("and"):
                    terms.append(self.parse_plain_term())
                    break
            else:
                tok = self.current
                raise self.error(
                    MalformedTermError,
                    f"expected 'and' before the last term, got {tok.value!r}"
                    if tok.kind != TokenKind.EOF
                    else "expected 'and' before the last term",
                    tok,
                )

        tok = self.current
        if self.match_word("ago"):
            anchor: Anchor | None = None
            terms = [term.negated() for term in terms]
        elif self.match_word("from") or self.match_word("after"):
            anchor = self.parse_anchor(after=tok)
        elif self.match_word("before"):
            anchor = self.parse_anchor(after=tok)
            terms = [term.negated() for term in terms]
        else:
            raise self.error(
                MalformedTermError,
                f"expected 'ago', 'from', 'after' or 'before', got {tok.value!r}"
                if tok.kind != TokenKind.EOF
                else "expected 'ago', 'from', 'after' or 'before' after the duration list",
                tok,
            )

        self.expect_end()
        return ParsedExpression(anchor=anchor, terms=terms)

    def parse_plain_term(self) -> DurationTerm:
        """An unsigned term inside a phrase."""
        tok = self.current
        if tok.kind == TokenKind.INT and not _is_unsigned(tok):
            raise self.error(MalformedTermError, f"unexpected sign in {tok.value!r}", tok)
        return self.parse_term()

    def parse_anchor(self, after: Token | None = None) -> Anchor:
        """date | relative day"""
        tok = self.current

        if tok.kind == TokenKind.DATE:
            self.advance()
            return self._parse_date_literal(tok)

        if tok.kind == TokenKind.WORD:
            relative = RELATIVE_DAYS.get(tok.word)
            if relative is not None:
                self.advance()
                return RelativeDate(day=relative)
            if tok.word in MONTHS:
                return self._parse_month_date()

        if after is not None:
            raise self.error(
                MalformedDateError, f"expected a date after {after.value!r}, got {tok.value!r}", tok
            )
        raise self.error(MalformedDateError, f"expected a date, got {tok.value!r}", tok)

    def expect_end(self) -> None:
        tok = self.current
        if tok.kind != TokenKind.EOF:
            raise make_error(
                TrailingGarbageError,
                f"unexpected {tok.value!r} after expression",
                self.source,
                tok.pos,
                len(self.source) - tok.pos,
            )

    # -- Dates --

    def _parse_month_date(self) -> ExplicitDate:
        """month INT ("," INT)?"""
        month_tok = self.advance()
        month = MONTHS[month_tok.word]

        day_tok = self.current
        if day_tok.kind != TokenKind.INT or not _is_unsigned(day_tok):
            raise self.error(
                MalformedDateError, f"expected a day after {month_tok.value!r}", month_tok
            )
        self.advance()
        day = self.to_int(day_tok, MalformedDateError, "day")
        if not 1 <= day <= 31:
            raise self.error(
                MalformedDateError, f"day {day} is out of range", month_tok, day_tok
            )

        year: int | None = None
        last = day_tok
        if self.current.kind == TokenKind.COMMA:
            self.advance()
            year_tok = self.current
            if year_tok.kind != TokenKind.INT or not _is_unsigned(year_tok):
                raise self.error(
                    MalformedDateError, f"expected a year, got {year_tok.value!r}", month_tok, year_tok
                )
            self.advance()
            year = self.to_int(year_tok, MalformedDateError, "year")
            last = year_tok

        try:
            return _build_date(year, month, day)
        except ValueError as e:
            raise self.error(MalformedDateError, str(e), month_tok, last) from e

    def _parse_date_literal(self, tok: Token) -> ExplicitDate:
        """2021-01-31 or 1/31/2021"""
        if "-" in tok.value:
            year, month, day = (int(part) for part in tok.value.split("-"))
        else:
            month, day, year = (int(part) for part in tok.value.split("/"))
        try:
            return _build_date(year, month, day)
        except ValueError as e:
            raise self.error(MalformedDateError, str(e), tok) from e

    def _at_phrase_continuation(self) -> bool:
        tok = self.current
        if tok.kind == TokenKind.COMMA:
            return True
        return tok.kind == TokenKind.WORD and tok.word in _PHRASE_KEYWORDS


def _starts_anchor(tok: Token) -> bool:
    if tok.kind == TokenKind.DATE:
        return True
    return tok.kind == TokenKind.WORD and (tok.word in MONTHS or tok.word in RELATIVE_DAYS)


def _is_unsigned(tok: Token) -> bool:
    return tok.value[:1].isdigit()


def _build_date(year: int | None, month: int, day: int) -> ExplicitDate:
    """Validate a day/month/year combination.

    Without a year the day is checked against a leap year, so ``feb 29``
    is accepted here and re-checked once the year is known.

    Raises:
        ValueError: If the combination does not exist.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month {month} is out of range")
    if year is None:
        last_day = calendar.monthrange(2000, month)[1]
        if not 1 <= day <= last_day:
            raise ValueError(f"day {day} is out of range for {calendar.month_name[month]}")
        return ExplicitDate(month=month, day=day)
    try:
        date(year, month, day)
    except OverflowError as e:
        raise ValueError(f"year {year} is out of range") from e
    return ExplicitDate(year=year, month=month, day=day)


def parse_expr(source: str) -> DateMath:
    """Parse an expression string.

    Args:
        source: Expression text (e.g., "dec 30, 2021 + 2 weeks + 1 day")

    Returns:
        Parsed expression.

    Raises:
        EmptyInputError: If the input is blank.
        UnknownUnitError: If a term names an unknown unit.
        MalformedDateError: If a date is invalid.
        MalformedTermError: If a term is not ``<integer> <unit>``.
        TrailingGarbageError: If input remains after the expression.
    """
    source = source.strip()
    if not source:
        raise EmptyInputError("expression is empty")

    parser = _Parser(source, tokenize(source))
    result = parser.parse_expression()
    logger.debug("Parsed %r as %s", source, result)
    return result
