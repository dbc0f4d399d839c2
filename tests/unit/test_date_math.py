"""Tests for the date-math expression pipeline.

Covers:
- Tokenizer: token kinds, signed integers, date literals
- Parser: chains, phrases, differences, error kinds and positions
- Evaluator: calendar arithmetic, clamping, relative anchors, overflow
"""

from __future__ import annotations

import logging
from datetime import date

import pytest
from pydantic import ValidationError

from datemath.core.errors import (
    CalendarOverflowError,
    EmptyInputError,
    ErrorKind,
    MalformedDateError,
    MalformedTermError,
    ParseError,
    TrailingGarbageError,
    UnknownUnitError,
)
from datemath.core.evaluator import apply_term, compute, evaluate, resolve_anchor
from datemath.core.ir import (
    DateDifference,
    DateOutcome,
    DayCountOutcome,
    DurationTerm,
    DurationUnit,
    ExplicitDate,
    ParsedExpression,
    RelativeDate,
    RelativeDay,
)
from datemath.core.parser import parse_expr
from datemath.core.tokenizer import TokenKind, tokenize


def _term(count: int, unit: DurationUnit) -> DurationTerm:
    return DurationTerm(count=count, unit=unit)


def _run(source: str, today: date) -> str:
    return str(compute(parse_expr(source), today))


# ============================================================================
# Tokenizer tests
# ============================================================================


class TestTokenizer:
    """Tokenizer produces correct token sequences."""

    def test_anchor_and_terms(self) -> None:
        tokens = tokenize("dec 30, 2021 + 2 weeks")
        assert [t.kind for t in tokens] == [
            TokenKind.WORD,
            TokenKind.INT,
            TokenKind.COMMA,
            TokenKind.INT,
            TokenKind.PLUS,
            TokenKind.INT,
            TokenKind.WORD,
            TokenKind.EOF,
        ]

    def test_positions(self) -> None:
        tokens = tokenize("dec 30")
        assert tokens[0].pos == 0
        assert tokens[1].pos == 4
        assert tokens[-1].pos == 6

    def test_date_literals(self) -> None:
        for src in ("2021-01-31", "2021-1-2", "1/31/2021"):
            tokens = tokenize(src)
            assert tokens[0].kind == TokenKind.DATE
            assert tokens[0].value == src

    def test_leading_signed_integer(self) -> None:
        tokens = tokenize("-3 days")
        assert tokens[0].kind == TokenKind.INT
        assert tokens[0].value == "-3"

    def test_glued_minus_is_an_operator(self) -> None:
        tokens = tokenize("1 day-3 days")
        assert [t.kind for t in tokens] == [
            TokenKind.INT,
            TokenKind.WORD,
            TokenKind.MINUS,
            TokenKind.INT,
            TokenKind.WORD,
            TokenKind.EOF,
        ]

    def test_spaced_operator(self) -> None:
        tokens = tokenize("- 3 days")
        assert tokens[0].kind == TokenKind.MINUS
        assert tokens[1].value == "3"

    def test_number_glued_to_unit(self) -> None:
        tokens = tokenize("2days")
        assert [t.kind for t in tokens] == [TokenKind.INT, TokenKind.WORD, TokenKind.EOF]

    def test_unknown_character(self) -> None:
        tokens = tokenize("3 @")
        assert tokens[1].kind == TokenKind.UNKNOWN
        assert tokens[1].value == "@"


# ============================================================================
# Parser tests
# ============================================================================


class TestParser:
    """Parser builds the expected expressions."""

    def test_anchor_with_terms(self) -> None:
        assert parse_expr("dec 30, 2021 + 2 weeks + 1 day") == ParsedExpression(
            anchor=ExplicitDate(year=2021, month=12, day=30),
            terms=[_term(2, DurationUnit.WEEK), _term(1, DurationUnit.DAY)],
        )

    def test_terms_without_anchor(self) -> None:
        assert parse_expr("2 weeks + 3 days") == ParsedExpression(
            terms=[_term(2, DurationUnit.WEEK), _term(3, DurationUnit.DAY)],
        )

    def test_subtraction(self) -> None:
        result = parse_expr("Mar 31, 2021 - 15 weeks + 2 days")
        assert result.terms == [_term(-15, DurationUnit.WEEK), _term(2, DurationUnit.DAY)]

    def test_leading_negative_term(self) -> None:
        assert parse_expr("-3 days").terms == [_term(-3, DurationUnit.DAY)]
        assert parse_expr("- 3 days").terms == [_term(-3, DurationUnit.DAY)]
        assert parse_expr("+ 3 days").terms == [_term(3, DurationUnit.DAY)]

    def test_glued_sign_after_anchor(self) -> None:
        assert parse_expr("dec 30, 2021 -1 day").terms == [_term(-1, DurationUnit.DAY)]

    def test_case_insensitive_names(self) -> None:
        result = parse_expr("DECEMBER 1, 2021 + 1 WEEK")
        assert result.anchor == ExplicitDate(year=2021, month=12, day=1)
        assert result.terms == [_term(1, DurationUnit.WEEK)]

    def test_singular_and_plural_units(self) -> None:
        for word, unit in [
            ("day", DurationUnit.DAY),
            ("days", DurationUnit.DAY),
            ("week", DurationUnit.WEEK),
            ("weeks", DurationUnit.WEEK),
            ("month", DurationUnit.MONTH),
            ("months", DurationUnit.MONTH),
            ("year", DurationUnit.YEAR),
            ("years", DurationUnit.YEAR),
        ]:
            assert parse_expr(f"2 {word}").terms == [_term(2, unit)]

    def test_abbreviated_and_full_months(self) -> None:
        assert parse_expr("jan 1, 2021").anchor == ExplicitDate(year=2021, month=1, day=1)
        assert parse_expr("january 01, 2021").anchor == ExplicitDate(year=2021, month=1, day=1)
        assert parse_expr("sept 5, 2021").anchor == ExplicitDate(year=2021, month=9, day=5)

    def test_numeric_dates(self) -> None:
        assert parse_expr("2021-01-31").anchor == ExplicitDate(year=2021, month=1, day=31)
        assert parse_expr("1/31/2021").anchor == ExplicitDate(year=2021, month=1, day=31)

    def test_date_without_year(self) -> None:
        assert parse_expr("apr 30").anchor == ExplicitDate(month=4, day=30)

    def test_relative_anchors(self) -> None:
        assert parse_expr("today").anchor == RelativeDate(day=RelativeDay.TODAY)
        assert parse_expr("now").anchor == RelativeDate(day=RelativeDay.TODAY)
        assert parse_expr("yesterday").anchor == RelativeDate(day=RelativeDay.YESTERDAY)
        assert parse_expr("tomorrow + 1 day").anchor == RelativeDate(day=RelativeDay.TOMORROW)

    def test_date_difference(self) -> None:
        assert parse_expr("Mar 31, 2021 - Mar 24, 2021") == DateDifference(
            start=ExplicitDate(year=2021, month=3, day=31),
            end=ExplicitDate(year=2021, month=3, day=24),
        )

    def test_ago_phrase(self) -> None:
        assert parse_expr("2 weeks and 1 day ago") == ParsedExpression(
            anchor=None,
            terms=[_term(-2, DurationUnit.WEEK), _term(-1, DurationUnit.DAY)],
        )

    def test_comma_list_phrase(self) -> None:
        assert parse_expr("1 year, 2 months, and 3 days from now") == ParsedExpression(
            anchor=RelativeDate(day=RelativeDay.TODAY),
            terms=[
                _term(1, DurationUnit.YEAR),
                _term(2, DurationUnit.MONTH),
                _term(3, DurationUnit.DAY),
            ],
        )

    def test_before_phrase(self) -> None:
        assert parse_expr("2 weeks and 3 days before July 11, 2022") == ParsedExpression(
            anchor=ExplicitDate(year=2022, month=7, day=11),
            terms=[_term(-2, DurationUnit.WEEK), _term(-3, DurationUnit.DAY)],
        )

    def test_after_phrase(self) -> None:
        result = parse_expr("3 days after tomorrow")
        assert result.anchor == RelativeDate(day=RelativeDay.TOMORROW)
        assert result.terms == [_term(3, DurationUnit.DAY)]

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert parse_expr("  2 weeks  ") == parse_expr("2 weeks")

    def test_logs_parsed_expression(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="datemath")
        parse_expr("2 weeks")
        assert "Parsed '2 weeks'" in caplog.text


class TestParserErrors:
    """Malformed input is reported with the right kind and fragment."""

    @pytest.mark.parametrize("source", ["", "   ", "\t\n"])
    def test_empty_input(self, source: str) -> None:
        with pytest.raises(EmptyInputError) as exc_info:
            parse_expr(source)
        assert exc_info.value.kind == ErrorKind.EMPTY_INPUT

    def test_unknown_unit(self) -> None:
        with pytest.raises(UnknownUnitError) as exc_info:
            parse_expr("3 fortnights")
        error = exc_info.value
        assert error.kind == ErrorKind.UNKNOWN_UNIT
        assert error.fragment == "fortnights"
        assert str(error) == (
            "UnknownUnit: unknown unit 'fortnights'\n  3 fortnights\n    ^^^^^^^^^^"
        )

    def test_unknown_unit_after_anchor(self) -> None:
        with pytest.raises(UnknownUnitError):
            parse_expr("dec 30, 2021 + 2 hours")

    @pytest.mark.parametrize(
        "source",
        ["feb 30, 2021", "dec 32, 2021", "dec 0, 2021", "2021-13-01", "2/30/2021", "jan 1, 0"],
    )
    def test_malformed_date(self, source: str) -> None:
        with pytest.raises(MalformedDateError) as exc_info:
            parse_expr(source)
        assert exc_info.value.kind == ErrorKind.MALFORMED_DATE

    def test_month_without_day(self) -> None:
        with pytest.raises(MalformedDateError, match="expected a day"):
            parse_expr("dec")

    def test_comma_without_year(self) -> None:
        with pytest.raises(MalformedDateError, match="expected a year"):
            parse_expr("dec 30, + 1 day")

    def test_phrase_anchor_must_be_a_date(self) -> None:
        with pytest.raises(MalformedDateError, match="after 'from'"):
            parse_expr("3 days from banana")

    @pytest.mark.parametrize(
        "source",
        [
            "3",
            "dec 30, 2021 +",
            "dec 30, 2021 + weeks",
            "hello",
            "@",
            "2 weeks and 3 days",
            "1 day, -2 days ago",
            "1 day, 2 days ago",
            "1 day, and 2 days ago",
            "² days",
        ],
    )
    def test_malformed_term(self, source: str) -> None:
        with pytest.raises(MalformedTermError) as exc_info:
            parse_expr(source)
        assert exc_info.value.kind == ErrorKind.MALFORMED_TERM

    def test_count_too_long_to_convert(self) -> None:
        source = "1" * 5000 + " days"
        with pytest.raises(CalendarOverflowError, match="too many digits") as exc_info:
            parse_expr(source)
        assert exc_info.value.fragment == "1" * 5000

    @pytest.mark.parametrize(
        "source", ["dec " + "1" * 5000 + ", 2021", "dec 1, " + "2" * 5000]
    )
    def test_date_part_too_long_to_convert(self, source: str) -> None:
        with pytest.raises(MalformedDateError, match="too many digits"):
            parse_expr(source)

    def test_trailing_garbage(self) -> None:
        with pytest.raises(TrailingGarbageError) as exc_info:
            parse_expr("dec 30, 2021 + 2 weeks banana split")
        assert exc_info.value.fragment == "banana split"

    def test_term_without_operator_after_anchor(self) -> None:
        with pytest.raises(TrailingGarbageError):
            parse_expr("dec 30, 2021 2 weeks")

    def test_ago_after_operator_chain(self) -> None:
        with pytest.raises(TrailingGarbageError):
            parse_expr("2 weeks + 3 days ago")

    def test_all_parse_errors_share_a_base(self) -> None:
        for source in ("", "3 fortnights", "feb 30, 2021", "3", "today today"):
            with pytest.raises(ParseError):
                parse_expr(source)


# ============================================================================
# IR tests
# ============================================================================


class TestExpressionTypes:
    """Expression values render and validate themselves."""

    def test_term_str(self) -> None:
        assert str(_term(2, DurationUnit.WEEK)) == "+2 weeks"
        assert str(_term(-1, DurationUnit.MONTH)) == "-1 month"

    def test_empty_expression_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ParsedExpression()

    def test_day_count_str(self) -> None:
        assert str(DayCountOutcome(days=0)) == "0 days"
        assert str(DayCountOutcome(days=1)) == "1 day"
        assert str(DayCountOutcome(days=7)) == "7 days"

    def test_date_outcome_is_iso(self) -> None:
        assert str(DateOutcome(value=date(5, 3, 1))) == "0005-03-01"


# ============================================================================
# Evaluator tests
# ============================================================================


class TestEvaluator:
    """Calendar arithmetic folds terms left to right."""

    def test_anchor_with_weeks_and_days(self, today: date) -> None:
        assert _run("dec 30, 2021 + 2 weeks + 1 day", today) == "2022-01-14"

    def test_terms_apply_to_today(self, today: date) -> None:
        assert _run("2 weeks + 3 days", today) == "2021-07-19"

    def test_anchor_without_terms_is_unchanged(self, today: date) -> None:
        for source, expected in [
            ("dec 30, 2021", date(2021, 12, 30)),
            ("2020-02-29", date(2020, 2, 29)),
            ("1/31/2021", date(2021, 1, 31)),
        ]:
            assert evaluate(parse_expr(source), today) == expected

    def test_month_end_clamping(self, today: date) -> None:
        assert _run("2021-01-31 + 1 month", today) == "2021-02-28"
        assert _run("jan 31, 2020 + 1 month", today) == "2020-02-29"
        assert _run("2021-03-31 - 1 month", today) == "2021-02-28"

    def test_leap_year_clamping(self, today: date) -> None:
        assert _run("2020-02-29 + 1 year", today) == "2021-02-28"
        assert _run("2020-02-29 + 4 years", today) == "2024-02-29"

    def test_negative_month(self, today: date) -> None:
        assert _run("dec 30, 2021 - 1 month", today) == "2021-11-30"

    def test_clamp_then_advance(self, today: date) -> None:
        assert _run("2021-01-31 + 1 month + 1 day", today) == "2021-03-01"

    def test_mixed_signs(self, today: date) -> None:
        assert _run("Mar 31, 2021 + 15 weeks + 2 days - 1 day", today) == "2021-07-15"

    def test_leading_negative_term(self, today: date) -> None:
        assert _run("-3 days", today) == "2021-06-29"

    def test_week_equals_seven_days(self, today: date) -> None:
        assert apply_term(today, _term(3, DurationUnit.WEEK)) == apply_term(
            today, _term(21, DurationUnit.DAY)
        )

    def test_relative_anchors(self, today: date) -> None:
        assert _run("today", today) == "2021-07-02"
        assert _run("yesterday", today) == "2021-07-01"
        assert _run("tomorrow", today) == "2021-07-03"

    def test_phrases(self, today: date) -> None:
        assert _run("3 days ago", today) == "2021-06-29"
        assert _run("2 weeks from tomorrow", today) == "2021-07-17"
        assert _run("1 week and 2 days before dec 30, 2021", today) == "2021-12-21"

    def test_year_taken_from_today(self, today: date) -> None:
        assert _run("apr 30", today) == "2021-04-30"
        assert resolve_anchor(ExplicitDate(month=2, day=29), date(2020, 6, 1)) == date(2020, 2, 29)

    def test_feb_29_without_year_in_common_year(self, today: date) -> None:
        with pytest.raises(MalformedDateError):
            compute(parse_expr("feb 29 + 1 day"), today)

    def test_overflow(self, today: date) -> None:
        for source in (
            "dec 31, 9999 + 1 day",
            "dec 31, 9999 + 1 month",
            "jan 1, 1 - 1 day",
            "10000000000000000000000 days",
            "9000 years",
        ):
            with pytest.raises(CalendarOverflowError) as exc_info:
                compute(parse_expr(source), today)
            assert exc_info.value.kind == ErrorKind.CALENDAR_OVERFLOW


class TestDateDifference:
    """Two anchors separated by '-' give an absolute day count."""

    def test_difference(self, today: date) -> None:
        assert _run("Mar 31, 2021 - Mar 24, 2021", today) == "7 days"

    def test_difference_is_absolute(self, today: date) -> None:
        assert _run("Mar 24, 2021 - Mar 31, 2021", today) == "7 days"

    def test_single_day(self, today: date) -> None:
        assert _run("today - yesterday", today) == "1 day"

    def test_no_difference(self, today: date) -> None:
        assert _run("2021-03-31 - Mar 31, 2021", today) == "0 days"
