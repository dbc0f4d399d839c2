"""
Evaluator for date-math expressions.

Folds duration terms onto an anchor date. Pure evaluation: "today" is
always passed in by the caller and the system clock is never read here.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from datemath.core.errors import CalendarOverflowError, MalformedDateError
from datemath.core.ir import (
    Anchor,
    DateDifference,
    DateMath,
    DateOutcome,
    DayCountOutcome,
    DurationTerm,
    DurationUnit,
    ExplicitDate,
    Outcome,
    ParsedExpression,
    RelativeDate,
    RelativeDay,
)

logger = logging.getLogger(__name__)


def evaluate(expr: ParsedExpression, today: date) -> date:
    """Evaluate an anchor-plus-terms expression.

    Args:
        expr: Parsed expression.
        today: Anchor used when the expression has none, and the reference
            for relative anchors and year-less dates.

    Returns:
        The resulting calendar date.

    Raises:
        CalendarOverflowError: If a step leaves the supported date range.
        MalformedDateError: If a year-less date does not exist in today's year.
    """
    value = resolve_anchor(expr.anchor, today) if expr.anchor is not None else today
    for term in expr.terms:
        result = apply_term(value, term)
        logger.debug("%s %s -> %s", value, term, result)
        value = result
    return value


def compute(math: DateMath, today: date) -> Outcome:
    """Evaluate any parsed expression into an outcome."""
    if isinstance(math, DateDifference):
        start = resolve_anchor(math.start, today)
        end = resolve_anchor(math.end, today)
        return DayCountOutcome(days=abs((start - end).days))

    if isinstance(math, ParsedExpression):
        return DateOutcome(value=evaluate(math, today))

    raise TypeError(f"Unknown expression type: {type(math).__name__}")


def resolve_anchor(anchor: Anchor, today: date) -> date:
    """Turn an anchor into a concrete date."""
    if isinstance(anchor, RelativeDate):
        offsets = {
            RelativeDay.TODAY: 0,
            RelativeDay.YESTERDAY: -1,
            RelativeDay.TOMORROW: 1,
        }
        return _shift(today, timedelta(days=offsets[anchor.day]), str(anchor))

    if isinstance(anchor, ExplicitDate):
        year = anchor.year if anchor.year is not None else today.year
        try:
            return date(year, anchor.month, anchor.day)
        except ValueError as e:
            raise MalformedDateError(f"{anchor.month}/{anchor.day} does not exist in {year}") from e

    raise TypeError(f"Unknown anchor type: {type(anchor).__name__}")


def apply_term(value: date, term: DurationTerm) -> date:
    """Apply a single duration term.

    Days and weeks are exact offsets. Months and years clamp the day of
    month to the last day of the target month (Jan 31 + 1 month = Feb 28).
    """
    try:
        if term.unit == DurationUnit.DAY:
            delta: timedelta | relativedelta = timedelta(days=term.count)
        elif term.unit == DurationUnit.WEEK:
            delta = timedelta(weeks=term.count)
        elif term.unit == DurationUnit.MONTH:
            delta = relativedelta(months=term.count)
        else:
            delta = relativedelta(years=term.count)
    except OverflowError as e:
        raise CalendarOverflowError(f"{term} is too large") from e

    return _shift(value, delta, str(term))


def _shift(value: date, delta: timedelta | relativedelta, label: str) -> date:
    try:
        return value + delta
    except (OverflowError, ValueError) as e:
        raise CalendarOverflowError(
            f"{value.isoformat()} {label} is outside the supported date range"
        ) from e
