"""
Expression types for date-math.

This module defines the immutable values produced by the parser and the
evaluator.

Examples:
    - dec 30, 2021 + 2 weeks + 1 day
    - 2 weeks + 3 days (anchored on today)
    - 3 days ago
    - Mar 31, 2021 - Mar 24, 2021 (difference in days)
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------


class DurationUnit(StrEnum):
    """Calendar units a term can be expressed in."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class DurationTerm(BaseModel):
    """
    A signed duration step.

    Examples:
        - DurationTerm(count=2, unit=DurationUnit.WEEK) → +2 weeks
        - DurationTerm(count=-1, unit=DurationUnit.MONTH) → -1 month
    """

    count: int = Field(description="Signed number of units")
    unit: DurationUnit = Field(description="Calendar unit")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        plural = "" if abs(self.count) == 1 else "s"
        return f"{self.count:+d} {self.unit.value}{plural}"

    def negated(self) -> DurationTerm:
        return DurationTerm(count=-self.count, unit=self.unit)


# ---------------------------------------------------------------------------
# Anchors
# ---------------------------------------------------------------------------


class RelativeDay(StrEnum):
    """Anchor keywords resolved against the injected today."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    TOMORROW = "tomorrow"


class RelativeDate(BaseModel):
    """An anchor relative to today (today, yesterday, tomorrow)."""

    day: RelativeDay = Field(description="Which day relative to today")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.day.value


class ExplicitDate(BaseModel):
    """
    A calendar date written in the expression.

    ``year`` is None when the input left it out (``apr 30``); the year of
    today is used during evaluation.
    """

    year: int | None = Field(default=None, description="Year, if given")
    month: int = Field(ge=1, le=12, description="Month (1-12)")
    day: int = Field(ge=1, le=31, description="Day of month (1-31)")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.year is None:
            return f"--{self.month:02d}-{self.day:02d}"
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


Anchor = ExplicitDate | RelativeDate


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


class ParsedExpression(BaseModel):
    """
    An optional anchor followed by terms applied left to right.

    At least one of the two must be present.
    """

    anchor: Anchor | None = Field(default=None, description="Explicit anchor, or None for today")
    terms: list[DurationTerm] = Field(default_factory=list, description="Ordered duration terms")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _not_empty(self) -> ParsedExpression:
        if self.anchor is None and not self.terms:
            raise ValueError("expression needs an anchor date or at least one term")
        return self

    def __str__(self) -> str:
        parts = [str(self.anchor) if self.anchor is not None else "today"]
        parts.extend(str(term) for term in self.terms)
        return " ".join(parts)


class DateDifference(BaseModel):
    """Number of days between two anchors: ``Mar 31, 2021 - Mar 24, 2021``."""

    start: Anchor = Field(description="Left-hand anchor")
    end: Anchor = Field(description="Right-hand anchor")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.start} - {self.end}"


DateMath = ParsedExpression | DateDifference


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class DateOutcome(BaseModel):
    """A computed calendar date."""

    value: date

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.value.isoformat()


class DayCountOutcome(BaseModel):
    """A computed distance between two dates, in days."""

    days: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.days == 1:
            return "1 day"
        return f"{self.days} days"


Outcome = DateOutcome | DayCountOutcome
