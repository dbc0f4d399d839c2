"""
Error types for date-math expression parsing and evaluation.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class ErrorKind(StrEnum):
    """Failure kinds reported to the user."""

    EMPTY_INPUT = "EmptyInput"
    UNKNOWN_UNIT = "UnknownUnit"
    MALFORMED_DATE = "MalformedDate"
    MALFORMED_TERM = "MalformedTerm"
    TRAILING_GARBAGE = "TrailingGarbage"
    CALENDAR_OVERFLOW = "CalendarOverflow"
    CONFIG = "Config"


class DateMathError(Exception):
    """Base exception for all date-math errors."""

    kind: ErrorKind = ErrorKind.MALFORMED_TERM

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.kind}: {self.message}\n{self.context.format()}"
        return f"{self.kind}: {self.message}"

    @property
    def fragment(self) -> str | None:
        """The offending piece of input, if known."""
        if self.context:
            return self.context.fragment
        return None


class ParseError(DateMathError):
    """
    Raised when an expression cannot be parsed.

    Examples:
    - Blank input
    - Unknown unit names
    - Invalid dates
    - Leftover tokens
    """

    pass


class EmptyInputError(ParseError):
    kind = ErrorKind.EMPTY_INPUT


class UnknownUnitError(ParseError):
    kind = ErrorKind.UNKNOWN_UNIT


class MalformedDateError(ParseError):
    kind = ErrorKind.MALFORMED_DATE


class MalformedTermError(ParseError):
    kind = ErrorKind.MALFORMED_TERM


class TrailingGarbageError(ParseError):
    kind = ErrorKind.TRAILING_GARBAGE


class EvaluationError(DateMathError):
    """
    Raised when a parsed expression cannot be evaluated.

    Examples:
    - Result outside the representable date range
    """

    kind = ErrorKind.CALENDAR_OVERFLOW


class CalendarOverflowError(EvaluationError):
    kind = ErrorKind.CALENDAR_OVERFLOW


class ConfigError(DateMathError):
    """Raised when settings from a file, the environment or flags are invalid."""

    kind = ErrorKind.CONFIG


@dataclass
class ErrorContext:
    """
    Location of an error inside the expression text.

    Attributes:
        source: The full expression text
        position: Offset of the offending fragment (0-indexed)
        length: Length of the offending fragment
    """

    source: str
    position: int
    length: int = 1

    @property
    def fragment(self) -> str:
        return self.source[self.position : self.position + self.length]

    def format(self) -> str:
        """
        Format the expression with a marker under the offending fragment.

        Returns:
            Two lines like:
                  3 fortnights
                    ^^^^^^^^^^
        """
        marker = "^" * max(1, self.length)
        return f"  {self.source}\n  {' ' * self.position}{marker}"


def make_error(
    error_cls: type[DateMathError],
    message: str,
    source: str,
    position: int,
    length: int = 1,
) -> DateMathError:
    """
    Helper to create an error with context.

    Args:
        error_cls: Concrete error class to instantiate
        message: Error description
        source: Expression text
        position: Offset of the offending fragment
        length: Length of the offending fragment

    Returns:
        Error with context attached
    """
    context = ErrorContext(source=source, position=position, length=length)
    return error_cls(message, context)
