"""
datemath - calendar arithmetic on short natural-language expressions.

    $ date-math 'dec 30, 2021 + 2 weeks + 1 day'
    2022-01-14
"""

from __future__ import annotations

from ._version import get_version
from .core import ir
from .core.errors import (
    CalendarOverflowError,
    ConfigError,
    DateMathError,
    EmptyInputError,
    ErrorKind,
    EvaluationError,
    MalformedDateError,
    MalformedTermError,
    ParseError,
    TrailingGarbageError,
    UnknownUnitError,
)
from .core.evaluator import compute, evaluate
from .core.parser import parse_expr

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "compute",
    "evaluate",
    "parse_expr",
    "ErrorKind",
    "DateMathError",
    "ParseError",
    "EmptyInputError",
    "UnknownUnitError",
    "MalformedDateError",
    "MalformedTermError",
    "TrailingGarbageError",
    "EvaluationError",
    "CalendarOverflowError",
    "ConfigError",
]
