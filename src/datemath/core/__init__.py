"""
date-math core: tokenizer, parser, and evaluator.

Usage:
    from datetime import date

    from datemath.core import compute, parse_expr

    math = parse_expr("dec 30, 2021 + 2 weeks + 1 day")
    outcome = compute(math, today=date(2021, 7, 2))
    # str(outcome) == "2022-01-14"
"""

from datemath.core.evaluator import compute, evaluate
from datemath.core.parser import parse_expr

__all__ = ["compute", "evaluate", "parse_expr"]
