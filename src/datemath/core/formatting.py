"""Rendering of computed outcomes."""

from __future__ import annotations

from datemath.core.config import OutputFormat
from datemath.core.ir import DateOutcome, Outcome


def format_outcome(outcome: Outcome, output_format: OutputFormat = OutputFormat.ISO) -> str:
    """Render an outcome for standard output.

    Day counts read the same in every format ("1 day", "7 days").
    """
    if isinstance(outcome, DateOutcome) and output_format == OutputFormat.LONG:
        value = outcome.value
        return f"{value.isoformat()}, week {value.isocalendar().week}, {value:%A, %B}"
    return str(outcome)
