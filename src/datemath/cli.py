"""
date-math CLI - entry point.

    date-math 'dec 30, 2021 + 2 weeks + 1 day'
    date-math --today 2021-07-02 '2 weeks + 3 days'
    date-math -- '-3 days'

The expression is parsed, evaluated against today (or ``--today``) and
the result printed on stdout. Any failure prints the error kind and the
offending fragment on stderr and exits with code 1.
"""

import logging
import platform
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.text import Text

from datemath._version import get_version
from datemath.core.config import load_settings
from datemath.core.errors import DateMathError
from datemath.core.evaluator import compute
from datemath.core.formatting import format_outcome
from datemath.core.parser import parse_expr

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)

app = typer.Typer(
    help="""Calendar arithmetic on short expressions.

Examples:
  • date-math 'dec 30, 2021 + 2 weeks + 1 day'
  • date-math '2 weeks and 3 days ago'
  • date-math 'Mar 31, 2021 - Mar 24, 2021'
  • date-math -- '-3 days'
""",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"date-math version {get_version()}")
        typer.echo(f"  Python:   {platform.python_implementation()} {platform.python_version()}")
        typer.echo(f"  Platform: {platform.system()} {platform.release()}")
        raise typer.Exit()


def configure_logging(level: str | None) -> None:
    """Send log records to stderr. Logging stays silent unless a level is set."""
    if level is None:
        return
    logging.basicConfig(
        level=getattr(logging, level),
        stream=sys.stderr,
        format="[%(asctime)s] %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


def print_error(error: DateMathError) -> None:
    err_console.print(Text(f"Error: {error.kind}: {error.message}", style="bold red"), soft_wrap=True)
    if error.context:
        err_console.print(Text(error.context.format()), soft_wrap=True)


@app.command()
def calculate(
    expression: str = typer.Argument(
        ..., help="Expression such as 'dec 30, 2021 + 2 weeks' (quote it)"
    ),
    today: str | None = typer.Option(
        None, "--today", "-t", help="Use this YYYY-MM-DD date as today"
    ),
    output_format: str | None = typer.Option(
        None, "--format", "-f", help="Output format: 'iso' or 'long'"
    ),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to a datemath.toml file"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log parsing steps to stderr"),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
) -> None:
    """Print the date (or day count) an expression evaluates to."""
    try:
        settings = load_settings(config_path=config).with_overrides(
            today=today,
            output_format=output_format,
            log_level="DEBUG" if verbose else None,
        )
        configure_logging(settings.log_level)

        math = parse_expr(expression)
        anchor_today = settings.resolve_today()
        logger.debug("Evaluating %s with today=%s", math, anchor_today)
        outcome = compute(math, anchor_today)
    except DateMathError as e:
        print_error(e)
        raise typer.Exit(code=1)

    typer.echo(format_outcome(outcome, settings.output_format))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
