"""CLI entrypoint: Typer app definition, logging setup and command registration"""

import logging
import sys
from typing import Annotated, Optional

import structlog
import typer

from mdcontent.cli.commands import (
    build_cmd,
    list_cmd,
    render_cmd,
    show_cmd,
    validate_cmd,
    watch_cmd,
)
from mdcontent.config import load_config


app = typer.Typer(name="mdcontent", no_args_is_help=True, help="Precompiled markdown content artifacts")


def configure_logging(level: str) -> None:
    """Route structlog output to stderr so command output on stdout stays parseable."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


@app.callback()
def main(
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR")] = None,
    ):
    """Configure logging before any command runs."""
    if log_level is None:
        try:
            log_level = load_config().log_level
        except ValueError:
            log_level = "WARNING"  # the command itself reports the config error
    configure_logging(log_level)


app.command(name="build")(build_cmd)
app.command(name="watch")(watch_cmd)
app.command(name="list")(list_cmd)
app.command(name="show")(show_cmd)
app.command(name="validate")(validate_cmd)
app.command(name="render")(render_cmd)
