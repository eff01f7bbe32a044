"""Validate matching config: load YAML, check ranges, print weights and thresholds."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from thread_matcher.errors import MatchingConfigError
from thread_matcher.matching.settings import load_matching_config

from .shared import console, logger


def validate_config(
    path: Optional[Path] = typer.Option(None, "--path", help="Config file (default: MATCHING_CONFIG_PATH or config/matching.yaml)"),
) -> None:
    """Load the matching config, validate it, and print a summary table."""
    log = logger.bind(command="validate-config")
    log.info("validate_config.start")
    try:
        config = load_matching_config(path)
    except MatchingConfigError as e:
        console.print(f"[red]Config error: {e}[/red]")
        log.error("validate_config.fail", error=str(e))
        raise typer.Exit(1) from e

    table = Table(title="Matching config")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", justify="right", style="green")
    for key, value in config.weights.model_dump().items():
        table.add_row(f"weights.{key}", str(value))
    for key, value in config.thresholds.model_dump().items():
        table.add_row(f"thresholds.{key}", str(value))
    console.print(table)
    console.print("[green]Config valid.[/green]")
    log.info("validate_config.ok", auto_match=config.thresholds.auto_match, review=config.thresholds.review)
