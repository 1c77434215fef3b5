"""Application settings: where files live and how much to log."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import click
from dotenv import load_dotenv

DEFAULT_HOME = Path.home() / ".radtach"
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class AppConfig:
    """Settings resolved from the environment (and an optional .env)."""

    home: Path
    log_level: str

    def validate(self) -> None:
        if self.log_level not in LOG_LEVELS:
            raise click.ClickException(
                f"Invalid log level '{self.log_level}'. "
                f"Valid options: {', '.join(LOG_LEVELS)}"
            )


def get_config(home: str | Path | None = None, verbose: bool = False) -> AppConfig:
    """Build the config; explicit arguments win over RADTACH_* variables."""
    load_dotenv(Path.cwd() / ".env")

    if home is None:
        home = os.environ.get("RADTACH_HOME") or DEFAULT_HOME
    log_level = "DEBUG" if verbose else os.environ.get("RADTACH_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    config = AppConfig(home=Path(home).expanduser(), log_level=log_level)
    config.validate()
    return config


def home_option(f):
    """Decorator to add the data directory option to commands."""
    return click.option(
        "--home",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Data directory (default: $RADTACH_HOME or ~/.radtach)",
    )(f)


def verbose_option(f):
    """Decorator to add verbose option to commands."""
    return click.option(
        "--verbose", "-v",
        is_flag=True,
        help="Enable verbose output",
    )(f)
