"""Helpers shared by every CLI command: settings, logging, fatal errors."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from releaseforge.config import ReleaseSettings
from releaseforge.errors import ConfigurationError, ReleaseError
from releaseforge.models.config import PipelineConfig

console = Console()
err_console = Console(stderr=True)


def setup_logging(level: str) -> None:
    """Route every ``releaseforge.*`` logger through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
        force=True,
    )


def load_config(**overrides: object) -> PipelineConfig:
    """Build the run configuration from the environment plus CLI overrides.

    An invalid setting is reported like any other fatal error, with the
    environment exit code.
    """
    with fatal_errors():
        try:
            settings = ReleaseSettings()
            setup_logging(settings.log_level)
            config = PipelineConfig.from_settings(settings)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid configuration: {_describe(exc)}") from exc
    changes = {key: value for key, value in overrides.items() if value is not None}
    if changes:
        config = config.model_copy(update=changes)
    return config


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
        for err in exc.errors()
    )


@contextmanager
def fatal_errors() -> Iterator[None]:
    """Turn a ``ReleaseError`` into ``fatal: <message>`` and its exit code."""
    try:
        yield
    except ReleaseError as exc:
        err_console.print(f"[bold red]fatal:[/bold red] {exc}", markup=True, highlight=False)
        raise typer.Exit(code=exc.exit_code) from exc
