from __future__ import annotations

import importlib.metadata
import json
import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from ....core.config import ProvisionerConfig, load_config
from ....core.exceptions import ConfigError
from ....core.logging_utils import setup_rotating_logger

logger = logging.getLogger("hyprlang_provisioner.cli")


def get_version() -> str:
    try:
        return importlib.metadata.version("hyprlang-provisioner")
    except Exception:
        return "unknown"


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def require_config(root: Optional[Path]) -> ProvisionerConfig:
    try:
        config = load_config(root or Path.cwd())
    except ConfigError as exc:
        raise_exit(str(exc), cause=exc)
    try:
        setup_rotating_logger("hyprlang_provisioner", config.log)
    except OSError as exc:
        logger.warning("file logging unavailable: %s", exc)
    return config


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
