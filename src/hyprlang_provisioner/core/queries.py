from __future__ import annotations

import dataclasses
import logging
import shutil
from pathlib import Path
from typing import Sequence

from .exceptions import ConfigError
from .logging_utils import log_event

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class CopyWarning:
    source: Path
    destination: Path
    detail: str

    def __str__(self) -> str:
        return f"unable to copy {self.source} to {self.destination}: {self.detail}"


def _list_dir(path: Path, label: str) -> list[Path]:
    try:
        return sorted(path.iterdir())
    except OSError as exc:
        raise ConfigError(f"unable to read {label} {path}: {exc}") from exc


def distribute_queries(
    sources: Sequence[Path], languages_dir: Path
) -> list[CopyWarning]:
    """Copy every query file in `sources` into each language directory.

    Unreadable source or language directories are fatal. Failures to copy an
    individual file are collected and returned.
    """
    queries: list[Path] = []
    for source in sources:
        queries.extend(p for p in _list_dir(source, "query directory") if p.is_file())
    languages = [
        p for p in _list_dir(languages_dir, "languages directory") if p.is_dir()
    ]

    warnings: list[CopyWarning] = []
    for query in queries:
        for language in languages:
            destination = language / query.name
            try:
                shutil.copy(query, destination)
            except OSError as exc:
                warning = CopyWarning(query, destination, str(exc))
                warnings.append(warning)
                log_event(
                    logger,
                    logging.WARNING,
                    "queries.copy.failed",
                    source=str(query),
                    destination=str(destination),
                    exc=exc,
                )
    log_event(
        logger,
        logging.INFO,
        "queries.distributed",
        queries=len(queries),
        languages=len(languages),
        warnings=len(warnings),
    )
    return warnings
