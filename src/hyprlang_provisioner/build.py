"""One-shot build step: pinned grammar checkout followed by query distribution."""

from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from .core.config import ProvisionerConfig
from .core.grammar import GrammarSpec, ProvisionResult, RefreshMode, provision_grammar
from .core.logging_utils import log_event
from .core.manifest import load_extension_manifest
from .core.queries import CopyWarning, distribute_queries

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BuildReport:
    grammar: GrammarSpec
    provision: ProvisionResult
    warnings: list[CopyWarning]


def run_build(
    config: ProvisionerConfig, *, mode: Optional[RefreshMode] = None
) -> BuildReport:
    manifest = load_extension_manifest(config.grammar.manifest_path)
    grammar = manifest.grammar(config.grammar.name)
    result = provision_grammar(
        config.grammar.directory,
        grammar.repository,
        grammar.commit,
        mode=mode or config.grammar.refresh,
    )
    warnings = distribute_queries(
        [config.queries.grammar_queries, config.queries.shared],
        config.queries.languages,
    )
    log_event(
        logger,
        logging.INFO,
        "build.done",
        grammar=grammar.name,
        commit=grammar.commit,
        warnings=len(warnings),
    )
    return BuildReport(grammar=grammar, provision=result, warnings=warnings)
