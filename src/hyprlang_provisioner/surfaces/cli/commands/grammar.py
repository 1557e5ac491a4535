from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import typer

from ....build import run_build
from ....core.config import ProvisionerConfig
from ....core.exceptions import ProvisionerError
from ....core.grammar import RefreshMode, provision_grammar


def register_grammar_commands(
    app: typer.Typer,
    *,
    require_config: Callable[[Optional[Path]], ProvisionerConfig],
    raise_exit: Callable[..., None],
) -> None:
    @app.command("provision-grammar")
    def provision(
        directory: Path = typer.Argument(..., help="Working copy directory"),
        repository: str = typer.Argument(..., help="Grammar repository URL"),
        commit: str = typer.Argument(..., help="Pinned commit"),
        mode: RefreshMode = typer.Option(
            RefreshMode.ALWAYS, "--mode", help="Refresh policy for existing copies"
        ),
    ):
        """Check out a grammar repository at a pinned commit."""
        try:
            result = provision_grammar(directory, repository, commit, mode=mode)
        except ProvisionerError as exc:
            raise_exit(
                f"unable to checkout grammar {repository} [{commit}]: {exc}",
                cause=exc,
            )
        action = "already at" if result.skipped else "checked out"
        typer.echo(f"{result.directory}: {action} {result.commit}")

    @app.command("build")
    def build(
        root: Optional[Path] = typer.Option(
            None, "--root", help="Extension root containing hyprlang.yml"
        ),
        mode: Optional[RefreshMode] = typer.Option(
            None, "--mode", help="Override grammar.refresh"
        ),
    ):
        """Provision the grammar named in the manifest and copy query files."""
        config = require_config(root)
        try:
            report = run_build(config, mode=mode)
        except ProvisionerError as exc:
            raise_exit(f"error: {exc}", cause=exc)
        for warning in report.warnings:
            typer.echo(f"warning: {warning}", err=True)
        typer.echo(
            f"grammar {report.grammar.name} at {report.grammar.commit} "
            f"({len(report.warnings)} warnings)"
        )
