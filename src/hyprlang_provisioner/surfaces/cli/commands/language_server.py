from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import typer

from ....core.acquisition import InstallationStatus, LanguageServerManager
from ....core.config import ProvisionerConfig, load_settings_document
from ....core.exceptions import ProvisionerError
from ....extension import HyprlangExtension
from .utils import echo_json


def _cli_status_reporter(
    server_id: str, status: InstallationStatus, detail: Optional[str] = None
) -> None:
    if status is InstallationStatus.NONE:
        return
    message = f"{server_id}: {status.value.replace('_', ' ')}"
    if detail:
        message = f"{message} ({detail})"
    typer.echo(message, err=True)


def register_language_server_commands(
    app: typer.Typer,
    *,
    require_config: Callable[[Optional[Path]], ProvisionerConfig],
    raise_exit: Callable[..., None],
) -> None:
    def _load(
        root: Optional[Path], settings: Optional[Path]
    ) -> tuple[HyprlangExtension, Any, str]:
        config = require_config(root)
        server_id = config.language_server.id
        raw: Any = None
        if settings is not None:
            try:
                raw = load_settings_document(settings, server_id)
            except ProvisionerError as exc:
                raise_exit(str(exc), cause=exc)
        manager = LanguageServerManager(
            config.language_server, status_reporter=_cli_status_reporter
        )
        return HyprlangExtension(config, manager=manager), raw, server_id

    @app.command("resolve")
    def resolve(
        root: Optional[Path] = typer.Option(
            None, "--root", help="Extension root containing hyprlang.yml"
        ),
        settings: Optional[Path] = typer.Option(
            None, "--settings", help="Workspace settings document (YAML or JSON)"
        ),
    ):
        """Print the language server launch command as JSON."""
        extension, raw, server_id = _load(root, settings)
        try:
            command = extension.language_server_command(server_id, raw)
        except ProvisionerError as exc:
            raise_exit(str(exc), cause=exc)
        echo_json(command.to_dict())

    @app.command("init-options")
    def init_options(
        root: Optional[Path] = typer.Option(None, "--root", help="Extension root"),
        settings: Optional[Path] = typer.Option(
            None, "--settings", help="Workspace settings document (YAML or JSON)"
        ),
    ):
        """Print the initialization options sent to the language server."""
        extension, raw, server_id = _load(root, settings)
        echo_json(extension.language_server_initialization_options(server_id, raw))

    @app.command("workspace-config")
    def workspace_config(
        root: Optional[Path] = typer.Option(None, "--root", help="Extension root"),
        settings: Optional[Path] = typer.Option(
            None, "--settings", help="Workspace settings document (YAML or JSON)"
        ),
    ):
        """Print the workspace configuration sent to the language server."""
        extension, raw, server_id = _load(root, settings)
        echo_json(extension.language_server_workspace_configuration(server_id, raw))
