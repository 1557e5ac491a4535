import logging

import typer

from .commands.grammar import register_grammar_commands
from .commands.language_server import register_language_server_commands
from .commands.utils import get_version, raise_exit, require_config

logger = logging.getLogger("hyprlang_provisioner.cli")

app = typer.Typer(add_completion=False)


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"hyprlang-provisioner {get_version()}")
    raise typer.Exit(code=0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    return


def main() -> None:
    """Entrypoint for CLI execution."""
    app()


register_language_server_commands(
    app, require_config=require_config, raise_exit=raise_exit
)
register_grammar_commands(app, require_config=require_config, raise_exit=raise_exit)
