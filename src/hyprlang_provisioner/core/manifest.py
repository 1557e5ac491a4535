from __future__ import annotations

import dataclasses
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigError
from .grammar import GrammarSpec


@dataclasses.dataclass(frozen=True)
class ExtensionManifest:
    path: Path
    id: Optional[str]
    name: Optional[str]
    version: Optional[str]
    grammars: Dict[str, GrammarSpec]

    def grammar(self, name: str) -> GrammarSpec:
        try:
            return self.grammars[name]
        except KeyError:
            raise ConfigError(
                f"extension does not specify a {name} grammar ({self.path})"
            ) from None


def _parse_grammar(name: str, raw: Any, path: Path) -> GrammarSpec:
    if not isinstance(raw, dict):
        raise ConfigError(f"grammars.{name} must be a table in {path}")
    repository = raw.get("repository")
    if not isinstance(repository, str) or not repository.strip():
        raise ConfigError(f"grammars.{name}.repository must be a non-empty string")
    # `rev` is accepted as an alias of `commit`.
    commit = raw.get("commit", raw.get("rev"))
    if not isinstance(commit, str) or not commit.strip():
        raise ConfigError(f"grammars.{name}.commit must be a non-empty string")
    return GrammarSpec(name=name, repository=repository.strip(), commit=commit.strip())


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


def load_extension_manifest(path: Path) -> ExtensionManifest:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"unable to read {path}: {exc}") from exc
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"unable to parse {path}: {exc}") from exc

    grammars_raw = data.get("grammars", {})
    if not isinstance(grammars_raw, dict):
        raise ConfigError(f"grammars must be a table in {path}")
    grammars = {
        name: _parse_grammar(name, raw, path) for name, raw in grammars_raw.items()
    }
    return ExtensionManifest(
        path=path,
        id=_optional_str(data, "id"),
        name=_optional_str(data, "name"),
        version=_optional_str(data, "version"),
        grammars=grammars,
    )
