import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, cast

import yaml

from .exceptions import ConfigError
from .grammar import RefreshMode

CONFIG_FILENAME = "hyprlang.yml"
OVERRIDE_FILENAME = "hyprlang.override.yml"

WORK_DIR_ENV = "HYPRLANG_WORK_DIR"
GRAMMAR_REFRESH_ENV = "HYPRLANG_GRAMMAR_REFRESH"
OUT_DIR_ENV = "HYPRLANG_OUT_DIR"

DEFAULT_CONFIG: Dict[str, Any] = {
    "language_server": {
        "id": "hyprls",
        "release_repo": "hyprland-community/hyprls",
        "tool": "hyprls",
        "version_prefix": "hyprlang",
        "api_base_url": "https://api.github.com",
        "token_env": "GITHUB_TOKEN",
        "timeout_seconds": 30,
        "work_dir": ".hyprlang/language-server",
    },
    "grammar": {
        "name": "hyprlang",
        "manifest": "extension.toml",
        "out_dir": "build",
        "refresh": RefreshMode.ALWAYS.value,
    },
    "queries": {
        "grammar_queries": "grammars/hyprlang/queries/hyprlang",
        "shared": "hyprlang",
        "languages": "languages",
    },
    "log": {
        "path": ".hyprlang/hyprlang.log",
        "level": "INFO",
        "max_bytes": 1_000_000,
        "backup_count": 3,
    },
}


@dataclasses.dataclass(frozen=True)
class LogConfig:
    path: Path
    level: int
    max_bytes: int
    backup_count: int


@dataclasses.dataclass(frozen=True)
class LanguageServerConfig:
    id: str
    release_repo: str
    tool: str
    version_prefix: str
    api_base_url: str
    token_env: Optional[str]
    timeout_seconds: Optional[float]
    work_dir: Path


@dataclasses.dataclass(frozen=True)
class GrammarConfig:
    name: str
    manifest_path: Path
    out_dir: Path
    refresh: RefreshMode

    @property
    def directory(self) -> Path:
        return self.out_dir / self.name


@dataclasses.dataclass(frozen=True)
class QueriesConfig:
    grammar_queries: Path
    shared: Path
    languages: Path


@dataclasses.dataclass(frozen=True)
class ProvisionerConfig:
    root: Path
    raw: Dict[str, Any]
    language_server: LanguageServerConfig
    grammar: GrammarConfig
    queries: QueriesConfig
    log: LogConfig


@dataclasses.dataclass(frozen=True)
class BinarySettings:
    path: Optional[str] = None
    arguments: List[str] = dataclasses.field(default_factory=list)
    env: Dict[str, str] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class LspSettings:
    """Per-workspace language server settings supplied by the host."""

    binary: BinarySettings = dataclasses.field(default_factory=BinarySettings)
    initialization_options: Any = None
    settings: Any = None

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> "LspSettings":
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ConfigError("lsp settings must be a mapping")
        binary_raw = raw.get("binary")
        if binary_raw is None:
            binary = BinarySettings()
        elif not isinstance(binary_raw, Mapping):
            raise ConfigError("binary must be a mapping")
        else:
            binary = _parse_binary_settings(binary_raw)
        return cls(
            binary=binary,
            initialization_options=raw.get("initialization_options"),
            settings=raw.get("settings"),
        )


def _parse_binary_settings(raw: Mapping[str, Any]) -> BinarySettings:
    path = raw.get("path")
    if path is not None and not isinstance(path, str):
        raise ConfigError("binary.path must be a string")
    arguments = raw.get("arguments")
    if arguments is None:
        arguments = []
    if not isinstance(arguments, list) or not all(
        isinstance(arg, str) for arg in arguments
    ):
        raise ConfigError("binary.arguments must be a list of strings")
    env = raw.get("env")
    if env is None:
        env = {}
    if not isinstance(env, Mapping):
        raise ConfigError("binary.env must be a mapping")
    for key, value in env.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ConfigError(f"binary.env.{key} must map a string to a string")
    return BinarySettings(path=path or None, arguments=list(arguments), env=dict(env))


def load_settings_document(path: Path, server_id: str) -> Optional[Dict[str, Any]]:
    """Read a host settings document (YAML or JSON).

    Documents shaped like editor settings (`lsp: {<server id>: {...}}`) are
    narrowed to the server's entry; anything else is taken as the entry itself.
    """
    data = _load_yaml_dict(path, required=True)
    lsp = data.get("lsp")
    if isinstance(lsp, Mapping):
        entry = lsp.get(server_id)
        if entry is not None and not isinstance(entry, Mapping):
            raise ConfigError(f"lsp.{server_id} must be a mapping in {path}")
        return dict(entry) if entry is not None else None
    return data


def _merge_defaults(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = cast(Dict[str, Any], json.loads(json.dumps(base)))
    for key, value in overrides.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml_dict(path: Path, *, required: bool = False) -> Dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except Exception as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name)
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _require_str(section: Dict[str, Any], key: str, scope: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{scope}.{key} must be a non-empty string")
    return value.strip()


def _require_int(section: Dict[str, Any], key: str, scope: str) -> int:
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{scope}.{key} must be a non-negative integer")
    return value


def _resolve_path(root: Path, raw: str) -> Path:
    path = Path(raw).expanduser()
    return path if path.is_absolute() else root / path


def _parse_refresh_mode(raw: Any) -> RefreshMode:
    try:
        return RefreshMode(str(raw).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(mode.value for mode in RefreshMode)
        raise ConfigError(
            f"grammar.refresh must be one of {allowed} (got {raw!r})"
        ) from exc


def _parse_log_level(raw: Any) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    level = logging.getLevelName(str(raw).strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"log.level is not a valid logging level: {raw!r}")
    return level


def _parse_language_server_config(
    cfg: Dict[str, Any], root: Path, env: Mapping[str, str]
) -> LanguageServerConfig:
    scope = "language_server"
    timeout_raw = cfg.get("timeout_seconds")
    if timeout_raw is not None and (
        isinstance(timeout_raw, bool)
        or not isinstance(timeout_raw, (int, float))
        or timeout_raw <= 0
    ):
        raise ConfigError(f"{scope}.timeout_seconds must be a positive number or null")
    token_env = cfg.get("token_env")
    if token_env is not None and not isinstance(token_env, str):
        raise ConfigError(f"{scope}.token_env must be a string")
    work_dir_raw = env.get(WORK_DIR_ENV) or _require_str(cfg, "work_dir", scope)
    return LanguageServerConfig(
        id=_require_str(cfg, "id", scope),
        release_repo=_require_str(cfg, "release_repo", scope),
        tool=_require_str(cfg, "tool", scope),
        version_prefix=_require_str(cfg, "version_prefix", scope),
        api_base_url=_require_str(cfg, "api_base_url", scope).rstrip("/"),
        token_env=token_env or None,
        timeout_seconds=float(timeout_raw) if timeout_raw is not None else None,
        work_dir=_resolve_path(root, work_dir_raw),
    )


def _parse_grammar_config(
    cfg: Dict[str, Any], root: Path, env: Mapping[str, str]
) -> GrammarConfig:
    scope = "grammar"
    out_dir_raw = env.get(OUT_DIR_ENV) or _require_str(cfg, "out_dir", scope)
    refresh_raw = env.get(GRAMMAR_REFRESH_ENV) or cfg.get("refresh")
    return GrammarConfig(
        name=_require_str(cfg, "name", scope),
        manifest_path=_resolve_path(root, _require_str(cfg, "manifest", scope)),
        out_dir=_resolve_path(root, out_dir_raw),
        refresh=_parse_refresh_mode(refresh_raw),
    )


def _parse_queries_config(cfg: Dict[str, Any], root: Path) -> QueriesConfig:
    scope = "queries"
    return QueriesConfig(
        grammar_queries=_resolve_path(root, _require_str(cfg, "grammar_queries", scope)),
        shared=_resolve_path(root, _require_str(cfg, "shared", scope)),
        languages=_resolve_path(root, _require_str(cfg, "languages", scope)),
    )


def _parse_log_config(cfg: Dict[str, Any], root: Path) -> LogConfig:
    return LogConfig(
        path=_resolve_path(root, _require_str(cfg, "path", "log")),
        level=_parse_log_level(cfg.get("level", "INFO")),
        max_bytes=_require_int(cfg, "max_bytes", "log"),
        backup_count=_require_int(cfg, "backup_count", "log"),
    )


def load_config(
    root: Path, env: Optional[Mapping[str, str]] = None
) -> ProvisionerConfig:
    root = root.resolve()
    env = os.environ if env is None else env
    merged = _merge_defaults(DEFAULT_CONFIG, _load_yaml_dict(root / CONFIG_FILENAME))
    override_path = root / OVERRIDE_FILENAME
    try:
        override = _load_yaml_dict(override_path)
    except ConfigError as exc:
        raise ConfigError(
            f"Invalid override config {override_path}; fix or delete it: {exc}"
        ) from exc
    if override:
        merged = _merge_defaults(merged, override)
    return ProvisionerConfig(
        root=root,
        raw=merged,
        language_server=_parse_language_server_config(
            _section(merged, "language_server"), root, env
        ),
        grammar=_parse_grammar_config(_section(merged, "grammar"), root, env),
        queries=_parse_queries_config(_section(merged, "queries"), root),
        log=_parse_log_config(_section(merged, "log"), root),
    )
