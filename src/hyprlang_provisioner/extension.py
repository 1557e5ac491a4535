"""Capabilities exposed to the editor host."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .core.acquisition import Command, LanguageServerManager
from .core.config import LspSettings, ProvisionerConfig
from .core.exceptions import ConfigError


class HyprlangExtension:
    def __init__(
        self,
        config: ProvisionerConfig,
        *,
        manager: Optional[LanguageServerManager] = None,
    ) -> None:
        self._config = config
        self._manager = manager or LanguageServerManager(config.language_server)

    @property
    def manager(self) -> LanguageServerManager:
        return self._manager

    def _settings(
        self, server_id: str, raw_settings: Optional[Mapping[str, Any]]
    ) -> LspSettings:
        if server_id != self._config.language_server.id:
            raise ConfigError(f"unknown language server: {server_id}")
        return LspSettings.from_raw(raw_settings)

    def language_server_command(
        self, server_id: str, raw_settings: Optional[Mapping[str, Any]] = None
    ) -> Command:
        return self._manager.resolve(self._settings(server_id, raw_settings))

    def language_server_initialization_options(
        self, server_id: str, raw_settings: Optional[Mapping[str, Any]] = None
    ) -> Any:
        return self._settings(server_id, raw_settings).initialization_options

    def language_server_workspace_configuration(
        self, server_id: str, raw_settings: Optional[Mapping[str, Any]] = None
    ) -> Any:
        return self._settings(server_id, raw_settings).settings
