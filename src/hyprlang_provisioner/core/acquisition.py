from __future__ import annotations

import dataclasses
import logging
import os
import shutil
import stat
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .config import LanguageServerConfig, LspSettings
from .exceptions import (
    AssetNotFoundError,
    DownloadError,
    FilesystemError,
    ProvisionerError,
)
from .logging_utils import log_event
from .platform import (
    PlatformTarget,
    archive_asset_name,
    binary_name,
    current_platform,
    version_directory_name,
)
from .releases import DownloadedFileType, ReleaseClient

logger = logging.getLogger(__name__)


class InstallationStatus(str, Enum):
    NONE = "none"
    CHECKING_FOR_UPDATE = "checking_for_update"
    DOWNLOADING = "downloading"
    FAILED = "failed"


StatusReporter = Callable[[str, InstallationStatus, Optional[str]], None]


@dataclasses.dataclass(frozen=True)
class Command:
    command: str
    args: List[str] = dataclasses.field(default_factory=list)
    env: Dict[str, str] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"command": self.command, "args": list(self.args), "env": dict(self.env)}


def log_installation_status(
    server_id: str, status: InstallationStatus, detail: Optional[str] = None
) -> None:
    level = logging.WARNING if status is InstallationStatus.FAILED else logging.INFO
    log_event(
        logger,
        level,
        "language_server.status",
        server_id=server_id,
        status=status.value,
        detail=detail,
    )


class LanguageServerManager:
    """Resolves the launch command for one language server.

    The manager owns `cached_binary_path`, set only after a successful
    acquisition, so one instance should live as long as the host session.
    """

    def __init__(
        self,
        config: LanguageServerConfig,
        *,
        release_client: Optional[ReleaseClient] = None,
        status_reporter: Optional[StatusReporter] = None,
        platform_target: Optional[PlatformTarget] = None,
    ) -> None:
        self._config = config
        self._release_client = release_client
        self._status_reporter = status_reporter or log_installation_status
        self._platform_target = platform_target
        self.cached_binary_path: Optional[str] = None

    @property
    def work_dir(self) -> Path:
        return self._config.work_dir

    def _client(self) -> ReleaseClient:
        if self._release_client is None:
            token = None
            if self._config.token_env:
                token = (os.environ.get(self._config.token_env) or "").strip() or None
            self._release_client = ReleaseClient(
                self._config.api_base_url,
                token=token,
                timeout_seconds=self._config.timeout_seconds,
            )
        return self._release_client

    def _report(self, status: InstallationStatus, detail: Optional[str] = None) -> None:
        self._status_reporter(self._config.id, status, detail)

    def _cached_binary(self) -> Optional[str]:
        path = self.cached_binary_path
        if path and os.path.isfile(path):
            return path
        return None

    def resolve(self, settings: LspSettings) -> Command:
        args = list(settings.binary.arguments)
        env = dict(settings.binary.env)

        # An explicit path always wins over the GitHub release.
        if settings.binary.path:
            return Command(command=settings.binary.path, args=args, env=env)

        cached = self._cached_binary()
        if cached:
            return Command(command=cached, args=args, env=env)

        try:
            binary_path = self._acquire()
        except ProvisionerError as exc:
            self._report(InstallationStatus.FAILED, str(exc))
            raise
        self.cached_binary_path = binary_path
        return Command(command=binary_path, args=args, env=env)

    def _acquire(self) -> str:
        self._report(InstallationStatus.CHECKING_FOR_UPDATE)
        release = self._client().latest_release(
            self._config.release_repo, require_assets=True, pre_release=False
        )
        version_dir_name = version_directory_name(
            self._config.version_prefix, release.version
        )
        target = self._platform_target or current_platform()
        asset_name = archive_asset_name(self._config.tool, target)
        executable_name = binary_name(self._config.tool, target)

        asset = release.asset(asset_name)
        if asset is None:
            raise AssetNotFoundError(asset_name, version=release.version)

        version_dir = self.work_dir / version_dir_name
        try:
            version_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"failed to create directory '{version_dir}': {exc}", path=version_dir
            ) from exc

        binary_path = version_dir / executable_name
        if not binary_path.is_file():
            self._report(InstallationStatus.DOWNLOADING)
            self._client().download_asset(
                asset.download_url, version_dir, DownloadedFileType.GZIP_TAR
            )
            if not binary_path.is_file():
                raise DownloadError(
                    f"{asset_name} does not contain {executable_name}",
                    url=asset.download_url,
                )
            if not target.is_windows:
                _make_executable(binary_path, asset.download_url)
            log_event(
                logger,
                logging.INFO,
                "language_server.installed",
                server_id=self._config.id,
                version=release.version,
                path=str(binary_path),
            )

        self._remove_stale_versions(version_dir_name)
        return str(binary_path)

    def _remove_stale_versions(self, keep: str) -> None:
        try:
            entries = list(self.work_dir.iterdir())
        except OSError as exc:
            log_event(
                logger,
                logging.WARNING,
                "language_server.cleanup.failed",
                path=str(self.work_dir),
                exc=exc,
            )
            return
        for entry in entries:
            if entry.name == keep:
                continue
            try:
                _remove_entry(entry)
            except OSError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "language_server.cleanup.failed",
                    path=str(entry),
                    exc=exc,
                )


def _remove_entry(entry: Path) -> None:
    if entry.is_dir() and not entry.is_symlink():
        shutil.rmtree(entry)
    else:
        entry.unlink()


def _make_executable(path: Path, url: str) -> None:
    try:
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as exc:
        raise DownloadError(
            f"failed to make '{path}' executable: {exc}", url=url
        ) from exc
