from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class ProvisionerError(Exception):
    """Base error for language server acquisition and grammar provisioning."""

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class ConfigError(ProvisionerError):
    """Malformed or missing settings, configuration, or manifest entries."""


class RemoteLookupError(ProvisionerError):
    """The upstream release query failed or found no qualifying release."""

    def __init__(self, message: str, *, repo: Optional[str] = None) -> None:
        super().__init__(message)
        self.repo = repo


class AssetNotFoundError(ProvisionerError):
    def __init__(self, asset_name: str, *, version: Optional[str] = None) -> None:
        super().__init__(f"asset not found in github release: {asset_name}")
        self.asset_name = asset_name
        self.version = version


class DownloadError(ProvisionerError):
    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class FilesystemError(ProvisionerError):
    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class GitCommandError(ProvisionerError):
    """A version-control invocation failed; carries the captured diagnostics."""

    def __init__(
        self,
        message: str,
        *,
        args: Optional[Sequence[str]] = None,
        cwd: Optional[Path] = None,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.git_args = list(args or [])
        self.cwd = cwd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class GrammarFetchError(GitCommandError):
    """The pinned revision could not be fetched and therefore not checked out."""


class GrammarCheckoutError(GitCommandError):
    """The pinned revision was fetched but could not be checked out."""


class RemoteMismatchError(ProvisionerError):
    def __init__(
        self,
        directory: Path,
        expected_url: str,
        *,
        remotes: Optional[Sequence[object]] = None,
    ) -> None:
        super().__init__(
            f"grammar directory '{directory}' already exists, "
            f"but is not a git clone of '{expected_url}'"
        )
        self.directory = directory
        self.expected_url = expected_url
        self.remotes = list(remotes or [])


__all__ = [
    "AssetNotFoundError",
    "ConfigError",
    "DownloadError",
    "FilesystemError",
    "GitCommandError",
    "GrammarCheckoutError",
    "GrammarFetchError",
    "ProvisionerError",
    "RemoteLookupError",
    "RemoteMismatchError",
]
