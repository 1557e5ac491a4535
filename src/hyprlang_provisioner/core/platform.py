from __future__ import annotations

import dataclasses
import functools
import platform as _platform
import sys
from typing import Optional

from .exceptions import ConfigError

SUPPORTED_OS = ("darwin", "linux", "windows")
SUPPORTED_ARCH = ("aarch64", "x86", "x86_64")

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "i386": "x86",
    "i486": "x86",
    "i586": "x86",
    "i686": "x86",
    "x86": "x86",
}


class UnsupportedPlatformError(ConfigError):
    pass


@dataclasses.dataclass(frozen=True)
class PlatformTarget:
    os: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"


def _normalize_os(system: str) -> Optional[str]:
    value = system.strip().lower()
    if value.startswith("linux"):
        return "linux"
    if value == "darwin":
        return "darwin"
    if value in ("win32", "cygwin", "windows"):
        return "windows"
    return None


def detect_platform(system: str, machine: str) -> PlatformTarget:
    os_name = _normalize_os(system)
    if os_name is None:
        raise UnsupportedPlatformError(f"unsupported operating system: {system}")
    arch = _ARCH_ALIASES.get(machine.strip().lower())
    if arch is None:
        raise UnsupportedPlatformError(f"unsupported architecture: {machine}")
    return PlatformTarget(os=os_name, arch=arch)


@functools.lru_cache(maxsize=1)
def current_platform() -> PlatformTarget:
    return detect_platform(sys.platform, _platform.machine())


def archive_asset_name(tool: str, target: PlatformTarget) -> str:
    return f"{tool}-{target.os}-{target.arch}.tar.gz"


def binary_name(tool: str, target: PlatformTarget) -> str:
    return f"{tool}.exe" if target.is_windows else tool


def normalize_version(version: str) -> str:
    return version[1:] if version.startswith("v") else version


def version_directory_name(prefix: str, version: str) -> str:
    return f"{prefix}-{normalize_version(version)}"
