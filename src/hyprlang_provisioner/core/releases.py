from __future__ import annotations

import dataclasses
import gzip
import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import httpx

from .exceptions import DownloadError, RemoteLookupError
from .logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.github.com"
_RELEASES_PER_PAGE = 30
_MAX_RELEASE_PAGES = 10


class DownloadedFileType(str, Enum):
    GZIP_TAR = "gzip_tar"
    GZIP = "gzip"
    ZIP = "zip"
    UNCOMPRESSED = "uncompressed"


@dataclasses.dataclass(frozen=True)
class ReleaseAsset:
    name: str
    download_url: str


@dataclasses.dataclass(frozen=True)
class ReleaseDescriptor:
    version: str
    assets: tuple[ReleaseAsset, ...]

    def asset(self, name: str) -> Optional[ReleaseAsset]:
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None


def _parse_release(item: Any) -> Optional[tuple[ReleaseDescriptor, bool, bool]]:
    if not isinstance(item, dict):
        return None
    version = item.get("tag_name")
    if not isinstance(version, str) or not version:
        return None
    assets: list[ReleaseAsset] = []
    for raw in item.get("assets") or []:
        if not isinstance(raw, dict):
            continue
        name = raw.get("name")
        url = raw.get("browser_download_url")
        if isinstance(name, str) and isinstance(url, str):
            assets.append(ReleaseAsset(name=name, download_url=url))
    descriptor = ReleaseDescriptor(version=version, assets=tuple(assets))
    return descriptor, bool(item.get("prerelease")), bool(item.get("draft"))


def _asset_filename(url: str) -> str:
    name = PurePosixPath(unquote(urlparse(url).path)).name
    return name or "download"


class ReleaseClient:
    """Queries GitHub releases and downloads their assets."""

    def __init__(
        self,
        api_base_url: str = DEFAULT_API_BASE_URL,
        *,
        token: Optional[str] = None,
        timeout_seconds: Optional[float] = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout_seconds, follow_redirects=True
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ReleaseClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _api_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def latest_release(
        self,
        repo: str,
        *,
        require_assets: bool = True,
        pre_release: bool = False,
    ) -> ReleaseDescriptor:
        """Return the newest release matching the pre-release and asset filters.

        Drafts are never selected. Raises `RemoteLookupError` on transport
        errors, unexpected payloads, or when no release qualifies.
        """
        url: Optional[str] = f"{self._api_base_url}/repos/{repo}/releases"
        params: Optional[dict[str, Any]] = {"per_page": _RELEASES_PER_PAGE}
        pages = 0
        while url and pages < _MAX_RELEASE_PAGES:
            pages += 1
            try:
                response = self._client.get(
                    url, params=params, headers=self._api_headers()
                )
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                raise RemoteLookupError(
                    f"failed to query releases for {repo}: {exc}", repo=repo
                ) from exc
            except ValueError as exc:
                raise RemoteLookupError(
                    f"non-JSON release listing for {repo} from {response.url!s}",
                    repo=repo,
                ) from exc
            if not isinstance(payload, list):
                raise RemoteLookupError(
                    f"unexpected release listing for {repo}: expected a list",
                    repo=repo,
                )
            for item in payload:
                parsed = _parse_release(item)
                if parsed is None:
                    continue
                release, is_pre_release, is_draft = parsed
                if is_draft or is_pre_release != pre_release:
                    continue
                if require_assets and not release.assets:
                    continue
                log_event(
                    logger,
                    logging.INFO,
                    "release.selected",
                    repo=repo,
                    version=release.version,
                    assets=len(release.assets),
                )
                return release
            next_link = response.links.get("next")
            url = next_link.get("url") if next_link else None
            # The `next` link already carries its query string.
            params = None
        raise RemoteLookupError(f"no release found for {repo}", repo=repo)

    def download_asset(
        self,
        url: str,
        destination: Path,
        file_type: DownloadedFileType = DownloadedFileType.GZIP_TAR,
    ) -> None:
        """Download `url` and unpack it into `destination`.

        Content is staged in a temporary directory inside `destination` and
        moved into place only once it has been fully downloaded and unpacked.
        Removing the staging directory afterwards is best-effort.
        """
        try:
            destination.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=".download-", dir=destination))
        except OSError as exc:
            raise DownloadError(
                f"failed to prepare download directory '{destination}': {exc}",
                url=url,
            ) from exc
        try:
            self._download_into(url, staging, destination, file_type)
        finally:
            _discard_staging(staging)
        log_event(
            logger,
            logging.INFO,
            "release.download.done",
            url=url,
            destination=str(destination),
        )

    def _download_into(
        self,
        url: str,
        staging: Path,
        destination: Path,
        file_type: DownloadedFileType,
    ) -> None:
        filename = _asset_filename(url)
        archive = staging / f"{filename}.partial"
        log_event(logger, logging.INFO, "release.download.start", url=url)
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                with archive.open("wb") as handle:
                    for chunk in response.iter_bytes():
                        handle.write(chunk)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DownloadError(f"failed to download file: {exc}", url=url) from exc
        except OSError as exc:
            raise DownloadError(
                f"failed to write download to '{archive}': {exc}", url=url
            ) from exc

        try:
            unpacked = staging / "unpacked"
            unpacked.mkdir()
            _unpack(archive, unpacked, file_type, filename)
            _move_entries(unpacked, destination)
        except DownloadError:
            raise
        except (OSError, tarfile.TarError, zipfile.BadZipFile) as exc:
            raise DownloadError(
                f"failed to extract {filename} into '{destination}': {exc}",
                url=url,
            ) from exc


def _discard_staging(staging: Path) -> None:
    try:
        shutil.rmtree(staging)
    except OSError as exc:
        log_event(
            logger,
            logging.WARNING,
            "release.staging.cleanup.failed",
            path=str(staging),
            exc=exc,
        )


def _unpack(
    archive: Path, target: Path, file_type: DownloadedFileType, filename: str
) -> None:
    if file_type is DownloadedFileType.GZIP_TAR:
        with tarfile.open(archive, "r:gz") as tar:
            tar.extractall(target, filter="data")
    elif file_type is DownloadedFileType.ZIP:
        with zipfile.ZipFile(archive) as bundle:
            root = target.resolve()
            for member in bundle.namelist():
                resolved = (target / member).resolve()
                if resolved != root and root not in resolved.parents:
                    raise DownloadError(
                        f"archive member escapes destination: {member}"
                    )
            bundle.extractall(target)
    elif file_type is DownloadedFileType.GZIP:
        output = target / (filename[:-3] if filename.endswith(".gz") else filename)
        with gzip.open(archive, "rb") as src, output.open("wb") as dst:
            shutil.copyfileobj(src, dst)
    else:
        os.replace(archive, target / filename)


def _move_entries(source: Path, destination: Path) -> None:
    for entry in source.iterdir():
        target = destination / entry.name
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        os.replace(entry, target)
