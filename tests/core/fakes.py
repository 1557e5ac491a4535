"""In-memory GitHub release server for acquisition and release tests."""

from __future__ import annotations

import io
import tarfile
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from hyprlang_provisioner.core.releases import ReleaseClient

API_BASE_URL = "https://api.github.test"
DOWNLOAD_BASE_URL = "https://downloads.github.test"


def make_tarball(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def release_payload(
    tag: str,
    asset_names: list[str],
    *,
    prerelease: bool = False,
    draft: bool = False,
) -> dict[str, Any]:
    return {
        "tag_name": tag,
        "prerelease": prerelease,
        "draft": draft,
        "assets": [
            {
                "name": name,
                "browser_download_url": f"{DOWNLOAD_BASE_URL}/{tag}/{name}",
            }
            for name in asset_names
        ],
    }


@dataclass
class FakeGitHub:
    releases: list[dict[str, Any]] = field(default_factory=list)
    downloads: dict[str, bytes] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    release_status: int = 200
    page_size: Optional[int] = None

    def add_release(self, tag: str, files_by_asset: dict[str, dict[str, bytes]], **kwargs) -> None:
        self.releases.append(release_payload(tag, list(files_by_asset), **kwargs))
        for asset_name, files in files_by_asset.items():
            self.downloads[f"/{tag}/{asset_name}"] = make_tarball(files)

    @property
    def release_queries(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "api.github.test"]

    @property
    def download_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "downloads.github.test"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "api.github.test":
            if self.release_status != 200:
                return httpx.Response(self.release_status, json={"message": "boom"})
            if self.page_size is None:
                return httpx.Response(200, json=self.releases)
            page = int(request.url.params.get("page", "1"))
            start = (page - 1) * self.page_size
            chunk = self.releases[start : start + self.page_size]
            headers = {}
            if start + self.page_size < len(self.releases):
                next_url = f"{API_BASE_URL}{request.url.path}?page={page + 1}"
                headers["Link"] = f'<{next_url}>; rel="next"'
            return httpx.Response(200, json=chunk, headers=headers)
        body = self.downloads.get(request.url.path)
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, content=body)

    def client(self) -> ReleaseClient:
        http = httpx.Client(transport=httpx.MockTransport(self.handler))
        return ReleaseClient(API_BASE_URL, client=http)
