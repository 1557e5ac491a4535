"""Test harness configuration.

This repo uses a `src/` layout; make sure tests import the in-repo code even
when an older installed `hyprlang_provisioner` is on the path.
"""

from __future__ import annotations

import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS = 120


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = str(repo_root / "src")
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """
    Apply a default per-test timeout to non-integration tests.

    This relies on `pytest-timeout` when installed; if it isn't installed, the
    marker is inert but still documents the intent.
    """
    _ = session, config
    for item in items:
        if item.get_closest_marker("integration") is not None:
            continue
        item.add_marker(pytest.mark.timeout(DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS))


requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


@dataclass(frozen=True)
class GrammarOrigin:
    path: Path
    url: str
    commit: str

    def commit_file(self, rel_path: str, content: str) -> str:
        from hyprlang_provisioner.core.git_utils import run_git

        file_path = self.path / rel_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        run_git(["add", rel_path], self.path, check=True)
        run_git(["commit", "-m", f"update {rel_path}"], self.path, check=True)
        return (run_git(["rev-parse", "HEAD"], self.path, check=True).stdout or "").strip()


@pytest.fixture()
def grammar_origin(tmp_path: Path) -> GrammarOrigin:
    """A local grammar repository with one commit, served over a file:// URL."""

    from hyprlang_provisioner.core.git_utils import run_git

    path = tmp_path / "tree-sitter-hyprlang"
    path.mkdir()
    run_git(["init"], path, check=True)
    run_git(["config", "user.email", "test@example.com"], path, check=True)
    run_git(["config", "user.name", "Test User"], path, check=True)
    run_git(["config", "commit.gpgsign", "false"], path, check=True)
    run_git(["config", "uploadpack.allowAnySHA1InWant", "true"], path, check=True)
    origin = GrammarOrigin(path=path, url=path.as_uri(), commit="")
    commit = origin.commit_file("queries/hyprlang/highlights.scm", "(comment) @comment\n")
    return GrammarOrigin(path=path, url=origin.url, commit=commit)
