from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from .exceptions import FilesystemError, GitCommandError
from .remotes import Remote, parse_remote_listing


def _git_env() -> dict[str, str]:
    env = dict(os.environ)
    # Never block a build step on an interactive credential prompt.
    env.setdefault("GIT_TERMINAL_PROMPT", "0")
    return env


def run_git(
    args: Sequence[str],
    cwd: Path,
    *,
    git_dir: Optional[Path] = None,
    timeout_seconds: Optional[float] = None,
    check: bool = False,
) -> subprocess.CompletedProcess[str]:
    cmd = ["git"]
    if git_dir is not None:
        cmd.extend(["--git-dir", str(git_dir)])
    cmd.extend(args)
    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            env=_git_env(),
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=False,
        )
    except FileNotFoundError as exc:
        if not cwd.exists():
            raise GitCommandError(
                f"git {' '.join(args)} failed: directory '{cwd}' does not exist",
                args=args,
                cwd=cwd,
            ) from exc
        raise GitCommandError(
            "git executable not found on PATH", args=args, cwd=cwd
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise GitCommandError(
            f"git {' '.join(args)} timed out after {timeout_seconds}s in '{cwd}'",
            args=args,
            cwd=cwd,
        ) from exc
    except OSError as exc:
        raise GitCommandError(
            f"git {' '.join(args)} could not be started in '{cwd}': {exc}",
            args=args,
            cwd=cwd,
        ) from exc
    if check and proc.returncode != 0:
        detail = (proc.stderr or proc.stdout or "").strip()
        raise GitCommandError(
            f"git {' '.join(args)} failed in '{cwd}': {detail}",
            args=args,
            cwd=cwd,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
    return proc


def git_failure_detail(proc: subprocess.CompletedProcess[str]) -> str:
    return (proc.stderr or proc.stdout or "").strip()


class GitRepository:
    """Git commands bound to one repository location.

    Every command runs with the location as its working directory. The git
    data directory is `<location>/.git`, or the location itself when `bare`
    is set so that bare data and a checkout can share one directory.

    Methods return the raw `CompletedProcess`; interpreting exit codes and
    output is left to callers.
    """

    def __init__(self, path: Path, *, bare: bool = False) -> None:
        self._path = Path(path)
        self._bare = bare

    @property
    def path(self) -> Path:
        return self._path

    @property
    def git_dir(self) -> Path:
        return self._path if self._bare else self._path / ".git"

    def _run(self, args: Sequence[str]) -> subprocess.CompletedProcess[str]:
        return run_git(args, self._path, git_dir=self.git_dir)

    def list_remotes(self) -> subprocess.CompletedProcess[str]:
        return self._run(["remote", "-v"])

    def remotes(self) -> list[Remote]:
        proc = self.list_remotes()
        if proc.returncode != 0:
            return []
        return parse_remote_listing(proc.stdout or "")

    def add_remote(self, name: str, url: str) -> subprocess.CompletedProcess[str]:
        return self._run(["remote", "add", name, url])

    def list_branches(self) -> subprocess.CompletedProcess[str]:
        return self._run(["branch", "--format=%(refname:short)"])

    def branches(self) -> list[str]:
        proc = self.list_branches()
        if proc.returncode != 0:
            return []
        return [line.strip() for line in (proc.stdout or "").splitlines() if line.strip()]

    def has_branch(self, branch: str) -> bool:
        return branch in self.branches()

    def delete_branch(self, branch: str) -> subprocess.CompletedProcess[str]:
        return self._run(["branch", "-D", branch])

    def checkout(
        self, branch: str, revision: Optional[str] = None
    ) -> subprocess.CompletedProcess[str]:
        args = ["checkout", "-b", branch]
        if revision:
            args.append(revision)
        return self._run(args)

    def checkout_revision(self, revision: str) -> subprocess.CompletedProcess[str]:
        return self._run(["checkout", revision])

    def fetch(
        self, remote: str, revision: Optional[str] = None
    ) -> subprocess.CompletedProcess[str]:
        args = ["fetch", remote]
        if revision:
            args = ["fetch", "--depth=1", remote, revision]
        return self._run(args)

    def head_revision(self) -> Optional[str]:
        proc = self._run(["rev-parse", "--verify", "--quiet", "HEAD"])
        if proc.returncode != 0:
            return None
        return (proc.stdout or "").strip() or None

    def bootstrap(self) -> subprocess.CompletedProcess[str]:
        try:
            self._path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"failed to create directory '{self._path}': {exc}", path=self._path
            ) from exc
        args = ["init", "--bare"] if self._bare else ["init"]
        return run_git(args, self._path)
