"""Provision a grammar working copy pinned to a single commit.

The working copy lives in its own directory with `origin` bound to the
grammar repository. An existing directory whose `origin` points anywhere else
is never reused or overwritten.
"""

from __future__ import annotations

import dataclasses
import logging
import string
from enum import Enum
from pathlib import Path
from typing import Optional

from .exceptions import (
    GitCommandError,
    GrammarCheckoutError,
    GrammarFetchError,
    RemoteMismatchError,
)
from .git_utils import GitRepository, git_failure_detail
from .logging_utils import log_event
from .remotes import Remote, has_remote, parse_remote_listing

logger = logging.getLogger(__name__)

ORIGIN = "origin"


class WorkingCopyState(str, Enum):
    ABSENT = "absent"
    PRESENT_MATCHING_REMOTE = "present_matching_remote"
    PRESENT_MISMATCHED_REMOTE = "present_mismatched_remote"


class RefreshMode(str, Enum):
    ALWAYS = "always"
    SKIP_IF_CURRENT = "skip-if-current"


@dataclasses.dataclass(frozen=True)
class GrammarSpec:
    name: str
    repository: str
    commit: str


@dataclasses.dataclass(frozen=True)
class ProvisionResult:
    directory: Path
    repository: str
    commit: str
    state: WorkingCopyState
    fetched: bool
    skipped: bool = False


def inspect_working_copy(
    repo: GitRepository, repository_url: str
) -> tuple[WorkingCopyState, list[Remote]]:
    # Only a missing directory is ABSENT. An existing one, even empty, must
    # already carry the expected origin.
    if not repo.path.exists():
        return WorkingCopyState.ABSENT, []
    if not repo.path.is_dir():
        return WorkingCopyState.PRESENT_MISMATCHED_REMOTE, []
    proc = repo.list_remotes()
    remotes = parse_remote_listing(proc.stdout or "") if proc.returncode == 0 else []
    if has_remote(remotes, ORIGIN, repository_url):
        return WorkingCopyState.PRESENT_MATCHING_REMOTE, remotes
    return WorkingCopyState.PRESENT_MISMATCHED_REMOTE, remotes


def _is_at_commit(head: Optional[str], commit: str) -> bool:
    if not head:
        return False
    if head == commit:
        return True
    wanted = commit.lower()
    return (
        len(wanted) >= 7
        and all(ch in string.hexdigits for ch in wanted)
        and head.lower().startswith(wanted)
    )


def _initialize(repo: GitRepository, repository_url: str) -> None:
    init = repo.bootstrap()
    if init.returncode != 0:
        raise GitCommandError(
            f"failed to run `git init` in directory '{repo.path}'",
            args=["init"],
            cwd=repo.path,
            returncode=init.returncode,
            stdout=init.stdout or "",
            stderr=init.stderr or "",
        )
    remote_add = repo.add_remote(ORIGIN, repository_url)
    if remote_add.returncode != 0:
        raise GitCommandError(
            f"failed to add remote {repository_url} for git repository "
            f"'{repo.git_dir}': {git_failure_detail(remote_add)}",
            args=["remote", "add", ORIGIN, repository_url],
            cwd=repo.path,
            returncode=remote_add.returncode,
            stdout=remote_add.stdout or "",
            stderr=remote_add.stderr or "",
        )


def provision_grammar(
    directory: Path,
    repository_url: str,
    commit: str,
    *,
    mode: RefreshMode = RefreshMode.ALWAYS,
) -> ProvisionResult:
    """Ensure `directory` is a working copy of `repository_url` at `commit`.

    With `RefreshMode.ALWAYS` the pinned commit is fetched and checked out on
    every run, even when the working copy already sits on it.
    `RefreshMode.SKIP_IF_CURRENT` returns early when HEAD already matches.

    Raises:
        RemoteMismatchError: the directory exists but `origin` is not
            `repository_url`. Nothing is fetched or checked out.
        GitCommandError: `git init` or `git remote add` failed.
        GrammarFetchError: checkout failed after the fetch also failed.
        GrammarCheckoutError: checkout failed although the fetch succeeded.
    """
    directory = Path(directory)
    repo = GitRepository(directory)
    state, remotes = inspect_working_copy(repo, repository_url)
    log_event(
        logger,
        logging.INFO,
        "grammar.inspect",
        directory=str(directory),
        repository=repository_url,
        commit=commit,
        state=state.value,
    )

    if state is WorkingCopyState.PRESENT_MISMATCHED_REMOTE:
        raise RemoteMismatchError(directory, repository_url, remotes=remotes)

    if state is WorkingCopyState.ABSENT:
        _initialize(repo, repository_url)
    elif mode is RefreshMode.SKIP_IF_CURRENT and _is_at_commit(
        repo.head_revision(), commit
    ):
        log_event(
            logger,
            logging.INFO,
            "grammar.skip",
            directory=str(directory),
            commit=commit,
        )
        return ProvisionResult(
            directory=directory,
            repository=repository_url,
            commit=commit,
            state=state,
            fetched=False,
            skipped=True,
        )

    fetch = repo.fetch(ORIGIN, commit)
    checkout = repo.checkout_revision(commit)
    if checkout.returncode != 0:
        if fetch.returncode != 0:
            raise GrammarFetchError(
                f"failed to fetch revision {commit} in directory '{directory}': "
                f"{git_failure_detail(fetch)}",
                args=["fetch", "--depth=1", ORIGIN, commit],
                cwd=directory,
                returncode=fetch.returncode,
                stdout=fetch.stdout or "",
                stderr=fetch.stderr or "",
            )
        raise GrammarCheckoutError(
            f"failed to checkout revision {commit} in directory '{directory}': "
            f"{git_failure_detail(checkout)}",
            args=["checkout", commit],
            cwd=directory,
            returncode=checkout.returncode,
            stdout=checkout.stdout or "",
            stderr=checkout.stderr or "",
        )
    if fetch.returncode != 0:
        log_event(
            logger,
            logging.WARNING,
            "grammar.fetch.failed",
            directory=str(directory),
            commit=commit,
            detail=git_failure_detail(fetch),
        )

    log_event(
        logger,
        logging.INFO,
        "grammar.ready",
        directory=str(directory),
        commit=commit,
    )
    return ProvisionResult(
        directory=directory,
        repository=repository_url,
        commit=commit,
        state=state,
        fetched=fetch.returncode == 0,
    )
