from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging
import os
from pathlib import Path
import re
import subprocess
import time
from typing import Protocol
from .styles import Painter
from .styles import StyleClass as SC

log = logging.getLogger(__name__)

#: Default maximum display length of the repository HEAD
MAX_HEAD_LEN = 15

#: Default number of seconds that querying Git may take before it is abandoned
DEFAULT_TIMEOUT = 3.0


@dataclass
class RepoStatus:
    #: A description of the repository's ``HEAD``: either the name of the
    #: current branch (if any), or the name of the currently checked-out tag
    #: (if any), or the short form of the current commit hash
    head: str

    #: `True` iff the repository is in a detached ``HEAD`` state
    detached: bool

    #: The number of commits by which ``HEAD`` is ahead of ``@{upstream}``, or
    #: `None` if there is no upstream
    ahead: int | None

    #: The number of commits by which ``HEAD`` is behind ``@{upstream}``, or
    #: `None` if there is no upstream
    behind: int | None

    #: The number of paths with changes staged to be committed
    staged: int

    #: The number of paths with unstaged changes in the working tree
    unstaged: int

    #: The number of untracked paths in the working tree
    untracked: int

    #: The number of paths with merge conflicts
    conflicted: int = 0

    #: `True` iff there are any stashed changes
    stashed: bool = False

    #: The current state of the working tree, or `None` if there are no
    #: rebases/bisections/etc. currently in progress
    state: GitState | None = None

    @property
    def branch(self) -> str | None:
        """The name of the current branch, or `None` if ``HEAD`` is detached"""
        return None if self.detached else self.head

    def display(self, paint: Painter) -> str:
        p = ""
        if self.stashed:
            # We have stashed changes:
            p += paint("+", SC.GIT_STASHED)
        # Show HEAD; color changes depending on whether it's detached:
        p += paint(
            shorthead(self.head), SC.GIT_DETACHED if self.detached else SC.GIT_HEAD
        )
        if self.ahead:
            # Show commits ahead of upstream:
            p += paint(f"+{self.ahead}", SC.GIT_AHEAD)
            if self.behind:
                # Ahead/behind separator:
                p += ","
        if self.behind:
            # Show commits behind upstream:
            p += paint(f"-{self.behind}", SC.GIT_BEHIND)
        if self.staged or self.unstaged or self.untracked:
            p += ":"
            if self.staged:
                p += paint(f"s{self.staged}", SC.GIT_STAGED)
            if self.unstaged:
                p += paint(f"d{self.unstaged}", SC.GIT_UNSTAGED)
            if self.untracked:
                p += paint(f"u{self.untracked}", SC.GIT_UNTRACKED)
        if self.conflicted:
            p += paint(f"!{self.conflicted}", SC.GIT_CONFLICT)
        if self.state is not None:
            # The repository is in the middle of something special:
            p += paint("[" + self.state.value + "]", SC.GIT_STATE)
        return p


class GitState(Enum):
    """
    Represents the various "in progress" states that a Git repository can be
    in.  The value of each enumeration is a short string for displaying in a
    command prompt.
    """

    REBASE_MERGING = "REBAS"
    REBASE_APPLYING = "REBAS"
    MERGING = "MERGE"
    CHERRY_PICKING = "CHYPK"
    REVERTING = "REVRT"
    BISECTING = "BSECT"


class StatusProvider(Protocol):
    """
    Something that can report the status of the Git repository whose work
    tree is rooted at ``root`` and whose Git directory is ``git_dir``.
    Implementations return `None` if the status cannot be determined and may
    raise `OSError`, `subprocess.SubprocessError`, or `ValueError` on failure.
    """

    def __call__(self, root: Path, git_dir: Path) -> RepoStatus | None: ...


@dataclass
class GitCLIProvider:
    """
    Determine repository status by running the ``git`` command.  All of the
    commands run for a single query must finish within ``timeout`` seconds in
    total; if they don't, `subprocess.TimeoutExpired` is raised.
    """

    timeout: float = DEFAULT_TIMEOUT

    def __call__(self, root: Path, git_dir: Path) -> RepoStatus | None:
        deadline = time.monotonic() + self.timeout

        def run(*args: str) -> str | None:
            return git(*args, cwd=root, deadline=deadline)

        out = run("status", "--porcelain=v2", "--branch")
        if out is None:
            return None
        status = parse_status(out)
        if status.detached:
            head = run("describe", "--tags", "--exact-match", "HEAD") or run(
                "rev-parse", "--short", "HEAD"
            )
            if head:
                status.head = head
        status.stashed = (
            run("rev-parse", "--verify", "--quiet", "refs/stash") is not None
        )
        status.state = repo_state(git_dir)
        return status


def inspect(dirpath: str | Path, provider: StatusProvider) -> RepoStatus | None:
    """
    If ``dirpath`` is in a Git repository, return a `RepoStatus` instance
    describing the repository's current state as reported by ``provider``.

    If ``dirpath`` is not in a Git repository, or if the status cannot be
    determined for any reason (Git is not installed, a permission error, the
    query taking too long, etc.), return `None`.
    """
    start = time.monotonic()
    try:
        root = find_repo_root(Path(dirpath))
        if root is None:
            log.debug("%s is not in a Git repository", dirpath)
            return None
        git_dir = git_dir_of(root)
        if git_dir is None:
            log.debug("Could not locate Git directory for %s", root)
            return None
        status = provider(root, git_dir)
    except (OSError, subprocess.SubprocessError, ValueError) as e:
        log.debug("Git status unavailable for %s: %s", dirpath, e)
        return None
    log.debug("Inspected repository at %s in %.3fs", root, time.monotonic() - start)
    return status


def git_status(
    dirpath: str | Path, timeout: float = DEFAULT_TIMEOUT
) -> RepoStatus | None:
    """
    Return the status of the Git repository containing ``dirpath`` (if any),
    querying it with the ``git`` command and giving up after ``timeout``
    seconds
    """
    return inspect(dirpath, GitCLIProvider(timeout=timeout))


def find_repo_root(dirpath: Path) -> Path | None:
    """
    Return the nearest directory at or above ``dirpath`` that contains a
    ``.git`` entry, or `None` if the filesystem root is reached without
    finding one
    """
    dirpath = dirpath.absolute()
    for d in (dirpath, *dirpath.parents):
        if (d / ".git").exists():
            return d
    return None


def git_dir_of(root: Path) -> Path | None:
    """
    Return the Git directory for the work tree at ``root``.  This is usually
    ``root/.git``, but for linked worktrees & submodules, ``.git`` is a file
    pointing to the real location.
    """
    dotgit = root / ".git"
    if dotgit.is_dir():
        return dotgit
    try:
        content = dotgit.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    if m := re.match(r"gitdir:\s*", content):
        return root / content[m.end() :]
    return None


def parse_status(output: str) -> RepoStatus:
    """
    Parse the output from ``git status --porcelain=v2 --branch``.  If
    ``HEAD`` is detached, the returned object's ``head`` is the abbreviated
    commit hash.

    :raises ValueError: if the output lacks the branch headers
    """
    head: str | None = None
    oid: str | None = None
    detached = False
    ahead: int | None = None
    behind: int | None = None
    staged = 0
    unstaged = 0
    untracked = 0
    conflicted = 0
    for line in output.splitlines():
        if line.startswith("# "):
            key, _, value = line[2:].partition(" ")
            if key == "branch.oid":
                oid = value
            elif key == "branch.head":
                if value == "(detached)":
                    detached = True
                else:
                    head = value
            elif key == "branch.ab":
                if m := re.fullmatch(r"\+(\d+) -(\d+)", value):
                    ahead = int(m[1])
                    behind = int(m[2])
        elif line.startswith(("1 ", "2 ")):
            # Ordinary & renamed/copied entries; "." means "unmodified"
            xy = line[2:4]
            if xy[0] != ".":
                staged += 1
            if xy[1] != ".":
                unstaged += 1
        elif line.startswith("u "):
            conflicted += 1
        elif line.startswith("? "):
            untracked += 1
        # else: ignored files ("! ") & anything unknown
    if detached:
        if oid is None or oid == "(initial)":
            raise ValueError("Detached HEAD without a commit in git status output")
        head = oid[:7]
    if head is None:
        raise ValueError("No branch information in git status output")
    return RepoStatus(
        head=head,
        detached=detached,
        ahead=ahead,
        behind=behind,
        staged=staged,
        unstaged=unstaged,
        untracked=untracked,
        conflicted=conflicted,
    )


def repo_state(git_dir: Path) -> GitState | None:
    """Determine what operation (if any) is in progress in the repository"""
    if (git_dir / "rebase-merge").is_dir():
        return GitState.REBASE_MERGING
    elif (git_dir / "rebase-apply").is_dir():
        return GitState.REBASE_APPLYING
    elif (git_dir / "MERGE_HEAD").is_file():
        return GitState.MERGING
    elif (git_dir / "CHERRY_PICK_HEAD").is_file():
        return GitState.CHERRY_PICKING
    elif (git_dir / "REVERT_HEAD").is_file():
        return GitState.REVERTING
    elif (git_dir / "BISECT_LOG").is_file():
        return GitState.BISECTING
    else:
        return None


def git(*args: str, cwd: Path, deadline: float) -> str | None:
    """
    Run a Git command in ``cwd`` (suppressing stderr) and return its stdout
    with leading & trailing whitespace stripped.  If the command fails, return
    `None`.

    :raises subprocess.TimeoutExpired:
        if the command does not finish by ``deadline`` (a `time.monotonic()`
        value)
    :raises FileNotFoundError: if Git is not installed
    """
    cmd = ["git", *args]
    timeout = deadline - time.monotonic()
    if timeout <= 0:
        raise subprocess.TimeoutExpired(cmd, 0)
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            # Don't let a status refresh contend for the index lock
            env={**os.environ, "GIT_OPTIONAL_LOCKS": "0"},
            check=True,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
        ).stdout.strip()
    except subprocess.CalledProcessError:
        return None


def shorthead(head: str, max_len: int = MAX_HEAD_LEN) -> str:
    if len(head) > max_len:
        return head[: max_len - 1] + "…"
    else:
        return head
