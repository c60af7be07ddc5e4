from __future__ import annotations
from pathlib import Path
import shutil
import subprocess
from typing import Any
import pytest
from nuprompt.git import (
    GitCLIProvider,
    GitState,
    RepoStatus,
    find_repo_root,
    git_dir_of,
    git_status,
    inspect,
    parse_status,
    repo_state,
    shorthead,
)

STATUS_OUTPUT = """\
# branch.oid 2c4f1f3b8a4e3f2d1c0b9a8f7e6d5c4b3a291807
# branch.head main
# branch.upstream origin/main
# branch.ab +2 -1
1 M. N... 100644 100644 100644 3f1a 3f1b src/staged.py
1 .M N... 100644 100644 100644 3f1a 3f1a src/unstaged.py
1 MM N... 100644 100644 100644 3f1a 3f1b src/both.py
1 A. N... 000000 100644 100644 0000 3f1c src/new.py
2 R. N... 100644 100644 100644 3f1a 3f1a R100 src/renamed.py\tsrc/old.py
u UU N... 100644 100644 100644 100644 3f1a 3f1b 3f1c src/conflict.py
? notes.txt
? build/
! ignored.pyc
"""


def test_parse_status() -> None:
    assert parse_status(STATUS_OUTPUT) == RepoStatus(
        head="main",
        detached=False,
        ahead=2,
        behind=1,
        staged=4,
        unstaged=2,
        untracked=2,
        conflicted=1,
    )


def test_parse_status_no_upstream() -> None:
    status = parse_status("# branch.oid 2c4f1f3b\n# branch.head feature/x\n")
    assert status == RepoStatus(
        head="feature/x",
        detached=False,
        ahead=None,
        behind=None,
        staged=0,
        unstaged=0,
        untracked=0,
    )
    assert status.branch == "feature/x"


def test_parse_status_upstream_gone() -> None:
    status = parse_status(
        "# branch.oid 2c4f1f3b\n# branch.head main\n# branch.upstream origin/main\n"
    )
    assert status.ahead is None
    assert status.behind is None


def test_parse_status_initial() -> None:
    status = parse_status("# branch.oid (initial)\n# branch.head main\n? README\n")
    assert status.head == "main"
    assert status.untracked == 1


def test_parse_status_detached() -> None:
    status = parse_status(
        "# branch.oid 2c4f1f3b8a4e3f2d1c0b9a8f7e6d5c4b3a291807\n"
        "# branch.head (detached)\n"
    )
    assert status.head == "2c4f1f3"
    assert status.detached
    assert status.branch is None


@pytest.mark.parametrize(
    "output",
    [
        "",
        "fatal: not a git repository\n",
        "# branch.oid (initial)\n# branch.head (detached)\n",
    ],
)
def test_parse_status_invalid(output: str) -> None:
    with pytest.raises(ValueError):
        parse_status(output)


@pytest.mark.parametrize(
    "head,short",
    [
        ("main", "main"),
        ("feature/foo-bar", "feature/foo-bar"),
        ("feature/foo-quux", "feature/foo-qu…"),
        ("feature/foo-bar-quux", "feature/foo-ba…"),
    ],
)
def test_shorthead(head: str, short: str) -> None:
    assert shorthead(head) == short


def test_find_repo_root(tmp_path: Path) -> None:
    (tmp_path / "repo" / ".git").mkdir(parents=True)
    (tmp_path / "repo" / "a" / "b").mkdir(parents=True)
    assert find_repo_root(tmp_path / "repo" / "a" / "b") == tmp_path / "repo"
    assert find_repo_root(tmp_path / "repo") == tmp_path / "repo"


def test_find_repo_root_nearest(tmp_path: Path) -> None:
    (tmp_path / "outer" / ".git").mkdir(parents=True)
    (tmp_path / "outer" / "inner" / ".git").mkdir(parents=True)
    (tmp_path / "outer" / "inner" / "src").mkdir()
    assert find_repo_root(tmp_path / "outer" / "inner" / "src") == (
        tmp_path / "outer" / "inner"
    )


def test_find_repo_root_dotgit_file(tmp_path: Path) -> None:
    (tmp_path / "wt").mkdir()
    (tmp_path / "wt" / ".git").write_text("gitdir: /elsewhere\n", encoding="utf-8")
    assert find_repo_root(tmp_path / "wt") == tmp_path / "wt"


def test_find_repo_root_none(tmp_path: Path) -> None:
    (tmp_path / "plain" / "dir").mkdir(parents=True)
    assert find_repo_root(tmp_path / "plain" / "dir") is None


def test_find_repo_root_similar_name(tmp_path: Path) -> None:
    (tmp_path / "proj").mkdir()
    (tmp_path / "proj" / ".gitignore").touch()
    (tmp_path / "proj" / ".github").mkdir()
    assert find_repo_root(tmp_path / "proj") is None


def test_git_dir_of_dir(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    assert git_dir_of(tmp_path) == tmp_path / ".git"


def test_git_dir_of_relative_file(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / ".git").write_text(
        "gitdir: ../.git/modules/sub\n", encoding="utf-8"
    )
    assert git_dir_of(tmp_path / "sub") == tmp_path / "sub" / "../.git/modules/sub"


def test_git_dir_of_absolute_file(tmp_path: Path) -> None:
    (tmp_path / ".git").write_text(
        "gitdir: /src/repo/.git/worktrees/wt\n", encoding="utf-8"
    )
    assert git_dir_of(tmp_path) == Path("/src/repo/.git/worktrees/wt")


def test_git_dir_of_bogus_file(tmp_path: Path) -> None:
    (tmp_path / ".git").write_text("garbage\n", encoding="utf-8")
    assert git_dir_of(tmp_path) is None


@pytest.mark.parametrize(
    "entry,is_dir,state",
    [
        ("rebase-merge", True, GitState.REBASE_MERGING),
        ("rebase-apply", True, GitState.REBASE_APPLYING),
        ("MERGE_HEAD", False, GitState.MERGING),
        ("CHERRY_PICK_HEAD", False, GitState.CHERRY_PICKING),
        ("REVERT_HEAD", False, GitState.REVERTING),
        ("BISECT_LOG", False, GitState.BISECTING),
    ],
)
def test_repo_state(
    tmp_path: Path, entry: str, is_dir: bool, state: GitState
) -> None:
    assert repo_state(tmp_path) is None
    if is_dir:
        (tmp_path / entry).mkdir()
    else:
        (tmp_path / entry).touch()
    assert repo_state(tmp_path) is state


SIMPLE_STATUS = RepoStatus(
    head="main",
    detached=False,
    ahead=None,
    behind=None,
    staged=0,
    unstaged=0,
    untracked=0,
)


class FakeProvider:
    def __init__(self, result: RepoStatus | None = None, exc: Exception | None = None):
        self.result = result
        self.exc = exc
        self.calls: list[tuple[Path, Path]] = []

    def __call__(self, root: Path, git_dir: Path) -> RepoStatus | None:
        self.calls.append((root, git_dir))
        if self.exc is not None:
            raise self.exc
        return self.result


def test_inspect(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    (tmp_path / "src").mkdir()
    provider = FakeProvider(SIMPLE_STATUS)
    assert inspect(tmp_path / "src", provider) == SIMPLE_STATUS
    assert provider.calls == [(tmp_path, tmp_path / ".git")]


def test_inspect_not_repo(tmp_path: Path) -> None:
    provider = FakeProvider(SIMPLE_STATUS)
    assert inspect(tmp_path, provider) is None
    assert provider.calls == []


def test_inspect_bogus_dotgit(tmp_path: Path) -> None:
    (tmp_path / ".git").write_text("garbage\n", encoding="utf-8")
    provider = FakeProvider(SIMPLE_STATUS)
    assert inspect(tmp_path, provider) is None
    assert provider.calls == []


@pytest.mark.parametrize(
    "exc",
    [
        subprocess.TimeoutExpired(["git", "status"], 3),
        FileNotFoundError(2, "No such file or directory", "git"),
        PermissionError(13, "Permission denied"),
        ValueError("No branch information in git status output"),
    ],
)
def test_inspect_failure(tmp_path: Path, exc: Exception) -> None:
    (tmp_path / ".git").mkdir()
    assert inspect(tmp_path, FakeProvider(exc=exc)) is None


def test_cli_provider_timeout(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    (tmp_path / ".git").mkdir()
    timeouts = []

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        timeouts.append(kwargs["timeout"])
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", run)
    assert git_status(tmp_path, timeout=0.5) is None
    assert len(timeouts) == 1
    assert 0 < timeouts[0] <= 0.5


def test_cli_provider_budget_exhausted(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    (tmp_path / ".git").mkdir()

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        raise AssertionError("git should not be run")

    monkeypatch.setattr(subprocess, "run", run)
    assert git_status(tmp_path, timeout=0) is None


def test_cli_provider_git_not_installed(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    (tmp_path / ".git").mkdir()

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr(subprocess, "run", run)
    assert git_status(tmp_path) is None


def test_cli_provider_fake_git(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "MERGE_HEAD").touch()
    commands = []

    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        commands.append(cmd)
        assert kwargs["cwd"] == tmp_path
        assert kwargs["env"]["GIT_OPTIONAL_LOCKS"] == "0"
        if cmd[1] == "status":
            return subprocess.CompletedProcess(cmd, 0, STATUS_OUTPUT)
        elif cmd[1:] == ["rev-parse", "--verify", "--quiet", "refs/stash"]:
            return subprocess.CompletedProcess(cmd, 0, "e83c5163\n")
        else:
            raise subprocess.CalledProcessError(1, cmd)

    monkeypatch.setattr(subprocess, "run", run)
    status = GitCLIProvider(timeout=5)(tmp_path, tmp_path / ".git")
    assert status == RepoStatus(
        head="main",
        detached=False,
        ahead=2,
        behind=1,
        staged=4,
        unstaged=2,
        untracked=2,
        conflicted=1,
        stashed=True,
        state=GitState.MERGING,
    )
    assert [c[1] for c in commands] == ["status", "rev-parse"]


def test_cli_provider_status_fails(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        raise subprocess.CalledProcessError(128, cmd)

    monkeypatch.setattr(subprocess, "run", run)
    assert GitCLIProvider()(tmp_path, tmp_path / ".git") is None


needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="Git not installed")


@pytest.fixture
def repo(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", "/dev/null")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    repo = tmp_path / "repo"
    repo.mkdir()
    rungit(repo, "init", "--quiet")
    rungit(repo, "symbolic-ref", "HEAD", "refs/heads/trunk")
    (repo / "a.txt").write_text("a\n", encoding="utf-8")
    rungit(repo, "add", "a.txt")
    rungit(repo, "commit", "--quiet", "-m", "Initial commit")
    return repo


def rungit(repo: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True)


@needs_git
def test_git_status_clean(repo: Path) -> None:
    (repo / "sub").mkdir()
    assert git_status(repo / "sub") == RepoStatus(
        head="trunk",
        detached=False,
        ahead=None,
        behind=None,
        staged=0,
        unstaged=0,
        untracked=0,
    )


@needs_git
def test_git_status_changes(repo: Path) -> None:
    (repo / "a.txt").write_text("changed\n", encoding="utf-8")
    (repo / "b.txt").write_text("b\n", encoding="utf-8")
    rungit(repo, "add", "b.txt")
    (repo / "c.txt").write_text("c\n", encoding="utf-8")
    (repo / "d.txt").write_text("d\n", encoding="utf-8")
    status = git_status(repo)
    assert status is not None
    assert status.head == "trunk"
    assert (status.staged, status.unstaged, status.untracked) == (1, 1, 2)
    assert not status.stashed


@needs_git
def test_git_status_stash(repo: Path) -> None:
    (repo / "a.txt").write_text("changed\n", encoding="utf-8")
    rungit(repo, "stash", "--quiet")
    status = git_status(repo)
    assert status is not None
    assert status.stashed
    assert status.unstaged == 0


@needs_git
def test_git_status_detached_tag(repo: Path) -> None:
    rungit(repo, "tag", "v1.0")
    rungit(repo, "checkout", "--quiet", "--detach")
    status = git_status(repo)
    assert status is not None
    assert status.detached
    assert status.head == "v1.0"


@needs_git
def test_git_status_detached_commit(repo: Path) -> None:
    rungit(repo, "checkout", "--quiet", "--detach")
    status = git_status(repo)
    assert status is not None
    assert status.detached
    assert status.branch is None
    assert status.head != "trunk"
    assert len(status.head) >= 4
