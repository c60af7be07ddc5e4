from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
import getpass
import logging
import os
from pathlib import PurePosixPath
import socket
from .git import DEFAULT_TIMEOUT, RepoStatus, git_status
from .paths import current_dir, format_path, home_dir, shortpath
from .styles import DARK_THEME, Painter, Styler, Theme
from .styles import StyleClass as SC
from .timing import format_duration

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptContext:
    """Everything that goes into a single rendering of the prompt"""

    #: The exit status of the previous command
    exit_code: int

    #: How long the previous command took to run, or `None` if its start time
    #: was not recorded
    duration: timedelta | None

    #: The path to the current working directory.  If the directory is at or
    #: under :envvar:`HOME`, the path will start with ``~``.
    cwdstr: str

    git: RepoStatus | None

    #: The name of the current user (or ``uid:gid`` if it has no name)
    user: str

    hostname: str

    #: Whether to style the prompt with colors
    color: bool

    @classmethod
    def get(
        cls,
        exit_code: int,
        duration: timedelta | None,
        color: bool,
        git: bool = True,
        git_timeout: float = DEFAULT_TIMEOUT,
        max_path_len: int | None = None,
        env: Mapping[str, str] | None = None,
    ) -> PromptContext:
        """
        Gather the current directory, repository status, user, and hostname
        from the running environment and combine them with the given details
        of the previous command
        """
        if env is None:
            env = os.environ
        cwd = current_dir(env)
        cwdstr = format_path(cwd, home_dir(env))
        if max_path_len is not None:
            cwdstr = shortpath(PurePosixPath(cwdstr), max_path_len)
        if git and cwd != "?":
            gs = git_status(cwd, timeout=git_timeout)
        else:
            gs = None
        return cls(
            exit_code=exit_code,
            duration=duration,
            cwdstr=cwdstr,
            git=gs,
            user=username(),
            hostname=socket.gethostname(),
            color=color,
        )


def compose(
    ctx: PromptContext,
    styler: Styler,
    theme: Theme = DARK_THEME,
    hostname: bool = True,
) -> str:
    """
    Construct & return a complete prompt string for the given context.

    The prompt consists of the following segments, separated by single spaces,
    followed by the styler's prompt symbol and a space:

    - the current directory
    - the Git status, if in a repository
    - the exit status of the previous command, if it failed
    - the runtime of the previous command, if known
    - ``user@hostname`` (just ``user`` if ``hostname`` is false)

    Styling is only applied if ``ctx.color`` is true; otherwise, the text is
    merely escaped for the shell.
    """
    paint = Painter(styler=styler, theme=theme, enabled=ctx.color)
    segments = [paint(ctx.cwdstr, SC.CWD)]
    if ctx.git is not None:
        segments.append(ctx.git.display(paint))
    if ctx.exit_code != 0:
        segments.append(paint(f"[{ctx.exit_code}]", SC.EXIT_CODE))
    if ctx.duration is not None:
        segments.append(paint(format_duration(ctx.duration), SC.DURATION))
    ident = paint(ctx.user, SC.USER)
    if hostname:
        ident += "@" + paint(ctx.hostname, SC.HOST)
    segments.append(ident)
    return " ".join(segments) + " " + styler.prompt_suffix + " "


def shell_assign(name: str, value: str) -> str:
    """
    Return a shell statement that assigns ``value`` to the variable ``name``,
    with ``value`` single-quoted so that the shell does not expand it
    """
    return f"{name}='" + value.replace("'", "'\\''") + "'"


def username() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError) as e:
        log.debug("Could not determine username: %s", e)
        return f"{os.getuid()}:{os.getgid()}"
