from __future__ import annotations
from collections.abc import Mapping
import logging
import os
from pathlib import Path, PurePath, PurePosixPath

log = logging.getLogger(__name__)

#: What the home directory is replaced with in displayed paths
HOME_MARKER = "~"

#: Smallest path length `shortpath` can truncate to ("…/" plus one character
#: and an ellipsis)
MIN_PATH_LEN = 4


def format_path(path: str, home: str | None, marker: str = HOME_MARKER) -> str:
    """
    If ``path`` is at or under the directory ``home``, replace that leading
    part of the path with ``marker``; otherwise, return ``path`` unchanged.

    Only whole path components are matched, so ``/home-backup`` is not
    considered to be under ``/home``.  A ``home`` that is empty, relative, or
    the filesystem root is ignored.
    """
    if not home:
        return path
    h = PurePosixPath(home)
    if not h.is_absolute() or h == PurePosixPath("/"):
        return path
    try:
        rel = PurePosixPath(path).relative_to(h)
    except ValueError:
        return path
    return str(PurePosixPath(marker, rel))


def shortpath(p: PurePath, max_len: int) -> str:
    """
    If the filepath ``p`` is too long (longer than ``max_len``), cut off
    leading components to make it fit; if that's not enough, also truncate the
    final component.  Deleted bits are replaced with ellipses.

    :raises ValueError: if ``p`` is empty or ``max_len`` is less than
        `MIN_PATH_LEN`
    """
    if not p.parts:
        raise ValueError("Cannot shorten an empty path")
    if max_len < MIN_PATH_LEN:
        raise ValueError(
            f"Path length limit must be at least {MIN_PATH_LEN}: {max_len}"
        )
    if len(str(p)) > max_len:
        p = PurePath("…", *p.parts[1 + (p.parts[0] == "/") :])
        while len(str(p)) > max_len:
            if len(p.parts) > 2:
                p = PurePath("…", *p.parts[2:])
            else:
                p = PurePath("…", p.parts[-1][: max_len - 3] + "…")
                assert len(str(p)) <= max_len
    return str(p)


def current_dir(env: Mapping[str, str] | None = None) -> str:
    """
    Return the path to the current working directory.  :envvar:`PWD` is
    preferred to `os.getcwd()` as the former does not resolve symlinks.  If
    neither is available (e.g., the directory has been deleted), return
    ``"?"``.
    """
    if env is None:
        env = os.environ
    if pwd := env.get("PWD"):
        return pwd
    try:
        return os.getcwd()
    except OSError as e:
        log.debug("Could not determine current directory: %s", e)
        return "?"


def home_dir(env: Mapping[str, str] | None = None) -> str | None:
    """
    Return the current user's home directory (:envvar:`HOME`, falling back to
    the password database), or `None` if it cannot be determined
    """
    if env is None:
        env = os.environ
    if home := env.get("HOME"):
        return home
    try:
        return str(Path.home())
    except (KeyError, RuntimeError) as e:
        log.debug("Could not determine home directory: %s", e)
        return None
