from __future__ import annotations
import argparse
from datetime import timedelta
import logging
import os
import sys
from . import __version__
from .git import DEFAULT_TIMEOUT
from .hooks import HOOKS, init_script
from .paths import MIN_PATH_LEN
from .prompt import PromptContext, compose, shell_assign
from .state import SessionStore
from .styles import THEMES, ANSIStyler, BashStyler, ZshStyler
from .term import ColorMode, supports_color
from .timing import elapsed, timestamp

log = logging.getLogger("nuprompt")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Session-aware bash/zsh prompt generator",
    )
    parser.add_argument(
        "--ansi",
        action="store_const",
        dest="stylecls",
        const=ANSIStyler,
        help="Format prompt for direct display",
    )
    parser.add_argument(
        "--bash",
        action="store_const",
        dest="stylecls",
        const=BashStyler,
        help="Format prompt for Bash's PS1 (default)",
    )
    parser.add_argument(
        "--color",
        choices=[m.value for m in ColorMode],
        help=(
            "Whether to style the prompt  [default: $NUPROMPT_COLOR, or else"
            " auto]"
        ),
    )
    parser.add_argument(
        "--git-timeout",
        type=float,
        metavar="SECONDS",
        default=DEFAULT_TIMEOUT,
        help=(
            "Disable Git integration if querying Git takes longer than this"
            f"  [default: {DEFAULT_TIMEOUT:g}]"
        ),
    )
    parser.add_argument(
        "--max-path-len",
        type=path_length,
        metavar="N",
        help="Truncate the current directory path to at most N characters",
    )
    parser.add_argument(
        "--min-duration",
        type=float,
        metavar="SECONDS",
        default=0,
        help="Only show command runtimes at least this long  [default: 0]",
    )
    parser.add_argument(
        "--no-git",
        action="store_true",
        help="Disable Git integration (same as setting NUPROMPT_GIT=off)",
    )
    parser.add_argument(
        "--no-hostname",
        action="store_true",
        help="Do not show the local hostname",
    )
    parser.add_argument(
        "-T",
        "--theme",
        choices=list(THEMES.keys()),
        default="dark",
        help="Select the color theme to use  [default: dark]",
    )
    parser.add_argument(
        "--zsh",
        action="store_const",
        dest="stylecls",
        const=ZshStyler,
        help="Format prompt for zsh's PS1",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(title="commands", dest="command", required=True)

    preexec_parser = subparsers.add_parser(
        "preexec", help="Record that a command is about to run"
    )
    preexec_parser.add_argument(
        "session_id", type=int, help="The process ID of the shell"
    )

    precmd_parser = subparsers.add_parser(
        "precmd", help="Output a PS1 assignment for the next prompt"
    )
    precmd_parser.add_argument(
        "session_id", type=int, help="The process ID of the shell"
    )
    precmd_parser.add_argument(
        "exit_code", type=int, help="The exit status of the previous command"
    )

    init_parser = subparsers.add_parser(
        "init", help="Output shell code for hooking nuprompt into a shell"
    )
    init_parser.add_argument("shell", choices=list(HOOKS.keys()))

    args = parser.parse_args(argv)
    configure_logging(os.environ.get("NUPROMPT_LOG"))
    if args.command == "preexec":
        preexec(args.session_id)
    elif args.command == "precmd":
        precmd(args)
    else:
        command = [sys.executable, "-m", "nuprompt"]
        print(init_script(args.shell, command, prompt_options(args)), end="")


def preexec(session_id: int) -> None:
    try:
        SessionStore.default().record_start(session_id, timestamp())
    except OSError as e:
        log.debug("Could not record start time for session %d: %s", session_id, e)


def precmd(args: argparse.Namespace) -> None:
    started_at = SessionStore.default().read_and_clear(args.session_id)
    duration: timedelta | None
    if started_at is not None:
        duration = elapsed(started_at, timestamp())
        if duration < timedelta(seconds=args.min_duration):
            duration = None
    else:
        duration = None
    if args.color is not None:
        mode = ColorMode(args.color)
    else:
        mode = None
    ctx = PromptContext.get(
        exit_code=args.exit_code,
        duration=duration,
        color=supports_color(os.environ, sys.stderr.isatty(), mode),
        git=not args.no_git and os.environ.get("NUPROMPT_GIT") != "off",
        git_timeout=args.git_timeout,
        max_path_len=args.max_path_len,
    )
    styler = (args.stylecls or BashStyler)()
    ps1 = compose(ctx, styler, THEMES[args.theme], hostname=not args.no_hostname)
    print(shell_assign("PS1", ps1))


def path_length(s: str) -> int:
    n = int(s)
    if n < MIN_PATH_LEN:
        raise argparse.ArgumentTypeError(f"must be at least {MIN_PATH_LEN}: {n}")
    return n


def prompt_options(args: argparse.Namespace) -> list[str]:
    """
    Return the command-line options that were set to non-default values, for
    passing along to ``precmd`` calls made by the shell hooks
    """
    opts = []
    if args.stylecls is ANSIStyler:
        opts.append("--ansi")
    if args.color is not None:
        opts.append(f"--color={args.color}")
    if args.git_timeout != DEFAULT_TIMEOUT:
        opts.append(f"--git-timeout={args.git_timeout:g}")
    if args.max_path_len is not None:
        opts.append(f"--max-path-len={args.max_path_len}")
    if args.min_duration:
        opts.append(f"--min-duration={args.min_duration:g}")
    if args.no_git:
        opts.append("--no-git")
    if args.no_hostname:
        opts.append("--no-hostname")
    if args.theme != "dark":
        opts.append(f"--theme={args.theme}")
    return opts


def configure_logging(level: str | None) -> None:
    """
    If :envvar:`NUPROMPT_LOG` is set, log diagnostics at the given level (or
    ``DEBUG`` if unrecognized) to stderr
    """
    if not level:
        return
    lvl = logging.getLevelName(level.strip().upper())
    if not isinstance(lvl, int):
        lvl = logging.DEBUG
    logging.basicConfig(
        level=lvl,
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


if __name__ == "__main__":
    main()
