from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import ClassVar, Protocol


class Color(Enum):
    """Foreground colors of the 16-color xterm palette, by palette index"""

    RED = 1
    GREEN = 2
    YELLOW = 3
    BLUE = 4
    MAGENTA = 5
    CYAN = 6
    LIGHT_RED = 9
    LIGHT_GREEN = 10
    LIGHT_YELLOW = 11
    LIGHT_BLUE = 12
    LIGHT_MAGENTA = 13
    LIGHT_CYAN = 14

    def sgr(self) -> str:
        # Indices 0-7 select with 30-37, the bright colors 8-15 with 90-97
        return str(30 + self.value if self.value < 8 else 90 + self.value - 8)


@dataclass(frozen=True)
class Style:
    color: Color | None = None
    bold: bool = False

    def sgr(self) -> str:
        """
        The parameters of the SGR ("Select Graphic Rendition") escape sequence
        that switches the terminal to this style; empty for `PLAIN`
        """
        params = []
        if self.color is not None:
            params.append(self.color.sgr())
        if self.bold:
            params.append("1")
        return ";".join(params)


#: A style that adds no markup at all
PLAIN = Style()


class Styler(Protocol):
    #: The prompt symbol that ends the prompt, just before a final space
    prompt_suffix: ClassVar[str]

    def __call__(self, s: str, style: Style) -> str: ...


class ANSIStyler:
    """Styles strings with raw ANSI escape sequences for output to a terminal"""

    prompt_suffix: ClassVar[str] = "$"

    #: Introducer of each escape sequence
    csi: ClassVar[str] = "\x1B["

    #: Text placed before & after each escape sequence
    wrap: ClassVar[tuple[str, str]] = ("", "")

    def __call__(self, s: str, style: Style) -> str:
        s = self.escape(s)
        if sgr := style.sgr():
            s = self.sequence(sgr) + s + self.sequence("")
        return s

    def sequence(self, sgr: str) -> str:
        before, after = self.wrap
        return f"{before}{self.csi}{sgr}m{after}"

    def escape(self, s: str) -> str:
        return s


class BashStyler(ANSIStyler):
    r"""
    Styles strings for Bash's PS1 variable.  Escape sequences are written with
    ``\e`` and fenced in ``\[ ... \]`` so that Bash leaves them out when
    measuring the prompt.
    """

    prompt_suffix: ClassVar[str] = r"\$"
    csi: ClassVar[str] = r"\e["
    wrap: ClassVar[tuple[str, str]] = (r"\[", r"\]")

    def escape(self, s: str) -> str:
        r"""
        Make ``s`` display literally in PS1.  Bash first decodes backslash
        escapes in the prompt and then (with the default ``promptvars`` option)
        subjects the result to parameter expansion & command substitution, so
        ``$`` and ``\``` must come out of the first pass still quoted by a
        backslash, and a literal backslash needs two levels of quoting.
        """
        return (
            s.replace("\\", "\\" * 4).replace("$", r"\\$").replace("`", r"\\`")
        )


class ZshStyler:
    """Class for escaping & styling strings for use in zsh's PS1 variable"""

    prompt_suffix: ClassVar[str] = "%#"

    def __call__(self, s: str, style: Style) -> str:
        """
        Return the string ``s`` escaped for use in a zsh PS1 variable, wrapped
        in ``%F{...}``/``%B`` sequences for ``style.color`` & ``style.bold``
        """
        s = self.escape(s)
        if style.bold:
            s = f"%B{s}%b"
        if style.color is not None:
            s = f"%F{{{style.color.value}}}{s}%f"
        return s

    def escape(self, s: str) -> str:
        # Only % is special unless the user has turned on PROMPT_SUBST
        return s.replace("%", "%%")


class StyleClass(Enum):
    """The parts of a prompt that a theme assigns a `Style` to"""

    CWD = auto()
    USER = auto()
    HOST = auto()
    EXIT_CODE = auto()
    DURATION = auto()
    GIT_STASHED = auto()
    GIT_HEAD = auto()
    GIT_DETACHED = auto()
    GIT_AHEAD = auto()
    GIT_BEHIND = auto()
    GIT_STAGED = auto()
    GIT_UNSTAGED = auto()
    GIT_UNTRACKED = auto()
    GIT_CONFLICT = auto()
    GIT_STATE = auto()


Theme = dict[StyleClass, Style]

DARK_THEME = {
    StyleClass.CWD: Style(Color.LIGHT_CYAN),
    StyleClass.USER: Style(Color.LIGHT_GREEN),
    StyleClass.HOST: Style(Color.LIGHT_RED),
    StyleClass.EXIT_CODE: Style(Color.RED, bold=True),
    StyleClass.DURATION: Style(Color.LIGHT_YELLOW),
    StyleClass.GIT_STASHED: Style(Color.LIGHT_YELLOW, bold=True),
    StyleClass.GIT_HEAD: Style(Color.LIGHT_GREEN),
    StyleClass.GIT_DETACHED: Style(Color.LIGHT_BLUE),
    StyleClass.GIT_AHEAD: Style(Color.GREEN),
    StyleClass.GIT_BEHIND: Style(Color.RED),
    StyleClass.GIT_STAGED: Style(Color.GREEN),
    StyleClass.GIT_UNSTAGED: Style(Color.RED),
    StyleClass.GIT_UNTRACKED: Style(Color.RED, bold=True),
    StyleClass.GIT_CONFLICT: Style(Color.RED, bold=True),
    StyleClass.GIT_STATE: Style(Color.MAGENTA),
}

LIGHT_THEME = DARK_THEME | {
    StyleClass.CWD: Style(Color.BLUE),
    StyleClass.USER: Style(Color.GREEN),
    StyleClass.DURATION: Style(Color.YELLOW),
    StyleClass.GIT_HEAD: Style(Color.GREEN),
    StyleClass.GIT_DETACHED: Style(Color.BLUE),
}

THEMES = {
    "dark": DARK_THEME,
    "light": LIGHT_THEME,
}


@dataclass
class Painter:
    styler: Styler
    theme: Theme

    #: When false, strings are only escaped for the shell and get no styling
    enabled: bool = True

    def __call__(self, s: str, klass: StyleClass) -> str:
        return self.styler(s, self.theme[klass] if self.enabled else PLAIN)
