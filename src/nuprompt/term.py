from __future__ import annotations
from collections.abc import Mapping
from enum import Enum
import logging

log = logging.getLogger(__name__)


class ColorMode(Enum):
    """Whether to style the prompt, as requested by the user"""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> ColorMode:
        """
        Return the mode set by :envvar:`NUPROMPT_COLOR`.  Unset or
        unrecognized values mean `AUTO`.
        """
        value = env.get("NUPROMPT_COLOR", "").strip().lower()
        try:
            return cls(value or "auto")
        except ValueError:
            log.debug("Ignoring unrecognized NUPROMPT_COLOR value %r", value)
            return cls.AUTO


def supports_color(
    env: Mapping[str, str],
    is_interactive: bool,
    mode: ColorMode | None = None,
) -> bool:
    """
    Decide whether the prompt should be styled.

    An explicit ``never`` (from ``mode`` or, if ``mode`` is `None`, from
    :envvar:`NUPROMPT_COLOR`) or a non-empty :envvar:`NO_COLOR` always
    disables styling; an explicit ``always`` enables it.  Otherwise, styling
    is used only if the output is going to an interactive terminal whose
    :envvar:`TERM` is set to something other than ``dumb``.
    """
    if mode is None:
        mode = ColorMode.from_env(env)
    if mode is ColorMode.NEVER:
        return False
    if env.get("NO_COLOR"):
        return False
    if mode is ColorMode.ALWAYS:
        return True
    if not is_interactive:
        return False
    term = env.get("TERM", "")
    return term not in ("", "dumb")
