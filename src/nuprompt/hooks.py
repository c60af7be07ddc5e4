"""
Shell code that wires ``nuprompt`` into Bash & zsh.

The output of ``nuprompt init bash`` is meant to be evaluated at the end of
``~/.bashrc``:

.. code:: shell

    eval "$(nuprompt init bash)"

and likewise for zsh & ``~/.zshrc``.  The shell's process ID is passed as the
session ID so that the two hooks of a single shell find the same start time.
"""

from __future__ import annotations
import shlex

# Bash expands PS0 after reading a command line and before running it (Bash
# 4.4+), but not for empty lines, PROMPT_COMMAND, or startup files.  The
# command substitution runs in a subshell, where $$ is still the shell's PID.
BASH_HOOK = """\
_nuprompt_preexec() {{
    {exe} preexec "$$"
}}
_nuprompt_precmd() {{
    local exit_code=$?
    eval "$({exe} {opts}precmd "$$" "$exit_code")"
}}
PS0='$(_nuprompt_preexec)'"${{PS0:-}}"
PROMPT_COMMAND="_nuprompt_precmd${{PROMPT_COMMAND:+; $PROMPT_COMMAND}}"
"""

ZSH_HOOK = """\
_nuprompt_preexec() {{
    {exe} preexec "$$"
}}
_nuprompt_precmd() {{
    local exit_code=$?
    eval "$({exe} {opts}precmd "$$" "$exit_code")"
}}
autoload -Uz add-zsh-hook
add-zsh-hook preexec _nuprompt_preexec
add-zsh-hook precmd _nuprompt_precmd
"""

HOOKS = {
    "bash": BASH_HOOK,
    "zsh": ZSH_HOOK,
}


def init_script(shell: str, command: list[str], options: list[str]) -> str:
    """
    Return the hook code for ``shell``, invoking ``nuprompt`` as ``command``
    and passing ``options`` to every ``precmd`` call
    """
    if shell == "zsh":
        options = ["--zsh", *options]
    opts = "".join(f"{shlex.quote(o)} " for o in options)
    return HOOKS[shell].format(exe=shlex.join(command), opts=opts)
