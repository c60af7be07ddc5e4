"""
Session-aware bash/zsh prompt generator

``nuprompt`` builds the command prompt for Bash and zsh from two hooks: one
run just before each command executes and one run just before the next prompt
is drawn.  Between them it remembers when the command started, so the prompt
can show how long the last command took.

Features:

- Shows the runtime of the previous command
- Shows the exit status of the previous command if it failed
- Shows the status of the current Git repository, giving up quietly if Git is
  slow or missing
- Abbreviates the home directory as ``~``
- Colors the prompt only when the terminal can show it (and respects
  ``NO_COLOR``)
- Supports both Bash and zsh

Run ``eval "$(nuprompt init bash)"`` (or ``zsh``) in your shell's startup file
to get started.
"""

import logging

__version__ = "0.1.0"
__license__ = "MIT"

logging.getLogger(__name__).addHandler(logging.NullHandler())
