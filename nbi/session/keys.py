"""Key names understood by the session.

Printable keys are passed through as one-character strings; everything
else uses one of the names below.
"""

from __future__ import annotations

ENTER = "enter"
ESC = "esc"
TAB = "tab"
BACKSPACE = "backspace"
UP = "up"
DOWN = "down"
CTRL_C = "ctrl-c"


def is_printable(key: str) -> bool:
    return len(key) == 1 and key.isprintable()
