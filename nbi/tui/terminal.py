"""Raw keyboard input for the interactive session (POSIX terminals).

Puts stdin in cbreak mode, reads whatever bytes are ready from the event
loop's reader callback and decodes them into session key names.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import termios
import tty

from nbi.session import keys

logger = logging.getLogger(__name__)

_ESCAPES = {
    "\x1b[A": keys.UP,
    "\x1b[B": keys.DOWN,
    "\x1bOA": keys.UP,
    "\x1bOB": keys.DOWN,
}

_CONTROL = {
    "\r": keys.ENTER,
    "\n": keys.ENTER,
    "\t": keys.TAB,
    "\x7f": keys.BACKSPACE,
    "\x08": keys.BACKSPACE,
    "\x03": keys.CTRL_C,
}


def decode_keys(data: bytes) -> list[str]:
    """Split one read from the terminal into key names.

    Unrecognised escape sequences (arrow left/right, function keys, ...)
    are dropped whole rather than leaking their bytes as characters.
    """
    text = data.decode("utf-8", errors="ignore")
    result: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\x1b":
            seq = text[i:i + 3]
            if seq in _ESCAPES:
                result.append(_ESCAPES[seq])
                i += 3
                continue
            if i + 1 < len(text) and text[i + 1] in "[O":
                j = i + 2
                while j < len(text) and not ("@" <= text[j] <= "~"):
                    j += 1
                i = j + 1
                continue
            result.append(keys.ESC)
            i += 1
            continue
        if ch in _CONTROL:
            result.append(_CONTROL[ch])
        elif keys.is_printable(ch):
            result.append(ch)
        i += 1
    return result


class TerminalKeys:
    """:class:`~nbi.session.loop.KeySource` backed by stdin.

    Use as a context manager inside a running event loop::

        with TerminalKeys() as source:
            key = await source.poll(0.1)
    """

    def __init__(self, fd: int | None = None) -> None:
        self._fd = sys.stdin.fileno() if fd is None else fd
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._saved: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def __enter__(self) -> "TerminalKeys":
        self._saved = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd)
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self._fd, self._on_readable)
        return self

    def __exit__(self, *_: object) -> None:
        if self._loop is not None:
            self._loop.remove_reader(self._fd)
            self._loop = None
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
            self._saved = None

    async def poll(self, timeout: float) -> str | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def _on_readable(self) -> None:
        try:
            data = os.read(self._fd, 1024)
        except OSError as exc:
            logger.warning("stdin read failed: %s", exc)
            return
        for key in decode_keys(data):
            self._queue.put_nowait(key)
