"""Interactive session: state, input handling, background work and the event loop."""

from __future__ import annotations

from nbi.session.controller import SessionController
from nbi.session.loop import EventLoop
from nbi.session.state import InputMode, Screen, SessionState
from nbi.session.tasks import BackgroundTaskRunner

__all__ = [
    "BackgroundTaskRunner",
    "EventLoop",
    "InputMode",
    "Screen",
    "SessionController",
    "SessionState",
]
