"""Single-threaded render/poll loop for the interactive session."""

from __future__ import annotations

import logging
from typing import Protocol

from nbi.session.controller import SessionController
from nbi.session.state import SessionState

logger = logging.getLogger(__name__)

POLL_TIMEOUT = 0.1


class Renderer(Protocol):
    def render(self, state: SessionState) -> None:
        """Draw *state*.  Called with the session lock held; must not block."""


class KeySource(Protocol):
    async def poll(self, timeout: float) -> str | None:
        """Return the next key, or None if none arrived within *timeout* seconds."""


class EventLoop:
    """Alternates between drawing the state and waiting briefly for one key.

    The short poll timeout is what makes background commits (a search
    finishing, a registration status arriving) show up without a key press.
    """

    def __init__(
        self,
        controller: SessionController,
        renderer: Renderer,
        keys: KeySource,
        poll_timeout: float = POLL_TIMEOUT,
    ) -> None:
        self.controller = controller
        self.renderer = renderer
        self.keys = keys
        self.poll_timeout = poll_timeout

    async def run(self) -> None:
        while True:
            async with self.controller.lock:
                if self.controller.state.should_exit:
                    break
                self.renderer.render(self.controller.state)

            key = await self.keys.poll(self.poll_timeout)
            if key is not None:
                await self.controller.handle_key(key)

        pending = self.controller.runner.pending
        if pending:
            logger.info("exiting with %d background task(s) still running", pending)
