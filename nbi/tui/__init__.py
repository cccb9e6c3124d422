"""Terminal front end for the interactive session.

Start with::

    python -m nbi tui
"""

from __future__ import annotations

import asyncio
import logging

from nbi.config import load_config_or_default
from nbi.session import EventLoop, SessionController, SessionState

logger = logging.getLogger(__name__)


async def run_session() -> None:
    from nbi.tui.render import RichRenderer
    from nbi.tui.terminal import TerminalKeys

    config = load_config_or_default()
    controller = SessionController(SessionState(selection=config.registries))
    with TerminalKeys() as keys, RichRenderer() as renderer:
        await EventLoop(controller, renderer, keys).run()


def run_tui() -> None:
    logger.info("Starting interactive session")
    try:
        asyncio.run(run_session())
    except KeyboardInterrupt:
        logger.info("Session interrupted")
