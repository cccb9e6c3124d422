"""Input handling for the interactive session.

:class:`SessionController` owns the :class:`SessionState` and the single
lock that guards it.  Key handlers run entirely under the lock and never
await while holding it; long work (searches, registrations) is handed to
the :class:`BackgroundTaskRunner`.  A background unit reads its inputs by
value, does its I/O without the lock, then takes the lock exactly once to
commit its result and clear its busy flag.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from nbi.config import save_selection
from nbi.registration import RegistrationOrchestrator
from nbi.registry import check_all
from nbi.registry.base import ProbeOutcome, RegistrySelection, describe_error
from nbi.registry.github import get_github_token
from nbi.session import keys
from nbi.session.state import InputMode, Screen, SessionState
from nbi.session.tasks import BackgroundTaskRunner

logger = logging.getLogger(__name__)

Aggregator = Callable[[str, RegistrySelection], Awaitable[list[ProbeOutcome]]]

_JUMP_KEYS = {"1": Screen.SEARCH, "2": Screen.REGISTER, "3": Screen.SETTINGS}


class SessionController:
    """Maps key presses to state transitions and background work."""

    def __init__(
        self,
        state: SessionState | None = None,
        *,
        aggregator: Aggregator = check_all,
        orchestrator: RegistrationOrchestrator | None = None,
        persist_selection: Callable[[RegistrySelection], None] = save_selection,
        credential: Callable[[], str | None] = get_github_token,
        runner: BackgroundTaskRunner | None = None,
    ) -> None:
        self.state = state if state is not None else SessionState()
        self.lock = asyncio.Lock()
        self.runner = runner if runner is not None else BackgroundTaskRunner()
        self._aggregator = aggregator
        self._orchestrator = orchestrator if orchestrator is not None else RegistrationOrchestrator()
        self._persist_selection = persist_selection
        self._credential = credential

    async def handle_key(self, key: str) -> None:
        async with self.lock:
            self._dispatch(key)

    # ------------------------------------------------------------------ #
    # Dispatch (lock held, no awaits)
    # ------------------------------------------------------------------ #

    def _dispatch(self, key: str) -> None:
        state = self.state

        if key == keys.CTRL_C:
            state.should_exit = True
            return
        if key == keys.ESC:
            self._escape()
            return
        if not state.editing and key == "q":
            state.should_exit = True
            return
        if state.busy:
            # Keep rendering, but do not start a second unit of work.
            return
        if not state.editing and self._handle_global(key):
            return

        if state.active_screen is Screen.SEARCH:
            self._handle_search(key)
        elif state.active_screen is Screen.REGISTER:
            self._handle_register(key)
        else:
            self._handle_settings(key)

    def _escape(self) -> None:
        state = self.state
        if state.help_visible:
            state.help_visible = False
        elif state.editing:
            state.edit_mode = InputMode.NORMAL
        else:
            state.should_exit = True

    def _handle_global(self, key: str) -> bool:
        state = self.state
        if key == "?":
            state.help_visible = not state.help_visible
        elif key == keys.TAB:
            state.next_screen()
        elif key in _JUMP_KEYS:
            state.jump_to(_JUMP_KEYS[key])
        else:
            return False
        return True

    def _handle_search(self, key: str) -> None:
        state = self.state
        if not state.editing:
            if key in ("i", "e", keys.ENTER):
                state.edit_mode = InputMode.EDITING
            elif key == keys.UP:
                state.select_previous_result()
            elif key == keys.DOWN:
                state.select_next_result()
            return

        if key == keys.ENTER:
            if state.search_text.strip() and not state.search_in_flight:
                self._start_search()
            state.edit_mode = InputMode.NORMAL
        elif key == keys.BACKSPACE:
            state.search_text = state.search_text[:-1]
        elif keys.is_printable(key):
            state.search_text += key

    def _handle_register(self, key: str) -> None:
        state = self.state
        if key == keys.UP:
            state.select_previous_result()
        elif key == keys.DOWN:
            state.select_next_result()
        elif key == keys.ENTER:
            self._start_registration()

    def _handle_settings(self, key: str) -> None:
        state = self.state
        if key == keys.UP:
            state.move_setting(-1)
        elif key == keys.DOWN:
            state.move_setting(1)
        elif key in (keys.ENTER, " "):
            kind = state.toggle_selected_setting()
            logger.info("%s %s", kind.value, "enabled" if state.selection.is_enabled(kind) else "disabled")
            try:
                self._persist_selection(state.selection.copy())
            except OSError as exc:
                # Best-effort save: the in-memory toggle stands.
                logger.warning("could not save registry selection: %s", exc)

    # ------------------------------------------------------------------ #
    # Background work
    # ------------------------------------------------------------------ #

    def _start_search(self) -> None:
        state = self.state
        name = state.search_text.strip()
        selection = state.selection.copy()
        state.search_in_flight = True
        state.status_message = None
        state.search_generation += 1
        generation = state.search_generation
        self.runner.spawn(self._search_unit(name, selection, generation), name=f"search-{generation}")

    def _start_registration(self) -> None:
        state = self.state
        outcome = state.selected_result()
        if outcome is None:
            state.registration_status = "No registry selected"
            return
        if outcome.available is not True:
            state.registration_status = "Name not available"
            return
        state.registration_in_flight = True
        state.registration_status = None
        self.runner.spawn(self._registration_unit(outcome), name=f"register-{outcome.kind.value}")

    async def _search_unit(self, name: str, selection: RegistrySelection, generation: int) -> None:
        results: list[ProbeOutcome] | None = None
        error: str | None = None
        try:
            results = await self._aggregator(name, selection)
        except Exception as exc:
            logger.exception("search for %r failed", name)
            error = f"Search failed: {describe_error(exc)}"

        async with self.lock:
            state = self.state
            if generation != state.search_generation:
                logger.info("discarding stale search %d for %r", generation, name)
                return
            if results is not None:
                state.replace_results(results)
            state.status_message = error
            state.search_in_flight = False

    async def _registration_unit(self, outcome: ProbeOutcome) -> None:
        try:
            result = await self._orchestrator.register(outcome, self._credential())
            status = result.status_text()
        except Exception as exc:
            logger.exception("registration on %s failed", outcome.kind.value)
            status = f"Error: {describe_error(exc)}"

        async with self.lock:
            self.state.registration_status = status
            self.state.registration_in_flight = False
