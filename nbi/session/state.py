"""In-memory state of one interactive session.

:class:`SessionState` is plain data plus small synchronous transitions.
It is owned by the event loop and guarded by one ``asyncio.Lock``; none of
the methods here await, so a caller holding the lock never yields while
mutating it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from nbi.registry.base import ProbeOutcome, RegistryKind, RegistrySelection


class Screen(str, Enum):
    SEARCH = "search"
    REGISTER = "register"
    SETTINGS = "settings"


class InputMode(str, Enum):
    NORMAL = "normal"
    EDITING = "editing"


_SCREEN_CYCLE = {
    Screen.SEARCH: Screen.REGISTER,
    Screen.REGISTER: Screen.SETTINGS,
    Screen.SETTINGS: Screen.SEARCH,
}

# Settings rows, one per registry, in result order.
SETTING_KINDS: tuple[RegistryKind, ...] = tuple(RegistryKind)


@dataclass
class SessionState:
    selection: RegistrySelection = field(default_factory=RegistrySelection)
    active_screen: Screen = Screen.SEARCH
    edit_mode: InputMode = InputMode.EDITING
    search_text: str = ""
    last_results: list[ProbeOutcome] = field(default_factory=list)
    search_in_flight: bool = False
    registration_in_flight: bool = False
    registration_status: str | None = None
    status_message: str | None = None
    selected_result_index: int = 0
    selected_setting_index: int = 0
    help_visible: bool = False
    should_exit: bool = False
    # Bumped on every search launch; only the latest search may commit.
    search_generation: int = 0

    @property
    def busy(self) -> bool:
        return self.search_in_flight or self.registration_in_flight

    @property
    def editing(self) -> bool:
        return self.edit_mode is InputMode.EDITING

    @property
    def setting_count(self) -> int:
        return len(SETTING_KINDS)

    # ── Results ────────────────────────────────────────────────────

    def available_results(self) -> list[ProbeOutcome]:
        """Outcomes that can be registered (``available is True``)."""
        return [r for r in self.last_results if r.available is True]

    def selected_result(self) -> ProbeOutcome | None:
        available = self.available_results()
        if 0 <= self.selected_result_index < len(available):
            return available[self.selected_result_index]
        return None

    def error_count(self) -> int:
        return sum(1 for r in self.last_results if r.error is not None)

    def replace_results(self, results: list[ProbeOutcome]) -> None:
        """Swap in a fresh result set wholesale and re-clamp the selection."""
        self.last_results = list(results)
        self.clamp_result_selection()

    def clamp_result_selection(self) -> None:
        count = len(self.available_results())
        self.selected_result_index = max(0, min(self.selected_result_index, count - 1))

    def select_previous_result(self) -> None:
        if self.selected_result_index > 0:
            self.selected_result_index -= 1

    def select_next_result(self) -> None:
        if self.selected_result_index < len(self.available_results()) - 1:
            self.selected_result_index += 1

    # ── Screens ────────────────────────────────────────────────────

    def next_screen(self) -> None:
        self.active_screen = _SCREEN_CYCLE[self.active_screen]

    def jump_to(self, screen: Screen) -> None:
        self.active_screen = screen

    # ── Settings ───────────────────────────────────────────────────

    def move_setting(self, delta: int) -> None:
        index = self.selected_setting_index + delta
        self.selected_setting_index = max(0, min(index, self.setting_count - 1))

    def selected_setting(self) -> RegistryKind:
        return SETTING_KINDS[self.selected_setting_index]

    def toggle_selected_setting(self) -> RegistryKind:
        """Flip the highlighted registry in :attr:`selection` and return it."""
        kind = self.selected_setting()
        self.selection.toggle(kind)
        return kind
