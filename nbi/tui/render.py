"""Draws a :class:`SessionState` with rich.

:func:`build_view` is a pure function from state to a rich renderable;
:class:`RichRenderer` pushes it to the terminal through ``rich.live``.
"""

from __future__ import annotations

from typing import Callable

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from nbi.registry.base import ProbeOutcome, RegistryKind
from nbi.registry.github import get_github_token
from nbi.session.state import SETTING_KINDS, InputMode, Screen, SessionState

_TABS = ((Screen.SEARCH, "Search [1]"), (Screen.REGISTER, "Register [2]"), (Screen.SETTINGS, "Settings [3]"))

_DESCRIPTIONS: dict[RegistryKind, str] = {
    RegistryKind.NPM: "npmjs.com",
    RegistryKind.CRATES: "crates.io",
    RegistryKind.PYPI: "pypi.org",
    RegistryKind.BREW: "brew.sh",
    RegistryKind.FLATPAK: "flathub.org",
    RegistryKind.DEBIAN: "debian.org",
    RegistryKind.DEV_DOMAIN: "DNS lookup",
    RegistryKind.GITHUB: "github.com/user",
}

_ACTIONS: dict[RegistryKind, str] = {
    RegistryKind.GITHUB: "Create repository",
    RegistryKind.NPM: "Reserve via GitHub",
    RegistryKind.CRATES: "Reserve via GitHub",
    RegistryKind.PYPI: "Reserve via GitHub",
    RegistryKind.DEV_DOMAIN: "Check registrar",
    RegistryKind.BREW: "Manual submission",
    RegistryKind.FLATPAK: "Manual submission",
    RegistryKind.DEBIAN: "Manual submission",
}

HELP_LINES = (
    ("q", "Quit (in Normal mode)"),
    ("Esc", "Unfocus input / Close popup / Quit"),
    ("1 / 2 / 3", "Go to Search / Register / Settings"),
    ("Tab", "Switch between screens"),
    ("?", "Toggle this help"),
    ("i, e", "Search: enter edit mode"),
    ("Enter", "Search: execute search / Register: register selected"),
    ("↑/↓", "Navigate results and settings"),
    ("Space", "Settings: toggle registry"),
)


def status_symbol(outcome: ProbeOutcome) -> tuple[str, str]:
    """Glyph and color for a tri-state outcome."""
    if outcome.available is True:
        return "✓", "green"
    if outcome.available is False:
        return "✗", "red"
    return "?", "yellow"


def short_error(error: str) -> str:
    lowered = error.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return "Timeout"
    if "rate" in lowered or "429" in lowered:
        return "Rate Limited"
    if "403" in lowered or "forbidden" in lowered:
        return "Access Denied"
    if "connect" in lowered or "network" in lowered:
        return "Network Error"
    return "Error"


def status_label(outcome: ProbeOutcome) -> str:
    if outcome.available is True:
        return "Available"
    if outcome.available is False:
        return "Taken"
    return short_error(outcome.error) if outcome.error else "Unknown"


def action_hint(kind: RegistryKind) -> str:
    return _ACTIONS[kind]


def _truncate(text: str, width: int = 40) -> str:
    return text if len(text) <= width else text[:width] + "..."


# ── Screens ────────────────────────────────────────────────────────

def _tabs(state: SessionState) -> Text:
    line = Text(" nbi  ", style="bold")
    for screen, title in _TABS:
        style = "bold cyan" if screen is state.active_screen else "white"
        line.append(f" {title} ", style=style)
    return line


def _search(state: SessionState) -> RenderableType:
    editing = state.edit_mode is InputMode.EDITING
    title = " Package Name (Enter to search) " if editing else " Package Name (i/e to edit) "
    cursor = "█" if editing else ""
    input_box = Panel(
        Text(state.search_text + cursor, style="yellow" if editing else ""),
        title=title,
        border_style="yellow" if editing else "bright_black",
    )

    if not state.last_results:
        if state.search_in_flight:
            message = "Searching..."
        elif not state.search_text:
            message = "Enter a package name to check availability"
        else:
            message = "Press Enter to search"
        body: RenderableType = Panel(Text(message, style="bright_black"), title=" Results ")
        return Group(input_box, body)

    table = Table.grid(padding=(0, 1))
    for outcome in state.last_results:
        symbol, color = status_symbol(outcome)
        error = Text(f"({_truncate(outcome.error)})", style="red") if outcome.error else Text("")
        table.add_row(
            Text(symbol, style=f"bold {color}"),
            Text(f"{outcome.kind.label:<12}", style="bold"),
            Text(f"{status_label(outcome):<14}", style=color),
            error,
        )
    title_text = Text(f" Results for '{state.search_text}' ")
    return Group(input_box, Panel(table, title=title_text))


def _register(state: SessionState, has_credential: bool) -> RenderableType:
    if has_credential:
        token = Text("✓ GitHub token configured", style="green")
    else:
        token = Text("✗ GitHub token not set (export GITHUB_TOKEN)", style="red")
    info = Panel(token, title=" Configuration ")

    available = state.available_results()
    if not available:
        if not state.last_results:
            message = "Search for a package name first (Tab to switch to Search)"
        else:
            message = "No available registries found for this name"
        listing: RenderableType = Panel(Text(message, style="bright_black"), title=" Available Registries ")
    else:
        rows = Table.grid(padding=(0, 1))
        for index, outcome in enumerate(available):
            selected = index == state.selected_result_index
            style = "bold cyan" if selected else ""
            rows.add_row(
                Text("▶" if selected else " ", style=style),
                Text(f"{outcome.kind.label:<12}", style=style),
                Text(f"- {action_hint(outcome.kind)}", style="bright_black"),
            )
        listing = Panel(rows, title=" Available Registries (↑/↓ to select, Enter to register) ")

    if state.registration_status:
        status_text = state.registration_status
    elif state.registration_in_flight:
        status_text = "Registering..."
    else:
        status_text = "Select a registry and press Enter to register"
    if status_text.startswith("Error"):
        style = "red"
    elif state.registration_status:
        style = "green"
    else:
        style = "bright_black"
    return Group(info, listing, Panel(Text(status_text, style=style), title=" Status "))


def _settings(state: SessionState) -> RenderableType:
    rows = Table.grid(padding=(0, 1))
    for index, kind in enumerate(SETTING_KINDS):
        selected = index == state.selected_setting_index
        enabled = state.selection.is_enabled(kind)
        style = "bold" if selected else ""
        rows.add_row(
            Text("▶" if selected else " ", style=style),
            Text("[✓]" if enabled else "[ ]", style="green" if enabled else "bright_black"),
            Text(f"{kind.label:<12}", style=style),
            Text(f"- {_DESCRIPTIONS[kind]}", style="bright_black"),
        )
    return Group(
        Panel(Text("Toggle registries to include in search", style="cyan"), title=" Settings "),
        Panel(rows, title=" Registries "),
        Text("↑/↓ Navigate | Enter/Space Toggle | Tab Switch screen", style="bright_black"),
    )


def _help() -> RenderableType:
    table = Table.grid(padding=(0, 2))
    for key, text in HELP_LINES:
        table.add_row(Text(key, style="bold"), Text(text))
    table.add_row(Text(""), Text(""))
    table.add_row(Text("Note", style="yellow"), Text("GitHub token required for registration (GITHUB_TOKEN)"))
    return Panel(table, title=" Help ")


def _status_bar(state: SessionState) -> Text:
    if state.search_in_flight:
        return Text("Searching...", style="yellow")
    if state.registration_in_flight:
        return Text("Registering...", style="yellow")
    if state.status_message:
        return Text(state.status_message, style="red")
    errors = state.error_count()
    if errors and state.active_screen is Screen.SEARCH:
        return Text(f"{errors} error(s) occurred. Check results for details.", style="red")
    if state.active_screen is Screen.SEARCH:
        if state.edit_mode is InputMode.EDITING:
            hint = "EDITING | Esc to unfocus | Enter to search"
        else:
            hint = "NORMAL | i,e to edit | Enter to focus"
    elif state.active_screen is Screen.REGISTER:
        hint = "↑/↓ select | Enter to register | ? help"
    else:
        hint = "↑/↓ select | Enter/Space toggle | ? help"
    return Text(hint, style="bright_black")


def build_view(state: SessionState, has_credential: bool) -> RenderableType:
    if state.help_visible:
        body = _help()
    elif state.active_screen is Screen.SEARCH:
        body = _search(state)
    elif state.active_screen is Screen.REGISTER:
        body = _register(state, has_credential)
    else:
        body = _settings(state)
    return Group(_tabs(state), body, _status_bar(state))


class RichRenderer:
    """:class:`~nbi.session.loop.Renderer` drawing to the alternate screen."""

    def __init__(
        self,
        console: Console | None = None,
        has_credential: Callable[[], bool] = lambda: get_github_token() is not None,
    ) -> None:
        self.console = console or Console()
        self._has_credential = has_credential
        self._live = Live(console=self.console, screen=True, auto_refresh=False, transient=True)

    def __enter__(self) -> "RichRenderer":
        self._live.start()
        return self

    def __exit__(self, *_: object) -> None:
        self._live.stop()

    def render(self, state: SessionState) -> None:
        self._live.update(build_view(state, self._has_credential()), refresh=True)
