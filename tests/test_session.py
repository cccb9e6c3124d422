"""Tests for the interactive session: state, controller and event loop."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from nbi.registration import RegistrationResult
from nbi.registry import ProbeOutcome, RegistryKind, RegistrySelection
from nbi.session import EventLoop, InputMode, Screen, SessionController, SessionState
from nbi.session import keys


def outcome(kind: RegistryKind, available: bool | None, name: str = "foo", error: str | None = None):
    return ProbeOutcome(kind=kind, queried_name=name, available=available, error=error)


THREE_FREE = [
    outcome(RegistryKind.NPM, True),
    outcome(RegistryKind.CRATES, True),
    outcome(RegistryKind.PYPI, True),
]


class GatedAggregator:
    """Aggregator that blocks until released and counts its calls."""

    def __init__(self, results: list[ProbeOutcome] | None = None):
        self.results = results if results is not None else list(THREE_FREE)
        self.calls: list[tuple[str, RegistrySelection]] = []
        self.release = asyncio.Event()

    async def __call__(self, name: str, selection: RegistrySelection) -> list[ProbeOutcome]:
        self.calls.append((name, selection))
        await self.release.wait()
        return self.results


def make_controller(state=None, aggregator=None, orchestrator=None, persist=None, credential=None):
    persisted: list[RegistrySelection] = []
    controller = SessionController(
        state or SessionState(),
        aggregator=aggregator or GatedAggregator(),
        orchestrator=orchestrator or AsyncMock(),
        persist_selection=persist or persisted.append,
        credential=credential or (lambda: None),
    )
    controller.persisted = persisted
    return controller


async def press(controller: SessionController, *pressed: str) -> None:
    for key in pressed:
        await controller.handle_key(key)


class TestSessionState:
    def test_replace_results_clamps_selection(self):
        state = SessionState(last_results=list(THREE_FREE), selected_result_index=2)
        state.replace_results([outcome(RegistryKind.NPM, True), outcome(RegistryKind.PYPI, False)])
        assert state.selected_result_index == 0
        assert state.selected_result().kind is RegistryKind.NPM

    def test_empty_results_select_nothing(self):
        state = SessionState(selected_result_index=1)
        state.replace_results([])
        assert state.selected_result_index == 0
        assert state.selected_result() is None

    def test_only_available_results_are_selectable(self):
        state = SessionState(last_results=[
            outcome(RegistryKind.NPM, False),
            outcome(RegistryKind.CRATES, None, error="timeout"),
            outcome(RegistryKind.PYPI, True),
        ])
        assert state.available_results() == [outcome(RegistryKind.PYPI, True)]
        assert state.error_count() == 1
        state.select_next_result()
        assert state.selected_result_index == 0

    def test_screen_cycle(self):
        state = SessionState()
        seen = []
        for _ in range(3):
            state.next_screen()
            seen.append(state.active_screen)
        assert seen == [Screen.REGISTER, Screen.SETTINGS, Screen.SEARCH]

    def test_setting_cursor_is_clamped(self):
        state = SessionState()
        state.move_setting(-1)
        assert state.selected_setting_index == 0
        state.move_setting(100)
        assert state.selected_setting() is RegistryKind.GITHUB


class TestGlobalKeys:
    @pytest.mark.asyncio
    async def test_ctrl_c_exits_even_while_editing(self):
        controller = make_controller()
        await press(controller, keys.CTRL_C)
        assert controller.state.should_exit

    @pytest.mark.asyncio
    async def test_escape_layers(self):
        controller = make_controller()
        state = controller.state
        await press(controller, keys.ESC)
        assert state.edit_mode is InputMode.NORMAL
        assert not state.should_exit

        await press(controller, "?")
        assert state.help_visible
        await press(controller, keys.ESC)
        assert not state.help_visible
        assert not state.should_exit

        await press(controller, keys.ESC)
        assert state.should_exit

    @pytest.mark.asyncio
    async def test_q_is_text_while_editing(self):
        controller = make_controller()
        await press(controller, "q")
        assert controller.state.search_text == "q"
        assert not controller.state.should_exit

    @pytest.mark.asyncio
    async def test_q_quits_in_normal_mode(self):
        controller = make_controller(SessionState(edit_mode=InputMode.NORMAL))
        await press(controller, "q")
        assert controller.state.should_exit

    @pytest.mark.asyncio
    async def test_tab_and_number_keys_switch_screens(self):
        controller = make_controller(SessionState(edit_mode=InputMode.NORMAL))
        state = controller.state
        await press(controller, keys.TAB)
        assert state.active_screen is Screen.REGISTER
        await press(controller, "3")
        assert state.active_screen is Screen.SETTINGS
        await press(controller, "1")
        assert state.active_screen is Screen.SEARCH

    @pytest.mark.asyncio
    async def test_screen_keys_are_text_while_editing(self):
        controller = make_controller()
        await press(controller, "2", keys.TAB)
        assert controller.state.search_text == "2"
        assert controller.state.active_screen is Screen.SEARCH


class TestSearch:
    @pytest.mark.asyncio
    async def test_typing_and_backspace(self):
        controller = make_controller()
        await press(controller, "f", "o", "x", keys.BACKSPACE, "o")
        assert controller.state.search_text == "foo"

    @pytest.mark.asyncio
    async def test_blank_submit_launches_nothing(self):
        aggregator = GatedAggregator()
        controller = make_controller(aggregator=aggregator)
        await press(controller, " ", keys.ENTER)
        assert controller.state.edit_mode is InputMode.NORMAL
        assert not controller.state.search_in_flight
        assert controller.runner.pending == 0
        assert aggregator.calls == []

    @pytest.mark.asyncio
    async def test_search_commits_results(self):
        aggregator = GatedAggregator()
        controller = make_controller(aggregator=aggregator)
        await press(controller, *" foo ", keys.ENTER)
        state = controller.state
        assert state.search_in_flight
        assert state.edit_mode is InputMode.NORMAL

        aggregator.release.set()
        await controller.runner.wait_idle()
        assert not state.search_in_flight
        assert state.last_results == THREE_FREE
        assert aggregator.calls[0][0] == "foo"

    @pytest.mark.asyncio
    async def test_busy_flag_blocks_a_second_search(self):
        aggregator = GatedAggregator()
        controller = make_controller(aggregator=aggregator)
        await press(controller, *"foo", keys.ENTER)
        # Try to edit and resubmit while the first search is running.
        await press(controller, "i", *"bar", keys.ENTER, "2", keys.ENTER)
        state = controller.state
        assert state.search_text == "foo"
        assert state.active_screen is Screen.SEARCH

        aggregator.release.set()
        await controller.runner.wait_idle()
        assert len(aggregator.calls) == 1

    @pytest.mark.asyncio
    async def test_q_quits_while_busy(self):
        controller = make_controller()
        await press(controller, *"foo", keys.ENTER, "q")
        assert controller.state.should_exit
        controller._aggregator.release.set()
        await controller.runner.wait_idle()

    @pytest.mark.asyncio
    async def test_selection_reclamped_after_search(self):
        aggregator = GatedAggregator([outcome(RegistryKind.NPM, True), outcome(RegistryKind.CRATES, False)])
        state = SessionState(last_results=list(THREE_FREE), selected_result_index=2)
        controller = make_controller(state, aggregator=aggregator)
        await press(controller, *"bar", keys.ENTER)
        aggregator.release.set()
        await controller.runner.wait_idle()
        assert state.selected_result_index == 0
        assert state.selected_result().kind is RegistryKind.NPM

    @pytest.mark.asyncio
    async def test_search_uses_selection_snapshot(self):
        aggregator = GatedAggregator()
        state = SessionState(selection=RegistrySelection(npm=False))
        controller = make_controller(state, aggregator=aggregator)
        await press(controller, *"foo", keys.ENTER)
        state.selection.set_enabled(RegistryKind.PYPI, False)
        aggregator.release.set()
        await controller.runner.wait_idle()
        snapshot = aggregator.calls[0][1]
        assert snapshot.is_enabled(RegistryKind.NPM) is False
        assert snapshot.is_enabled(RegistryKind.PYPI) is True

    @pytest.mark.asyncio
    async def test_failed_search_keeps_old_results(self):
        async def broken(name, selection):
            raise RuntimeError("network down")

        state = SessionState(last_results=list(THREE_FREE))
        controller = make_controller(state, aggregator=broken)
        await press(controller, *"foo", keys.ENTER)
        await controller.runner.wait_idle()
        assert not state.search_in_flight
        assert state.last_results == THREE_FREE
        assert state.status_message == "Search failed: network down"

    @pytest.mark.asyncio
    async def test_stale_search_is_discarded(self):
        aggregator = GatedAggregator()
        aggregator.release.set()
        state = SessionState(search_generation=2, search_in_flight=True)
        controller = make_controller(state, aggregator=aggregator)
        await controller._search_unit("old", RegistrySelection(), 1)
        assert state.last_results == []
        assert state.search_in_flight

    @pytest.mark.asyncio
    async def test_arrow_keys_move_result_selection(self):
        state = SessionState(last_results=list(THREE_FREE), edit_mode=InputMode.NORMAL)
        controller = make_controller(state)
        await press(controller, keys.DOWN, keys.DOWN, keys.DOWN)
        assert state.selected_result_index == 2
        await press(controller, keys.UP)
        assert state.selected_result_index == 1


class TestRegister:
    def register_state(self, results):
        return SessionState(
            last_results=results,
            active_screen=Screen.REGISTER,
            edit_mode=InputMode.NORMAL,
        )

    @pytest.mark.asyncio
    async def test_registration_commits_status(self):
        orchestrator = AsyncMock()
        orchestrator.register.return_value = RegistrationResult.success("Created: https://github.com/o/foo")
        state = self.register_state(list(THREE_FREE))
        controller = make_controller(state, orchestrator=orchestrator, credential=lambda: "tok")

        await press(controller, keys.DOWN, keys.ENTER)
        assert state.registration_in_flight
        await controller.runner.wait_idle()

        orchestrator.register.assert_awaited_once_with(THREE_FREE[1], "tok")
        assert not state.registration_in_flight
        assert state.registration_status == "Created: https://github.com/o/foo"

    @pytest.mark.asyncio
    async def test_failure_status_is_prefixed(self):
        orchestrator = AsyncMock()
        orchestrator.register.return_value = RegistrationResult.failure("Set GITHUB_TOKEN environment variable")
        state = self.register_state([outcome(RegistryKind.GITHUB, True)])
        controller = make_controller(state, orchestrator=orchestrator)
        await press(controller, keys.ENTER)
        await controller.runner.wait_idle()
        orchestrator.register.assert_awaited_once_with(state.last_results[0], None)
        assert state.registration_status == "Error: Set GITHUB_TOKEN environment variable"

    @pytest.mark.asyncio
    async def test_raising_orchestrator_still_clears_busy(self):
        orchestrator = AsyncMock()
        orchestrator.register.side_effect = RuntimeError("boom")
        state = self.register_state(list(THREE_FREE))
        controller = make_controller(state, orchestrator=orchestrator)
        await press(controller, keys.ENTER)
        await controller.runner.wait_idle()
        assert not state.registration_in_flight
        assert state.registration_status == "Error: boom"

    @pytest.mark.asyncio
    async def test_nothing_to_register(self):
        orchestrator = AsyncMock()
        state = self.register_state([outcome(RegistryKind.NPM, False)])
        controller = make_controller(state, orchestrator=orchestrator)
        await press(controller, keys.ENTER)
        assert state.registration_status == "No registry selected"
        assert not state.registration_in_flight
        orchestrator.register.assert_not_awaited()


class TestSettings:
    def settings_state(self):
        return SessionState(active_screen=Screen.SETTINGS, edit_mode=InputMode.NORMAL)

    @pytest.mark.asyncio
    async def test_toggle_persists_selection(self):
        controller = make_controller(self.settings_state())
        await press(controller, keys.DOWN, keys.ENTER)
        assert controller.state.selection.is_enabled(RegistryKind.CRATES) is False
        assert len(controller.persisted) == 1
        assert controller.persisted[0].is_enabled(RegistryKind.CRATES) is False

        await press(controller, " ")
        assert controller.state.selection.is_enabled(RegistryKind.CRATES) is True
        assert len(controller.persisted) == 2

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_toggle(self):
        def fail(selection):
            raise OSError("read-only file system")

        controller = make_controller(self.settings_state(), persist=fail)
        await press(controller, keys.ENTER)
        assert controller.state.selection.is_enabled(RegistryKind.NPM) is False
        assert not controller.state.should_exit


class FakeKeys:
    def __init__(self, *scripted: str):
        self.scripted = list(scripted)

    async def poll(self, timeout: float) -> str | None:
        await asyncio.sleep(0)
        return self.scripted.pop(0) if self.scripted else None


class FakeRenderer:
    def __init__(self):
        self.frames: list[tuple[Screen, str, bool]] = []

    def render(self, state: SessionState) -> None:
        self.frames.append((state.active_screen, state.search_text, state.search_in_flight))


class TestEventLoop:
    @pytest.mark.asyncio
    async def test_runs_until_exit(self):
        renderer = FakeRenderer()
        controller = make_controller()
        loop = EventLoop(controller, renderer, FakeKeys("a", keys.ESC, keys.TAB, keys.ESC), poll_timeout=0)
        await asyncio.wait_for(loop.run(), timeout=2)
        assert controller.state.should_exit
        assert renderer.frames[0] == (Screen.SEARCH, "", False)
        assert (Screen.REGISTER, "a", False) in renderer.frames

    @pytest.mark.asyncio
    async def test_background_result_rendered_without_key(self):
        aggregator = GatedAggregator()
        renderer = FakeRenderer()
        controller = make_controller(aggregator=aggregator)
        loop = EventLoop(controller, renderer, FakeKeys("x", keys.ENTER), poll_timeout=0)
        task = asyncio.create_task(loop.run())

        while not aggregator.calls:
            await asyncio.sleep(0)
        aggregator.release.set()
        await controller.runner.wait_idle()
        while renderer.frames[-1][2]:
            await asyncio.sleep(0)

        await controller.handle_key(keys.CTRL_C)
        await asyncio.wait_for(task, timeout=2)
        assert controller.state.last_results == THREE_FREE
