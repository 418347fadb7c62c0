"""Tests for the application bootstrap helpers."""

from __future__ import annotations

import asyncio
import io
import json
import sys
from pathlib import Path

import pytest

from tabroll import app
from tabroll.events import EventBus
from tabroll.services.settings import Settings, SettingsStore


@pytest.mark.asyncio
async def test_build_demo_host_opens_requested_layout() -> None:
    host = app.build_demo_host(EventBus(), Settings(demo_windows=2, demo_tabs=3))

    windows = await host.list_windows()
    assert len(windows) == 2
    assert all(len(window.tabs) == 3 for window in windows)
    assert all(window.active_tab is not None for window in windows)
    assert host.focused_window_id == windows[0].id


def test_load_settings_applies_overrides(tmp_path: Path) -> None:
    settings = app.load_settings(tmp_path / "settings.json", overrides={"demo_tabs": 6})

    assert settings.demo_tabs == 6


def test_drain_event_loop_cancels_pending_tasks() -> None:
    loop = asyncio.new_event_loop()
    cancelled = {"called": False}

    async def pending() -> None:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled["called"] = True
            raise

    loop.create_task(pending())

    try:
        app._drain_event_loop(loop)
        assert cancelled["called"] is True
    finally:
        loop.close()


def test_drain_event_loop_ignores_closed_loop() -> None:
    loop = asyncio.new_event_loop()
    loop.close()

    app._drain_event_loop(loop)


def test_coerce_cli_overrides_casts_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "max_stack_length=12",
            "suppression_timeout=0.5",
            "debug_logging=on",
            'shortcuts={"roll-left": "Ctrl+["}',
        ]
    )

    assert overrides == {
        "max_stack_length": 12,
        "suppression_timeout": 0.5,
        "debug_logging": True,
        "shortcuts": {"roll-left": "Ctrl+["},
    }


@pytest.mark.parametrize(
    "entry",
    ["nonsense", "=5", "theme=dark", "debug_logging=maybe", "max_stack_length=ten", "shortcuts=[1]"],
)
def test_coerce_cli_overrides_rejects_bad_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_dump_settings_reports_sources(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TABROLL_MAX_STACK_LENGTH", "9")
    store = SettingsStore(tmp_path / "settings.json")
    settings = store.load(overrides={"demo_tabs": 2})
    buffer = io.StringIO()

    app._dump_settings(settings, store, overrides={"demo_tabs": 2}, stream=buffer)

    payload = json.loads(buffer.getvalue())
    assert payload["settings"]["max_stack_length"] == 9
    assert payload["settings"]["demo_tabs"] == 2
    assert payload["meta"]["path"] == str(tmp_path / "settings.json")
    assert payload["meta"]["cli_overrides"] == ["demo_tabs"]
    assert "TABROLL_MAX_STACK_LENGTH" in payload["meta"]["environment_variables"]
    assert "log_path" in payload["meta"]


def test_main_dump_settings_exits_before_qt(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    restore_root_logging,
) -> None:
    monkeypatch.setattr(sys, "argv", ["tabroll"])
    path = tmp_path / "settings.json"

    app.main(["--settings-path", str(path), "--set", "reconcile_interval=2.5", "--dump-settings"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["settings"]["reconcile_interval"] == 2.5
    assert payload["meta"]["path"] == str(path)


def test_main_rejects_malformed_override(monkeypatch: pytest.MonkeyPatch, restore_root_logging) -> None:
    monkeypatch.setattr(sys, "argv", ["tabroll"])
    with pytest.raises(SystemExit) as excinfo:
        app.main(["--set", "max_stack_length"])

    assert excinfo.value.code == 2
