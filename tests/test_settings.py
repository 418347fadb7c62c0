"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tabroll.services.settings import DEFAULT_SHORTCUTS, Settings, SettingsStore


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")

    assert store.load() == Settings()


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    store = SettingsStore(path)
    original = Settings(
        max_stack_length=12,
        suppression_timeout=1.5,
        reconcile_interval=0.5,
        debug_logging=True,
        shortcuts={**DEFAULT_SHORTCUTS, "roll-left": "Ctrl+["},
        demo_windows=2,
    )

    store.save(original)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert not path.with_suffix(".tmp").exists()
    assert store.load() == original


def test_partial_shortcuts_merge_with_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"shortcuts": {"roll-right": "Ctrl+]"}}), encoding="utf-8")

    settings = SettingsStore(path).load()

    assert settings.shortcuts["roll-right"] == "Ctrl+]"
    assert settings.shortcuts["roll-left"] == DEFAULT_SHORTCUTS["roll-left"]


def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_stack_length": 5, "theme": "dark"}), encoding="utf-8")

    assert SettingsStore(path).load().max_stack_length == 5


@pytest.mark.parametrize("body", ["{not json", "[1, 2, 3]"])
def test_unreadable_payload_falls_back_to_defaults(tmp_path: Path, body: str) -> None:
    path = tmp_path / "settings.json"
    path.write_text(body, encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_out_of_range_values_are_clamped(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"max_stack_length": 0, "suppression_timeout": -1, "reconcile_interval": 0, "demo_tabs": "x"}),
        encoding="utf-8",
    )

    settings = SettingsStore(path).load()

    assert settings.max_stack_length == 1
    assert settings.suppression_timeout == Settings().suppression_timeout
    assert settings.reconcile_interval == Settings().reconcile_interval
    assert settings.demo_tabs == 1


def test_cli_overrides_apply_before_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    monkeypatch.setenv("TABROLL_MAX_STACK_LENGTH", "7")

    settings = store.load(overrides={"max_stack_length": 3, "suppression_timeout": 0.5})

    assert settings.max_stack_length == 7
    assert settings.suppression_timeout == 0.5


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TABROLL_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("TABROLL_TELEMETRY", "1")
    monkeypatch.setenv("TABROLL_SUPPRESSION_TIMEOUT", "0.75")
    monkeypatch.setenv("TABROLL_RECONCILE_INTERVAL", "not-a-number")

    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings.debug_logging is True
    assert settings.telemetry_opt_in is True
    assert settings.suppression_timeout == 0.75
    assert settings.reconcile_interval == Settings().reconcile_interval
