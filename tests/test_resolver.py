from __future__ import annotations

import logging

import pytest

from sidectl.core.errors import SettingsLoadError
from sidectl.core.model import Action, RenderTemplate, RunCommand, Side, SwitchActionSet
from sidectl.core.registry import ActionSetRegistry
from sidectl.core.resolver import ActionResolver
from sidectl.core.settings import build_action_set, default_settings


def _resolver():
    settings = default_settings()
    registry = ActionSetRegistry(settings)
    emitted: list = []
    resolver = ActionResolver(registry, settings, emit=emitted.append)
    return resolver, registry, emitted


def test_default_set_renders_template_only() -> None:
    resolver, registry, emitted = _resolver()

    effects = resolver.on_orientation(Side.BF)

    assert effects == [RenderTemplate(template="{{time}} BF", target_file="Daily/{{date}}.md")]
    assert emitted == effects
    assert not any(isinstance(e, RunCommand) for e in effects)
    assert registry.active_name == "default"


def test_all_fields_fire_in_order_and_switch_applies_before_next() -> None:
    resolver, registry, emitted = _resolver()
    registry.upsert(
        "default",
        {"TB": Action(template="{{time}} leaving", command="app:close", action_set="work")},
    )
    registry.upsert("work", {"BF": {"command": "work:start"}})

    effects = resolver.on_orientation(Side.TB)

    assert effects == [
        RenderTemplate(template="{{time}} leaving", target_file="Daily/{{date}}.md"),
        RunCommand(command="app:close"),
        SwitchActionSet(previous="default", current="work"),
    ]
    assert emitted == effects
    assert registry.active_name == "work"

    assert resolver.on_orientation(Side.BF) == [RunCommand(command="work:start")]


def test_switch_to_missing_set_is_logged_and_ignored(caplog: pytest.LogCaptureFixture) -> None:
    resolver, registry, emitted = _resolver()
    registry.upsert("default", {"TR": {"actionSet": "missing", "command": "still:runs"}})

    with caplog.at_level(logging.WARNING):
        effects = resolver.on_orientation(Side.TR)

    assert effects == [RunCommand(command="still:runs")]
    assert registry.active_name == "default"
    assert "missing" in caplog.text
    assert resolver.on_orientation(Side.TR) == [RunCommand(command="still:runs")]
    assert emitted == [RunCommand(command="still:runs")] * 2


def test_noop_action_emits_nothing() -> None:
    resolver, registry, emitted = _resolver()
    registry.upsert("quiet", {})
    registry.set_active("quiet")

    assert resolver.on_orientation(Side.UNKNOWN) == []
    assert emitted == []


def test_target_file_follows_current_settings() -> None:
    settings = default_settings()
    registry = ActionSetRegistry(settings)
    resolver = ActionResolver(registry, settings)
    settings.template_target_file = "Journal/{{date}}.md"

    effects = resolver.on_orientation(Side.BB)

    assert effects == [RenderTemplate(template="{{time}} BB", target_file="Journal/{{date}}.md")]


def test_switch_is_emitted_when_persisting_fails(caplog: pytest.LogCaptureFixture) -> None:
    settings = default_settings()

    def failing_save(_settings) -> None:
        raise SettingsLoadError("disk full")

    settings.action_sets_by_name["default"] = build_action_set({"TB": {"actionSet": "work"}}, name="default")
    settings.action_sets_by_name["work"] = build_action_set({}, name="work")
    registry = ActionSetRegistry(settings, on_change=failing_save)
    resolver = ActionResolver(registry, settings)

    with caplog.at_level(logging.WARNING):
        effects = resolver.on_orientation(Side.TB)

    assert effects == [SwitchActionSet(previous="default", current="work")]
    assert registry.active_name == "work"
    assert "disk full" in caplog.text
