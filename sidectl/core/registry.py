"""Named action sets and active-set switching."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from sidectl.core.errors import ActionSetNotFoundError, SettingsValidationError
from sidectl.core.model import ActionSet, Settings
from sidectl.core.settings import build_action_set

LOGGER = logging.getLogger(__name__)


class ActionSetRegistry:
    """Action sets backed by a `Settings` instance.

    Every mutation is followed by a call to `on_change`, which the service wires
    to the settings store. The active name always refers to a registered set.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        on_change: Callable[[Settings], None] | None = None,
    ) -> None:
        if settings.active_action_set_name not in settings.action_sets_by_name:
            raise ActionSetNotFoundError(
                f"Active action set '{settings.active_action_set_name}' is not defined"
            )
        self._settings = settings
        self._on_change = on_change

    @property
    def active_name(self) -> str:
        return self._settings.active_action_set_name

    def names(self) -> list[str]:
        return sorted(self._settings.action_sets_by_name)

    def get_action_set(self, name: str) -> ActionSet | None:
        return self._settings.action_sets_by_name.get(name)

    def get_active(self) -> tuple[str, ActionSet]:
        name = self._settings.active_action_set_name
        return name, self._settings.action_sets_by_name[name]

    def set_active(self, name: str) -> None:
        if name not in self._settings.action_sets_by_name:
            available = ", ".join(self.names())
            raise ActionSetNotFoundError(
                f"Action set '{name}' is not defined. Available: {available}"
            )
        if name == self._settings.active_action_set_name:
            return
        LOGGER.info("Switching active action set %s -> %s", self.active_name, name)
        self._settings.active_action_set_name = name
        self._changed()

    def upsert(self, name: str, action_set: ActionSet | Mapping[str, Any]) -> ActionSet:
        if not name:
            raise SettingsValidationError("Action set name must not be empty")
        normalized = build_action_set(action_set, name=name)
        self._settings.action_sets_by_name[name] = normalized
        self._changed()
        return normalized

    def remove(self, name: str) -> None:
        if name not in self._settings.action_sets_by_name:
            raise ActionSetNotFoundError(f"Action set '{name}' is not defined")
        if name == self._settings.active_action_set_name:
            raise SettingsValidationError(f"Cannot remove the active action set '{name}'")
        del self._settings.action_sets_by_name[name]
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self._settings)
