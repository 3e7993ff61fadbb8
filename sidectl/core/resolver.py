"""Resolution of orientation changes into effects."""

from __future__ import annotations

import logging
from collections.abc import Callable

from sidectl.core.errors import ActionSetNotFoundError, SidectlError
from sidectl.core.model import Effect, RenderTemplate, RunCommand, Settings, Side, SwitchActionSet
from sidectl.core.registry import ActionSetRegistry

LOGGER = logging.getLogger(__name__)


class ActionResolver:
    def __init__(
        self,
        registry: ActionSetRegistry,
        settings: Settings,
        *,
        emit: Callable[[Effect], None] | None = None,
    ) -> None:
        self._registry = registry
        self._settings = settings
        self._emit = emit

    def on_orientation(self, side: Side) -> list[Effect]:
        """Fire the active set's action for `side`.

        Effects are emitted in the order template, command, action-set switch.
        A switch is applied before this method returns, so the next orientation
        resolves against the new set. A switch to an unknown set is logged and
        leaves the active set untouched.
        """
        set_name, action_set = self._registry.get_active()
        action = action_set[side]
        effects: list[Effect] = []

        if action.template is not None:
            self._fire(effects, RenderTemplate(action.template, self._settings.template_target_file))
        if action.command is not None:
            self._fire(effects, RunCommand(action.command))
        if action.action_set is not None:
            self._switch(effects, side, set_name, action.action_set)

        if not effects:
            LOGGER.debug("No action bound to %s in set '%s'", side.value, set_name)
        return effects

    def _fire(self, effects: list[Effect], effect: Effect) -> None:
        effects.append(effect)
        if self._emit is not None:
            self._emit(effect)

    def _switch(self, effects: list[Effect], side: Side, set_name: str, target: str) -> None:
        try:
            self._registry.set_active(target)
        except ActionSetNotFoundError:
            LOGGER.warning(
                "Action for %s in set '%s' switches to unknown set '%s'; keeping '%s'",
                side.value,
                set_name,
                target,
                self._registry.active_name,
            )
            return
        except SidectlError as exc:
            # The switch is applied in memory even when saving it fails.
            LOGGER.warning("Switched to action set '%s' but could not save settings: %s", target, exc)
        self._fire(effects, SwitchActionSet(previous=set_name, current=target))
