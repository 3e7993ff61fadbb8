"""Settings loading, validation, and persistence for YAML-based sidectl settings."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Protocol

import yaml
from jsonschema import ValidationError, validators

from sidectl.core.errors import SettingsLoadError, SettingsValidationError
from sidectl.core.model import DEFAULT_ACTION_SET, Action, ActionSet, Settings, Side

DEFAULT_DEVICE_NAME = "Timeular Tracker"
DEFAULT_TEMPLATE_TARGET_FILE = "Daily/{{date}}.md"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

# Set names such as "on" or "no" must stay strings.
for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise SettingsValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    warnings: tuple[str, ...]


class SettingsStore(Protocol):
    path: Path | None

    def load(self) -> dict[str, Any]:
        """Return the persisted settings blob, or an empty mapping."""

    def save(self, settings: Settings) -> None:
        """Persist the full settings."""


def settings_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "sidectl/settings.yaml"


def default_settings() -> Settings:
    return Settings(
        device_name=DEFAULT_DEVICE_NAME,
        template_target_file=DEFAULT_TEMPLATE_TARGET_FILE,
        active_action_set_name=DEFAULT_ACTION_SET,
        action_sets_by_name={
            DEFAULT_ACTION_SET: ActionSet.uniform(lambda side: Action(template=f"{{{{time}}}} {side.value}")),
        },
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SettingsLoadError(f"Could not read settings file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise SettingsValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise SettingsValidationError(f"Settings file {path} must contain a mapping at root")
    return loaded


class YAMLSettingsStore:
    def __init__(self, path: Path | None = None) -> None:
        self.path = path or settings_path()

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        return _read_yaml(self.path)

    def save(self, settings: Settings) -> None:
        doc = settings.to_dict()
        validate_settings_doc(doc, self.path)
        text = yaml.safe_dump(doc, sort_keys=False, allow_unicode=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise SettingsLoadError(f"Could not write settings file {self.path}: {exc}") from exc
        LOGGER.debug("Saved settings to %s", self.path)


def _load_schema_validator() -> Any:
    schema_text = resources.files("sidectl.schemas").joinpath("settings.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def validate_settings_doc(doc: Mapping[str, Any], source: Path | str | None = None) -> None:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        origin = f" for {source}" if source else ""
        raise SettingsValidationError(f"Schema validation failed{origin}{where}: {exc.message}") from exc


_ACTION_FIELDS = ("command", "template", "actionSet")


def _check_action(action: Action, *, side: Side, name: str) -> Action:
    fields = (("command", action.command), ("template", action.template), ("actionSet", action.action_set))
    for key, value in fields:
        if value is None:
            continue
        if not isinstance(value, str):
            raise SettingsValidationError(
                f"'{key}' for '{side.value}' in set '{name}' must be a string"
            )
        if key != "template" and not value:
            raise SettingsValidationError(
                f"'{key}' for '{side.value}' in set '{name}' must not be empty"
            )
    return action


def build_action_set(
    doc: Mapping[str, Any] | ActionSet,
    *,
    name: str,
    warnings: list[str] | None = None,
) -> ActionSet:
    """Build a total action set, filling absent orientations with no-op actions."""
    if isinstance(doc, ActionSet):
        for side in doc:
            _check_action(doc[side], side=side, name=name)
        return doc

    known = {side.value for side in Side}
    unknown = sorted(str(key) for key in doc if str(key) not in known)
    if unknown:
        raise SettingsValidationError(
            f"Action set '{name}' has unknown orientations: {', '.join(unknown)}"
        )

    actions: dict[Side, Action] = {}
    missing: list[str] = []
    for side in Side:
        entry = doc.get(side.value)
        if entry is None:
            missing.append(side.value)
            actions[side] = Action()
        elif isinstance(entry, Action):
            actions[side] = _check_action(entry, side=side, name=name)
        elif isinstance(entry, Mapping):
            extra = sorted(str(key) for key in entry if key not in _ACTION_FIELDS)
            if extra:
                raise SettingsValidationError(
                    f"Action for '{side.value}' in set '{name}' has unknown fields: {', '.join(extra)}"
                )
            actions[side] = _check_action(Action.from_dict(entry), side=side, name=name)
        else:
            raise SettingsValidationError(
                f"Action for '{side.value}' in set '{name}' must be a mapping"
            )

    if missing:
        warning = f"Action set '{name}' has no action for {', '.join(missing)}; using no-op"
        LOGGER.warning(warning)
        if warnings is not None:
            warnings.append(warning)
    return ActionSet(actions=actions)


def merge_settings(doc: Mapping[str, Any], warnings: list[str] | None = None) -> Settings:
    """Overlay a loaded blob on the defaults, one level deep for action sets."""
    settings = default_settings()
    if "deviceName" in doc:
        settings.device_name = doc["deviceName"]
    if "templateTargetFile" in doc:
        settings.template_target_file = doc["templateTargetFile"]

    for set_name, set_doc in doc.get("actionSetsByName", {}).items():
        settings.action_sets_by_name[set_name] = build_action_set(
            set_doc, name=set_name, warnings=warnings
        )

    active = doc.get("activeActionSetName", DEFAULT_ACTION_SET)
    if active not in settings.action_sets_by_name:
        warning = f"Active action set '{active}' is not defined; falling back to '{DEFAULT_ACTION_SET}'"
        LOGGER.warning(warning)
        if warnings is not None:
            warnings.append(warning)
        active = DEFAULT_ACTION_SET
    settings.active_action_set_name = active
    return settings


def load_settings(store: SettingsStore) -> LoadedSettings:
    doc = store.load()
    validate_settings_doc(doc, store.path)
    warnings: list[str] = []
    settings = merge_settings(doc, warnings)
    return LoadedSettings(settings=settings, warnings=tuple(warnings))
