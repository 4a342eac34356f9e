"""Coercion of integration definitions into `AppSpec` objects."""

from __future__ import annotations

import importlib
from dataclasses import asdict, is_dataclass
from typing import Any

from optionflow.contracts import (
    ActionSpec,
    AppSpec,
    DisplaySpec,
    FieldSpec,
    OperationSpec,
    ResourceSpec,
    TriggerSpec,
)

_HELP_KEYS = ("helpText", "help_text", "help", "description")


def _help_from_mapping(cfg: dict[str, Any]) -> str:
    for key in _HELP_KEYS:
        if cfg.get(key):
            return cfg[key]
    return ""


def _coerce_key_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _field_spec_from_mapping(cfg: dict[str, Any]) -> FieldSpec:
    if "key" not in cfg:
        raise TypeError(f"Input field definition is missing 'key': {cfg!r}")
    key = cfg["key"]
    return FieldSpec(
        key=key,
        label=cfg.get("label", key),
        required=bool(cfg.get("required", False)),
        type=cfg.get("type", "string"),
        dynamic=cfg.get("dynamic"),
        help_text=_help_from_mapping(cfg),
        choices=list(cfg.get("choices") or []),
        depends_on=_coerce_key_list(cfg.get("dependsOn", cfg.get("depends_on"))),
    )


def _coerce_field_specs(value: Any) -> list[FieldSpec]:
    if value is None:
        return []
    specs: list[FieldSpec] = []
    for item in value:
        if isinstance(item, FieldSpec):
            specs.append(item)
        elif isinstance(item, dict):
            specs.append(_field_spec_from_mapping(item))
        else:
            raise TypeError(f"Unsupported input field definition: {item!r}")
    return specs


def _coerce_operation(raw: Any, owner: str) -> OperationSpec:
    if isinstance(raw, OperationSpec):
        return raw
    if not isinstance(raw, dict) or not callable(raw.get("perform")):
        raise TypeError(f"Operation of {owner} must define a callable 'perform'")
    return OperationSpec(
        perform=raw["perform"],
        input_fields=_coerce_field_specs(raw.get("inputFields", raw.get("input_fields"))),
    )


def _coerce_display(raw: Any, default_label: str) -> DisplaySpec:
    if isinstance(raw, DisplaySpec):
        return raw
    raw = raw or {}
    return DisplaySpec(
        label=raw.get("label", default_label),
        description=raw.get("description", ""),
        hidden=bool(raw.get("hidden", False)),
    )


def _items(raw: Any) -> list[tuple[str | None, Any]]:
    # Platform definitions key their triggers/resources/creates by key.
    if raw is None:
        return []
    if isinstance(raw, dict):
        return list(raw.items())
    return [(None, item) for item in raw]


def _trigger_from_mapping(key: str | None, item: dict[str, Any], cls):
    key = item.get("key", key)
    noun = item.get("noun", key)
    return cls(
        key=key,
        noun=noun,
        display=_coerce_display(item.get("display"), noun),
        operation=_coerce_operation(item.get("operation"), key),
    )


def _resource_from_mapping(key: str | None, item: dict[str, Any]) -> ResourceSpec:
    key = item.get("key", key)
    list_cfg = item.get("list") or {}
    create_cfg = item.get("create") or {}
    list_operation = list_cfg.get("operation") if isinstance(list_cfg, dict) else list_cfg
    create_operation = create_cfg.get("operation") if isinstance(create_cfg, dict) else create_cfg
    return ResourceSpec(
        key=key,
        noun=item.get("noun", key),
        list_operation=_coerce_operation(list_operation, f"{key}.list") if list_operation else None,
        create_operation=_coerce_operation(create_operation, f"{key}.create") if create_operation else None,
    )


def _dict_to_app_spec(raw: dict[str, Any]) -> AppSpec:
    app_name = raw.get("app_name") or raw.get("title")
    if not app_name:
        raise TypeError("Dictionary integration spec missing 'app_name'")

    triggers: list[TriggerSpec] = []
    for key, item in _items(raw.get("triggers")):
        triggers.append(item if isinstance(item, TriggerSpec) else _trigger_from_mapping(key, item, TriggerSpec))

    creates: list[ActionSpec] = []
    for key, item in _items(raw.get("creates")):
        creates.append(item if isinstance(item, ActionSpec) else _trigger_from_mapping(key, item, ActionSpec))

    resources: list[ResourceSpec] = []
    for key, item in _items(raw.get("resources")):
        resources.append(item if isinstance(item, ResourceSpec) else _resource_from_mapping(key, item))

    return AppSpec(app_name=app_name, triggers=triggers, resources=resources, creates=creates)


def coerce_to_app_spec(obj: Any, integration_name: str | None = None) -> AppSpec:
    if callable(obj) and not isinstance(obj, type):
        obj = obj()
    if isinstance(obj, AppSpec):
        return obj
    if is_dataclass(obj) and not isinstance(obj, type):
        return _dict_to_app_spec(asdict(obj))
    if isinstance(obj, dict):
        return _dict_to_app_spec(obj)
    raise TypeError(f"Unsupported integration definition object for {integration_name or 'integration'}: {type(obj)}")


def auto_build_app_spec(module_name: str) -> AppSpec:
    """Build an `AppSpec` from module-level `APP_NAME`/`TRIGGERS`/`RESOURCES`/`CREATES`."""
    module = importlib.import_module(module_name)
    app_name = getattr(module, "APP_NAME", None) or module_name.split(".")[0]
    return _dict_to_app_spec(
        {
            "app_name": app_name,
            "triggers": getattr(module, "TRIGGERS", None),
            "resources": getattr(module, "RESOURCES", None),
            "creates": getattr(module, "CREATES", None),
        }
    )
