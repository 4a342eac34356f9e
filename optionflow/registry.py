"""Read-only registry of dropdown sources built from an integration definition."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from graphlib import CycleError, TopologicalSorter
from types import MappingProxyType
from typing import Iterator, Mapping

from optionflow.contracts import AppSpec, FieldSpec, OperationSpec
from optionflow.errors import (
    AmbiguousDynamicSourceError,
    DependencyCycleError,
    DuplicateFieldKeyError,
    DuplicateOperationError,
    UnknownDependencyError,
    UnknownDynamicSourceError,
    UnknownOperationError,
)
from optionflow.references import DynamicReference, parse_reference, resource_list_alias

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceEntry:
    """One operation reachable as a dynamic source."""

    key: str
    kind: str
    owner_key: str
    operation: OperationSpec
    label: str = ""
    hidden: bool = False


def iter_operations(app: AppSpec) -> Iterator[tuple[str, OperationSpec]]:
    """Yield `(operation_id, operation)` for every operation with input fields."""
    for trigger in app.triggers:
        yield f"trigger:{trigger.key}", trigger.operation
    for action in app.creates:
        yield f"create:{action.key}", action.operation
    for resource in app.resources:
        if resource.list_operation is not None:
            yield f"resource:{resource.key}:list", resource.list_operation
        if resource.create_operation is not None:
            yield f"resource:{resource.key}:create", resource.create_operation


def _build_resource_aliases(app: AppSpec) -> dict[str, SourceEntry]:
    aliases: dict[str, SourceEntry] = {}
    seen: set[str] = set()
    for resource in app.resources:
        if resource.key in seen:
            raise AmbiguousDynamicSourceError(f"Resource '{resource.key}' is registered more than once.")
        seen.add(resource.key)
        if resource.list_operation is None:
            continue
        alias = resource_list_alias(resource.key)
        aliases[alias] = SourceEntry(
            key=alias,
            kind="resource",
            owner_key=resource.key,
            operation=resource.list_operation,
            label=f"List {resource.noun}",
        )
    return aliases


def _build_triggers(app: AppSpec, aliases: Mapping[str, SourceEntry]) -> dict[str, SourceEntry]:
    triggers: dict[str, SourceEntry] = {}
    for trigger in app.triggers:
        if trigger.key in triggers:
            raise AmbiguousDynamicSourceError(f"Trigger '{trigger.key}' is registered more than once.")
        if trigger.key in aliases:
            raise AmbiguousDynamicSourceError(
                f"Trigger '{trigger.key}' collides with the list operation of resource "
                f"'{aliases[trigger.key].owner_key}'."
            )
        triggers[trigger.key] = SourceEntry(
            key=trigger.key,
            kind="trigger",
            owner_key=trigger.key,
            operation=trigger.operation,
            label=trigger.display.label or trigger.noun,
            hidden=trigger.display.hidden,
        )
    return triggers


def _check_dependencies(operation_id: str, fields: list[FieldSpec]) -> None:
    keys = {f.key for f in fields}
    graph: dict[str, list[str]] = {}
    for f in fields:
        unknown = [dep for dep in f.depends_on if dep not in keys]
        if unknown:
            raise UnknownDependencyError(
                f"Field '{f.key}' of {operation_id} depends on unknown field(s): {', '.join(unknown)}"
            )
        graph[f.key] = list(f.depends_on)
    try:
        TopologicalSorter(graph).prepare()
    except CycleError as exc:
        cycle = " -> ".join(exc.args[1])
        raise DependencyCycleError(f"Dependent fields of {operation_id} form a cycle: {cycle}") from exc


class OperationRegistry:
    """Source lookup tables plus the parsed reference of every dynamic field.

    Built once with `from_app_spec`; the tables are exposed read-only.
    """

    def __init__(
        self,
        resource_aliases: Mapping[str, SourceEntry],
        triggers: Mapping[str, SourceEntry],
        operations: Mapping[str, OperationSpec] | None = None,
        references: Mapping[tuple[str, str], DynamicReference] | None = None,
    ):
        self._resource_aliases = MappingProxyType(dict(resource_aliases))
        self._triggers = MappingProxyType(dict(triggers))
        self._operations = MappingProxyType(dict(operations or {}))
        self._references = MappingProxyType(dict(references or {}))

    @classmethod
    def from_app_spec(cls, app: AppSpec) -> OperationRegistry:
        aliases = _build_resource_aliases(app)
        triggers = _build_triggers(app, aliases)

        operations: dict[str, OperationSpec] = {}
        references: dict[tuple[str, str], DynamicReference] = {}
        for operation_id, operation in iter_operations(app):
            if operation_id in operations:
                raise DuplicateOperationError(f"{operation_id} is registered more than once.")
            operations[operation_id] = operation
            seen: set[str] = set()
            for f in operation.input_fields:
                if f.key in seen:
                    raise DuplicateFieldKeyError(f"{operation_id} declares input field '{f.key}' twice.")
                seen.add(f.key)
                if f.dynamic is None:
                    continue
                ref = parse_reference(f.dynamic)
                if ref.source_key not in aliases and ref.source_key not in triggers:
                    raise UnknownDynamicSourceError(ref.source_key, [*aliases, *triggers])
                references[(operation_id, f.key)] = ref
            _check_dependencies(operation_id, operation.input_fields)

        logger.debug(
            "Registered %d source(s) and %d dynamic field(s) for %s",
            len(aliases) + len(triggers),
            len(references),
            app.app_name,
        )
        return cls(aliases, triggers, operations, references)

    def lookup(self, source_key: str) -> SourceEntry | None:
        entry = self._resource_aliases.get(source_key)
        if entry is not None:
            return entry
        return self._triggers.get(source_key)

    def __contains__(self, source_key: object) -> bool:
        return isinstance(source_key, str) and self.lookup(source_key) is not None

    def key_for(self, operation: OperationSpec) -> str | None:
        for entry in (*self._resource_aliases.values(), *self._triggers.values()):
            if entry.operation is operation:
                return entry.key
        return None

    def source_keys(self) -> list[str]:
        return sorted([*self._resource_aliases, *self._triggers])

    def visible_triggers(self) -> list[SourceEntry]:
        return [entry for entry in self._triggers.values() if not entry.hidden]

    def triggers(self) -> list[SourceEntry]:
        return list(self._triggers.values())

    def operation_ids(self) -> list[str]:
        return list(self._operations)

    def operation(self, operation_id: str) -> OperationSpec:
        try:
            return self._operations[operation_id]
        except KeyError:
            raise UnknownOperationError(
                f"Unknown operation '{operation_id}'. Available: {', '.join(self._operations)}"
            ) from None

    def field(self, operation_id: str, field_key: str) -> FieldSpec:
        for f in self.operation(operation_id).input_fields:
            if f.key == field_key:
                return f
        raise UnknownOperationError(f"{operation_id} has no input field '{field_key}'")

    def reference_for(self, operation_id: str, field_key: str) -> DynamicReference | None:
        return self._references.get((operation_id, field_key))
