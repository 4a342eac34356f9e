"""Contracts used by integration definitions and the dynamic field resolver."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Sequence

Record = Mapping[str, Any]


@dataclass
class FieldSpec:
    """Declarative input field definition for an operation."""

    key: str
    label: str
    required: bool = False
    type: str = "string"
    # `dynamic` is "<sourceKey>.<valueField>.<labelField>"
    dynamic: str | None = None
    help_text: str = ""
    # `choices` may be a list of scalars or of {"value", "label"} mappings
    choices: list[Any] = field(default_factory=list)
    depends_on: list[str] = field(default_factory=list)


@dataclass
class Meta:
    """Invocation metadata carried by a bundle."""

    prefill: bool = False
    page: int = 0


@dataclass
class Bundle:
    """Per-invocation context handed to every perform routine."""

    input_data: dict[str, Any] = field(default_factory=dict)
    meta: Meta = field(default_factory=Meta)
    auth_data: dict[str, Any] = field(default_factory=dict)

    def for_prefill(self) -> Bundle:
        return replace(self, input_data=dict(self.input_data), meta=replace(self.meta, prefill=True))

    def next_page(self) -> Bundle:
        return replace(self, input_data=dict(self.input_data), meta=replace(self.meta, page=self.meta.page + 1))


@dataclass
class OperationSpec:
    """A perform routine plus the input fields it accepts."""

    perform: Callable[[Bundle], Sequence[Record]]
    input_fields: list[FieldSpec] = field(default_factory=list)


@dataclass
class DisplaySpec:
    label: str
    description: str = ""
    hidden: bool = False


@dataclass
class TriggerSpec:
    """A record-producing operation, usable as a dropdown source."""

    key: str
    noun: str
    display: DisplaySpec
    operation: OperationSpec


@dataclass
class ActionSpec:
    """A create action; its input fields may use dynamic dropdowns."""

    key: str
    noun: str
    display: DisplaySpec
    operation: OperationSpec


@dataclass
class ResourceSpec:
    """Related operations for one entity type."""

    key: str
    noun: str
    list_operation: OperationSpec | None = None
    create_operation: OperationSpec | None = None


@dataclass
class AppSpec:
    """Full integration definition consumed by the registry."""

    app_name: str
    triggers: list[TriggerSpec] = field(default_factory=list)
    resources: list[ResourceSpec] = field(default_factory=list)
    creates: list[ActionSpec] = field(default_factory=list)
