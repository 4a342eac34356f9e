"""Parsing of `dynamic` reference strings."""

from __future__ import annotations

from dataclasses import dataclass

from optionflow.errors import InvalidReferenceFormatError

RESOURCE_LIST_SUFFIX = "List"


@dataclass(frozen=True)
class DynamicReference:
    """Parsed form of "<sourceKey>.<valueField>.<labelField>"."""

    source_key: str
    value_field: str
    label_field: str

    def __str__(self) -> str:
        return f"{self.source_key}.{self.value_field}.{self.label_field}"


def parse_reference(raw: str) -> DynamicReference:
    if not isinstance(raw, str):
        raise InvalidReferenceFormatError(
            f"Dynamic reference must be a string, got {type(raw).__name__}"
        )
    parts = raw.split(".")
    if len(parts) != 3:
        raise InvalidReferenceFormatError(
            f"Invalid dynamic reference {raw!r}: expected '<source>.<valueField>.<labelField>'"
        )
    if not all(part.strip() for part in parts):
        raise InvalidReferenceFormatError(f"Invalid dynamic reference {raw!r}: empty segment")
    source_key, value_field, label_field = parts
    return DynamicReference(source_key=source_key, value_field=value_field, label_field=label_field)


def resource_list_alias(resource_key: str) -> str:
    return f"{resource_key}{RESOURCE_LIST_SUFFIX}"
