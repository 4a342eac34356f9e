"""Resolution of dropdown options for dynamic and static input fields."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Sequence

from optionflow.contracts import Bundle, OperationSpec, Record
from optionflow.errors import (
    MissingFieldError,
    SourceOperationFailedError,
    UnknownDynamicSourceError,
    UnresolvedDependencyError,
)
from optionflow.references import DynamicReference, parse_reference
from optionflow.registry import OperationRegistry, SourceEntry

logger = logging.getLogger(__name__)

Option = dict[str, Any]


def normalize_dropdown_options(raw_options) -> list[Option]:
    normalized: list[Option] = []
    for option in raw_options or []:
        if isinstance(option, Mapping):
            value = option.get("value")
            label = option.get("label", value)
            normalized.append({"value": value, "label": label})
        else:
            normalized.append({"value": option, "label": option})
    return normalized


def to_options(records: Sequence[Record], ref: DynamicReference) -> list[Option]:
    """Map source records to `{value, label}` options, keeping record order."""
    options: list[Option] = []
    for idx, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise MissingFieldError(ref.source_key, ref.value_field, idx)
        for field_name in (ref.value_field, ref.label_field):
            if field_name not in record:
                raise MissingFieldError(ref.source_key, field_name, idx)
        options.append({"value": record[ref.value_field], "label": record[ref.label_field]})
    return options


class DynamicFieldResolver:
    """Resolve `dynamic` references against a registry.

    The resolver keeps no state between calls. Pagination is driven by the
    caller: each page is a separate call with `bundle.next_page()`.
    """

    def __init__(self, registry: OperationRegistry):
        self.registry = registry

    @staticmethod
    def parse_reference(raw: str) -> DynamicReference:
        return parse_reference(raw)

    def _source_entry(self, ref: DynamicReference) -> SourceEntry:
        entry = self.registry.lookup(ref.source_key)
        if entry is None:
            raise UnknownDynamicSourceError(ref.source_key, self.registry.source_keys())
        return entry

    def resolve_source(self, ref: DynamicReference) -> OperationSpec:
        return self._source_entry(ref).operation

    def invoke(self, operation: OperationSpec, bundle: Bundle, source_key: str = "") -> list[Record]:
        name = source_key or self.registry.key_for(operation) or getattr(operation.perform, "__name__", "operation")
        try:
            result = operation.perform(bundle)
            if result is None or isinstance(result, (str, bytes, Mapping)):
                raise TypeError(f"perform must return a sequence of records, got {type(result).__name__}")
            # Generators fail here, while being consumed.
            return list(result)
        except Exception as exc:
            logger.warning("Dynamic source %s failed: %s", name, exc)
            raise SourceOperationFailedError(name, exc) from exc

    def to_options(self, records: Sequence[Record], ref: DynamicReference) -> list[Option]:
        return to_options(records, ref)

    def resolve(self, reference: DynamicReference | str, bundle: Bundle) -> list[Option]:
        ref = reference if isinstance(reference, DynamicReference) else parse_reference(reference)
        entry = self._source_entry(ref)
        start_time = time.perf_counter()
        records = self.invoke(entry.operation, bundle, source_key=entry.key)
        options = to_options(records, ref)
        logger.debug(
            "Resolved %s: %d option(s) on page %d in %.3fs",
            ref,
            len(options),
            bundle.meta.page,
            time.perf_counter() - start_time,
        )
        return options

    def resolve_field(self, operation_id: str, field_key: str, bundle: Bundle) -> list[Option]:
        """Resolve the dropdown of one input field of a registered operation."""
        spec = self.registry.field(operation_id, field_key)
        missing = [dep for dep in spec.depends_on if bundle.input_data.get(dep) in (None, "")]
        if missing:
            raise UnresolvedDependencyError(spec.key, missing)

        ref = self.registry.reference_for(operation_id, field_key)
        if ref is None:
            return normalize_dropdown_options(spec.choices)
        return self.resolve(ref, bundle.for_prefill())
