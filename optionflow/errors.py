"""Error types raised while validating and resolving dynamic fields."""

from __future__ import annotations


class DynamicFieldError(Exception):
    """Base class for all optionflow errors."""


class ConfigurationError(DynamicFieldError, ValueError):
    """Raised when an integration definition is invalid at load time."""


class InvalidReferenceFormatError(ConfigurationError):
    """Raised when a `dynamic` string is not `source.value.label`."""


class UnknownDynamicSourceError(ConfigurationError, LookupError):
    """Raised when a reference names no registered trigger or resource."""

    def __init__(self, source_key: str, available: list[str] | None = None):
        self.source_key = source_key
        self.available = sorted(available or [])
        message = f"Unknown dynamic source '{source_key}'."
        if self.available:
            message += f" Available: {', '.join(self.available)}"
        super().__init__(message)


class AmbiguousDynamicSourceError(ConfigurationError):
    """Raised when two registrations claim the same source key."""


class DuplicateFieldKeyError(ConfigurationError):
    """Raised when an operation declares the same input field key twice."""


class UnknownDependencyError(ConfigurationError):
    """Raised when `depends_on` names a field the operation does not have."""


class DependencyCycleError(ConfigurationError):
    """Raised when dependent dropdowns form a cycle."""


class SourceOperationFailedError(DynamicFieldError, RuntimeError):
    """Raised when the operation behind a dropdown fails to produce records."""

    def __init__(self, source_key: str, cause: BaseException):
        self.source_key = source_key
        self.cause = cause
        super().__init__(f"Dynamic source '{source_key}' failed: {cause}")


class MissingFieldError(DynamicFieldError, LookupError):
    """Raised when a returned record lacks the configured value or label field."""

    def __init__(self, source_key: str, field_name: str, index: int):
        self.source_key = source_key
        self.field_name = field_name
        self.index = index
        super().__init__(
            f"Record #{index} from dynamic source '{source_key}' is missing field '{field_name}'."
        )


class UnresolvedDependencyError(DynamicFieldError):
    """Raised when a dependent dropdown is resolved before its inputs are filled."""

    def __init__(self, field_key: str, missing: list[str]):
        self.field_key = field_key
        self.missing = list(missing)
        super().__init__(
            f"Field '{field_key}' depends on unset input(s): {', '.join(self.missing)}"
        )


class UnknownOperationError(DynamicFieldError, LookupError):
    """Raised when an operation id or input field key is not registered."""


class DuplicateOperationError(ConfigurationError):
    """Raised when two operations share the same operation id."""
