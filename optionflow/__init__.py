"""Optionflow core package."""

from optionflow.cli import main
from optionflow.contracts import Bundle, FieldSpec, Meta
from optionflow.references import DynamicReference, parse_reference
from optionflow.registry import OperationRegistry
from optionflow.resolver import DynamicFieldResolver

__all__ = [
    "main",
    "Bundle",
    "DynamicFieldResolver",
    "DynamicReference",
    "FieldSpec",
    "Meta",
    "OperationRegistry",
    "parse_reference",
]
