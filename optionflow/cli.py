"""CLI for validating integrations and resolving dynamic dropdowns."""

from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Any, Sequence

import pandas as pd

from optionflow.contracts import Bundle, FieldSpec, Meta
from optionflow.discovery import list_integration_names, load_app_spec
from optionflow.errors import DynamicFieldError
from optionflow.registry import OperationRegistry
from optionflow.resolver import DynamicFieldResolver

logger = logging.getLogger(__name__)

INTEGRATION_ENV = "OPTIONFLOW_INTEGRATION"
LOG_LEVEL_ENV = "OPTIONFLOW_LOG_LEVEL"


def _parse_kv(values: list[str] | None) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for item in values or []:
        if "=" not in item:
            raise ValueError(f"Expected key=value argument, got: {item}")
        key, value = item.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Invalid key in argument: {item}")
        parsed[key] = value
    return parsed


def _cast_value(raw: str, field_type: str) -> Any:
    if field_type == "boolean":
        return raw.strip().lower() in {"1", "true", "yes", "y", "on"}
    if field_type == "integer":
        return int(raw.strip())
    if field_type == "number":
        text = raw.strip()
        if text.isdigit() or (text.startswith("-") and text[1:].isdigit()):
            return int(text)
        return float(text)
    return raw


def _cast_input_map(raw: dict[str, str], fields: list[FieldSpec]) -> dict[str, Any]:
    typed: dict[str, Any] = {}
    by_key = {f.key: f for f in fields}
    for key, value in raw.items():
        spec = by_key.get(key)
        typed[key] = value if spec is None else _cast_value(value, spec.type)
    return typed


def _print_options_terminal(options: list[dict[str, Any]]):
    if not options:
        print("No options returned.")
        return
    print(pd.DataFrame(options, columns=["value", "label"]).to_string(index=False))


def _print_fields(registry: OperationRegistry, operation_id: str):
    rows = []
    for spec in registry.operation(operation_id).input_fields:
        ref = registry.reference_for(operation_id, spec.key)
        rows.append(
            {
                "key": spec.key,
                "type": spec.type,
                "required": spec.required,
                "dynamic": str(ref) if ref else "",
                "depends_on": ",".join(spec.depends_on),
                "help": spec.help_text,
            }
        )
    if not rows:
        print("(no input fields)")
        return
    print(pd.DataFrame(rows).to_string(index=False))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Dynamic dropdown resolver for integration definitions")
    parser.add_argument(
        "--log-level",
        default=os.environ.get(LOG_LEVEL_ENV, "WARNING"),
        help=f"Logging level (default: ${LOG_LEVEL_ENV} or WARNING).",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("list-integrations", help="List installed integrations")

    default_integration = os.environ.get(INTEGRATION_ENV)

    def _add_integration(cmd):
        cmd.add_argument(
            "--integration",
            default=default_integration,
            required=default_integration is None,
            help=f"Integration name (default: ${INTEGRATION_ENV}).",
        )

    list_triggers = sub.add_parser("list-triggers", help="List triggers offered to end users")
    _add_integration(list_triggers)
    list_triggers.add_argument("--include-hidden", action="store_true", help="Also list hidden triggers.")

    show_fields = sub.add_parser("show-fields", help="Show input fields of one operation")
    _add_integration(show_fields)
    show_fields.add_argument("--operation", required=True, help="Operation id, e.g. create:issue")

    validate = sub.add_parser("validate", help="Validate every dynamic field of an integration")
    _add_integration(validate)

    options = sub.add_parser("options", help="Resolve dropdown options for one input field")
    _add_integration(options)
    options.add_argument("--operation", required=True, help="Operation id, e.g. create:issue")
    options.add_argument("--field", required=True, help="Input field key")
    options.add_argument(
        "--input",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Value of a previously filled input field (repeatable).",
    )
    options.add_argument("--page", type=int, default=0, help="Zero-based page for paginated sources.")
    options.add_argument(
        "--output",
        choices=["terminal", "json", "none"],
        default="terminal",
        help="How to emit options to stdout.",
    )
    return parser


def _load_registry(integration: str) -> OperationRegistry:
    app = load_app_spec(integration)
    return OperationRegistry.from_app_spec(app)


def _cmd_list_triggers(integration: str, include_hidden: bool):
    registry = _load_registry(integration)
    entries = registry.triggers() if include_hidden else registry.visible_triggers()
    for entry in entries:
        suffix = "\t(hidden)" if entry.hidden else ""
        print(f"{entry.key}\t{entry.label}{suffix}")


def _cmd_validate(integration: str):
    registry = _load_registry(integration)
    dynamic_count = sum(
        1
        for op_id in registry.operation_ids()
        for spec in registry.operation(op_id).input_fields
        if registry.reference_for(op_id, spec.key) is not None
    )
    print(f"OK: {len(registry.operation_ids())} operation(s), {dynamic_count} dynamic field(s)")


def _cmd_options(args):
    registry = _load_registry(args.integration)
    fields = registry.operation(args.operation).input_fields
    input_data = _cast_input_map(_parse_kv(args.input), fields)
    bundle = Bundle(input_data=input_data, meta=Meta(prefill=True, page=args.page))

    resolver = DynamicFieldResolver(registry)
    options = resolver.resolve_field(args.operation, args.field, bundle)

    if args.output == "terminal":
        _print_options_terminal(options)
    elif args.output == "json":
        print(json.dumps(options, default=str))


def main(argv: Sequence[str] | None = None):
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        logging.basicConfig(
            level=str(args.log_level).upper(),
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )
        if args.command == "list-integrations":
            for name in list_integration_names():
                print(name)
            return
        if args.command == "list-triggers":
            _cmd_list_triggers(args.integration, args.include_hidden)
            return
        if args.command == "show-fields":
            _print_fields(_load_registry(args.integration), args.operation)
            return
        if args.command == "validate":
            _cmd_validate(args.integration)
            return
        if args.command == "options":
            _cmd_options(args)
            return
        parser.print_help()
    except (DynamicFieldError, ImportError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        parser.error(str(exc))
