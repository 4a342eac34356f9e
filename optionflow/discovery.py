"""Discovery helpers for integration plugins."""

from __future__ import annotations

import logging
from importlib import import_module
from importlib.metadata import entry_points

from optionflow.autodefine import auto_build_app_spec, coerce_to_app_spec
from optionflow.contracts import AppSpec

logger = logging.getLogger(__name__)

INTEGRATION_GROUP = "optionflow.integrations"


def _select_entry_points(**params):
    eps = entry_points()
    if hasattr(eps, "select"):
        return eps.select(group=INTEGRATION_GROUP, **params)  # type: ignore[attr-defined]
    selected = eps.get(INTEGRATION_GROUP, [])  # type: ignore[call-arg]
    if "name" in params:
        selected = [ep for ep in selected if ep.name == params["name"]]
    return selected


def list_integration_names() -> list[str]:
    """Return installed integration names registered under optionflow.integrations."""
    return sorted(ep.name for ep in _select_entry_points())


def load_app_spec(integration_name: str) -> AppSpec:
    """
    Load an integration definition by name.

    Resolution order:
    1) Entry-point group `optionflow.integrations`
    2) Module import `<integration_name>.integration:get_app_spec`
    3) Module attributes `APP_NAME`, `TRIGGERS`, `RESOURCES`, `CREATES` of
       `<integration_name>.integration`
    """
    for ep in _select_entry_points(name=integration_name):
        logger.debug("Loading integration %s from entry point %s", integration_name, ep.value)
        return coerce_to_app_spec(ep.load(), integration_name=integration_name)

    module_name = f"{integration_name}.integration"
    module = import_module(module_name)
    if hasattr(module, "get_app_spec"):
        return coerce_to_app_spec(module.get_app_spec, integration_name=integration_name)
    return auto_build_app_spec(module_name)
