from __future__ import annotations

import pytest

from optionflow.contracts import (
    ActionSpec,
    AppSpec,
    Bundle,
    DisplaySpec,
    FieldSpec,
    Meta,
    OperationSpec,
    ResourceSpec,
    TriggerSpec,
)
from optionflow.errors import (
    MissingFieldError,
    SourceOperationFailedError,
    UnknownDynamicSourceError,
    UnresolvedDependencyError,
)
from optionflow.references import DynamicReference, parse_reference
from optionflow.registry import OperationRegistry
from optionflow.resolver import DynamicFieldResolver, normalize_dropdown_options

_MEMBERS = {123: [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}]}


def _make_app(seen_bundles=None, assignee_perform=None) -> AppSpec:
    def _list_projects(bundle):
        if seen_bundles is not None:
            seen_bundles.append(bundle)
        return [{"id": 123, "name": "Project 1"}, {"id": 124, "name": "Project 2"}]

    def _list_assignees(bundle):
        if seen_bundles is not None:
            seen_bundles.append(bundle)
        return _MEMBERS.get(bundle.input_data.get("project_id"), [])

    return AppSpec(
        app_name="tracker",
        triggers=[
            TriggerSpec(
                key="assignee",
                noun="Assignee",
                display=DisplaySpec(label="New Assignee", hidden=True),
                operation=OperationSpec(perform=assignee_perform or _list_assignees),
            )
        ],
        resources=[
            ResourceSpec(key="project", noun="Project", list_operation=OperationSpec(perform=_list_projects))
        ],
        creates=[
            ActionSpec(
                key="issue",
                noun="Issue",
                display=DisplaySpec(label="Create Issue"),
                operation=OperationSpec(
                    perform=lambda bundle: [],
                    input_fields=[
                        FieldSpec(key="project_id", label="Project", dynamic="projectList.id.name"),
                        FieldSpec(
                            key="assignee_id",
                            label="Assignee",
                            dynamic="assignee.id.name",
                            depends_on=["project_id"],
                        ),
                        FieldSpec(key="priority", label="Priority", choices=["low", {"value": "hi", "label": "High"}]),
                        FieldSpec(key="title", label="Title"),
                    ],
                ),
            )
        ],
    )


def _make_resolver(**kwargs) -> DynamicFieldResolver:
    return DynamicFieldResolver(OperationRegistry.from_app_spec(_make_app(**kwargs)))


def test_resolve_source_prefers_resource_alias_then_trigger():
    resolver = _make_resolver()
    assert resolver.parse_reference("projectList.id.name") == DynamicReference("projectList", "id", "name")
    project_op = resolver.resolve_source(parse_reference("projectList.id.name"))
    assignee_op = resolver.resolve_source(parse_reference("assignee.id.name"))
    assert project_op is resolver.registry.lookup("projectList").operation
    assert assignee_op is resolver.registry.lookup("assignee").operation


def test_resolve_source_unknown_key():
    resolver = _make_resolver()
    with pytest.raises(UnknownDynamicSourceError):
        resolver.resolve_source(DynamicReference("teamList", "id", "name"))


def test_to_options_maps_value_and_label():
    resolver = _make_resolver()
    ref = parse_reference("project.id.name")
    assert resolver.to_options([{"id": 123, "name": "Project 1"}], ref) == [{"value": 123, "label": "Project 1"}]


def test_to_options_keeps_order_and_duplicates():
    resolver = _make_resolver()
    records = [{"id": 2, "name": "B"}, {"id": 1, "name": "A"}, {"id": 2, "name": "B"}]
    options = resolver.to_options(records, parse_reference("x.id.name"))
    assert [opt["value"] for opt in options] == [2, 1, 2]


def test_missing_label_field_raises_instead_of_empty_label():
    resolver = _make_resolver()
    with pytest.raises(MissingFieldError) as exc_info:
        resolver.to_options([{"id": 1, "name": "A"}, {"id": 2}], parse_reference("x.id.name"))
    assert exc_info.value.field_name == "name"
    assert exc_info.value.index == 1


def test_missing_value_field_raises():
    resolver = _make_resolver()
    with pytest.raises(MissingFieldError):
        resolver.to_options([{"name": "A"}], parse_reference("x.id.name"))


def test_invoke_wraps_operation_failure_with_cause():
    cause = ConnectionError("401 Unauthorized")

    def _failing(bundle):
        raise cause

    resolver = _make_resolver(assignee_perform=_failing)
    with pytest.raises(SourceOperationFailedError) as exc_info:
        resolver.resolve("assignee.id.name", Bundle(input_data={"project_id": 123}))
    assert exc_info.value.cause is cause
    assert exc_info.value.__cause__ is cause
    assert exc_info.value.source_key == "assignee"


def test_invoke_rejects_non_sequence_result():
    resolver = _make_resolver(assignee_perform=lambda bundle: {"id": 1, "name": "Ada"})
    with pytest.raises(SourceOperationFailedError, match="sequence of records"):
        resolver.resolve("assignee.id.name", Bundle())


def test_dependent_source_receives_prior_input_data():
    seen: list[Bundle] = []
    resolver = _make_resolver(seen_bundles=seen)

    options = resolver.resolve_field("create:issue", "assignee_id", Bundle(input_data={"project_id": 123}))

    assert options == [{"value": 1, "label": "Ada"}, {"value": 2, "label": "Grace"}]
    assert seen[-1].input_data["project_id"] == 123


def test_resolve_field_marks_bundle_as_prefill_and_keeps_page():
    seen: list[Bundle] = []
    resolver = _make_resolver(seen_bundles=seen)
    bundle = Bundle(meta=Meta(page=2))

    resolver.resolve_field("create:issue", "project_id", bundle)

    assert seen[-1].meta.prefill is True
    assert seen[-1].meta.page == 2
    assert bundle.meta.prefill is False


def test_resolve_field_requires_dependencies():
    resolver = _make_resolver()
    with pytest.raises(UnresolvedDependencyError) as exc_info:
        resolver.resolve_field("create:issue", "assignee_id", Bundle())
    assert exc_info.value.missing == ["project_id"]


def test_resolve_field_static_choices_and_plain_fields():
    resolver = _make_resolver()
    assert resolver.resolve_field("create:issue", "priority", Bundle()) == [
        {"value": "low", "label": "low"},
        {"value": "hi", "label": "High"},
    ]
    assert resolver.resolve_field("create:issue", "title", Bundle()) == []


def test_next_page_returns_updated_copy():
    bundle = Bundle(input_data={"project_id": 123}, meta=Meta(prefill=True))
    second = bundle.next_page()
    assert second.meta.page == 1
    assert second.meta.prefill is True
    assert bundle.meta.page == 0
    assert second.input_data == bundle.input_data
    assert second.input_data is not bundle.input_data


def test_normalize_dropdown_options_mixed():
    assert normalize_dropdown_options([{"value": 1}, "x"]) == [
        {"value": 1, "label": 1},
        {"value": "x", "label": "x"},
    ]
    assert normalize_dropdown_options(None) == []


def test_invoke_wraps_failure_raised_while_generator_is_consumed():
    cause = ConnectionError("network dropped")

    def _paged(bundle):
        yield {"id": 1, "name": "Ada"}
        raise cause

    resolver = _make_resolver(assignee_perform=_paged)
    with pytest.raises(SourceOperationFailedError) as exc_info:
        resolver.resolve("assignee.id.name", Bundle())
    assert exc_info.value.cause is cause
    assert exc_info.value.__cause__ is cause


def test_invoke_wraps_non_iterable_result():
    resolver = _make_resolver(assignee_perform=lambda bundle: 42)
    with pytest.raises(SourceOperationFailedError) as exc_info:
        resolver.resolve("assignee.id.name", Bundle())
    assert isinstance(exc_info.value.cause, TypeError)


def test_invoke_names_registered_source_key():
    def _failing(bundle):
        raise RuntimeError("boom")

    resolver = _make_resolver(assignee_perform=_failing)
    operation = resolver.resolve_source(parse_reference("assignee.id.name"))
    with pytest.raises(SourceOperationFailedError) as exc_info:
        resolver.invoke(operation, Bundle())
    assert exc_info.value.source_key == "assignee"
