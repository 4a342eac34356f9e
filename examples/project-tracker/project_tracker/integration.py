"""Integration definition for the project tracker example package."""

from __future__ import annotations

APP_NAME = "Project Tracker"

PAGE_SIZE = 2

_PROJECTS = [
    {"id": 123, "name": "Project 1"},
    {"id": 124, "name": "Project 2"},
    {"id": 125, "name": "Project 3"},
]

_MEMBERS = {
    123: [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}],
    124: [{"id": 3, "name": "Linus"}],
}


def list_projects(bundle):
    if not bundle.meta.prefill:
        return list(_PROJECTS)
    start = bundle.meta.page * PAGE_SIZE
    return _PROJECTS[start : start + PAGE_SIZE]


def list_assignees(bundle):
    project_id = bundle.input_data.get("project_id")
    return list(_MEMBERS.get(project_id, []))


def create_issue(bundle):
    return [dict(bundle.input_data, id=1000)]


TRIGGERS = {
    "assignee": {
        "key": "assignee",
        "noun": "Assignee",
        "display": {"label": "New Assignee", "hidden": True},
        "operation": {
            "perform": list_assignees,
            "inputFields": [{"key": "project_id", "required": True, "dynamic": "projectList.id.name"}],
        },
    },
}

RESOURCES = {
    "project": {
        "key": "project",
        "noun": "Project",
        "list": {"display": {"label": "New Project"}, "operation": {"perform": list_projects}},
    },
}

CREATES = {
    "issue": {
        "key": "issue",
        "noun": "Issue",
        "display": {"label": "Create Issue"},
        "operation": {
            "perform": create_issue,
            "inputFields": [
                {
                    "key": "project_id",
                    "label": "Project",
                    "required": True,
                    "type": "integer",
                    "dynamic": "projectList.id.name",
                    "helpText": "Project the issue is filed under.",
                },
                {
                    "key": "assignee_id",
                    "label": "Assignee",
                    "type": "integer",
                    "dynamic": "assignee.id.name",
                    "dependsOn": ["project_id"],
                },
                {"key": "priority", "label": "Priority", "choices": ["low", "normal", "high"]},
                {"key": "title", "label": "Title", "required": True},
            ],
        },
    },
}
