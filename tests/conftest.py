"""Shared pytest fixtures and configuration for all tests."""

import os
from collections.abc import Sequence

import pytest
from _pytest.config import Config

from ticket_escalation.clients.exceptions import ApiError, ResourceNotFoundError
from ticket_escalation.escalation import (
    AREA_PATH_FIELD,
    CUSTOMER_DETAILS_FIELD,
    DESCRIPTION_FIELD,
    SUPPORT_AREA_PATH,
    TEAM_PROJECT_FIELD,
    TITLE_FIELD,
)
from ticket_escalation.models import Comment, PatchOperation, WorkItem

HOST = "https://dev.azure.com/contoso"
PROJECT = "CTRM"


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line(
        "markers",
        "integration: mark a test as an integration test",
    )


def _env_flag(name: str, default: bool = False) -> bool:
    """Read boolean environment flag (true/false)."""
    val = os.environ.get(name, "true" if default else "false").strip().lower()
    return val in {"1", "true", "yes", "on"}


def pytest_collection_modifyitems(config: Config, items: list[pytest.Item]) -> None:
    """Apply default skipping for integration and unmarked tests.

    - Integration tests are skipped unless ESC_RUN_INTEGRATION is true; they
      talk to a real Azure DevOps organization.
    - Unmarked tests are skipped unless ESC_RUN_ALL_TESTS is true.
    """
    run_all = _env_flag("ESC_RUN_ALL_TESTS", False)
    run_integration = _env_flag("ESC_RUN_INTEGRATION", False) or run_all

    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled by default. Set ESC_RUN_INTEGRATION=true to enable.",
    )
    skip_unmarked = pytest.mark.skip(
        reason="Unmarked test skipped by default. Mark with unit/integration or set ESC_RUN_ALL_TESTS=true.",
    )

    for item in items:
        kws = item.keywords
        if "integration" in kws and not run_integration:
            item.add_marker(skip_integration)
            continue
        if not run_all and not any(m in kws for m in ("unit", "integration")):
            item.add_marker(skip_unmarked)


class FakeWorkItemStore:
    """In-memory work item store that records every call in order."""

    def __init__(self) -> None:
        self.items: dict[int, WorkItem] = {}
        self.comments: dict[int, list[Comment]] = {}
        self.calls: list[tuple] = []
        self.next_id = 500
        self.fail_on: dict[str, Exception] = {}
        self.fail_history_at: dict[int, Exception] = {}
        self._history_calls = 0

    def add(self, work_item: WorkItem, comments: Sequence[str] = ()) -> WorkItem:
        self.items[work_item.id] = work_item
        self.comments[work_item.id] = [
            Comment(id=index, workItemId=work_item.id, text=text)
            for index, text in enumerate(comments, start=1)
        ]
        return work_item

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def get_work_item(self, work_item_id: int) -> WorkItem:
        self.calls.append(("get_work_item", work_item_id))
        self._maybe_fail("get_work_item")
        if work_item_id not in self.items:
            msg = f"GET workitems/{work_item_id} returned 404: TF401232"
            raise ResourceNotFoundError(msg)
        return self.items[work_item_id]

    def create_work_item(
        self, patch: Sequence[PatchOperation], project: str, type_name: str,
    ) -> WorkItem:
        self.calls.append(("create_work_item", list(patch), project, type_name))
        self._maybe_fail("create_work_item")
        fields = {op.path.removeprefix("/fields/"): op.value for op in patch if op.path.startswith("/fields/")}
        relations = [op.value for op in patch if op.path == "/relations/-"]
        created = WorkItem(id=self.next_id, fields=fields, relations=relations)
        self.next_id += 1
        self.items[created.id] = created
        return created

    def update_work_item(
        self, patch: Sequence[PatchOperation], work_item_id: int,
    ) -> WorkItem:
        self.calls.append(("update_work_item", list(patch), work_item_id))
        if any(op.path == "/fields/System.History" for op in patch):
            self._history_calls += 1
            if self._history_calls in self.fail_history_at:
                raise self.fail_history_at[self._history_calls]
        else:
            self._maybe_fail("update_work_item")
        item = self.items[work_item_id]
        for op in patch:
            item.fields[op.path.removeprefix("/fields/")] = op.value
        return item

    def get_comments(self, work_item_id: int, project: str) -> list[Comment]:
        self.calls.append(("get_comments", work_item_id, project))
        self._maybe_fail("get_comments")
        return list(self.comments.get(work_item_id, []))

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


def _make_ticket(
    work_item_id: int = 42,
    title: str | None = "T",
    description: str | None = "<p>broken</p>",
    customer_details: str | None = None,
    area_path: str = SUPPORT_AREA_PATH,
) -> WorkItem:
    fields = {
        TITLE_FIELD: title,
        DESCRIPTION_FIELD: description,
        AREA_PATH_FIELD: area_path,
        TEAM_PROJECT_FIELD: PROJECT,
    }
    if customer_details is not None:
        fields[CUSTOMER_DETAILS_FIELD] = customer_details
    return WorkItem(id=work_item_id, rev=1, fields=fields)


@pytest.fixture
def store() -> FakeWorkItemStore:
    return FakeWorkItemStore()


@pytest.fixture
def api_error() -> ApiError:
    return ApiError("PATCH failed: 400 Bad Request", status_code=400)


@pytest.fixture
def make_ticket():
    """Factory for support tickets filed under the support area path."""
    return _make_ticket


@pytest.fixture
def host() -> str:
    return HOST


@pytest.fixture
def project() -> str:
    return PROJECT
