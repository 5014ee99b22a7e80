"""Tests for the work item form lifecycle hooks and the escalate trigger."""

from unittest.mock import MagicMock

import pytest

from ticket_escalation.escalation import SUPPORT_AREA_PATH, EscalationWorkflow
from ticket_escalation.form_adapter import (
    BUSY_LABEL,
    ENABLED_LABEL,
    FAILURE_MESSAGE,
    MISSING_CONTEXT_MESSAGE,
    ButtonState,
    TriggerButton,
    WorkItemFormProvider,
    is_escalation_allowed,
)
from ticket_escalation.models import CreateError, EscalationContext, EscalationState

pytestmark = pytest.mark.unit


class StubFormService:
    def __init__(self, work_item_id, fields) -> None:
        self.work_item_id = work_item_id
        self.fields = fields

    def get_id(self):
        return self.work_item_id

    def get_field_values(self, names):
        return {name: self.fields.get(name) for name in names}


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, message: str) -> None:
        self.messages.append(("info", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def provider(store, host, notifier) -> WorkItemFormProvider:
    return WorkItemFormProvider(EscalationWorkflow(store, host), notifier=notifier)


def _support_form(work_item_id: int = 42, area_path: str = SUPPORT_AREA_PATH) -> StubFormService:
    return StubFormService(
        work_item_id,
        {"System.TeamProject": "CTRM", "System.Title": "T", "System.AreaPath": area_path},
    )


@pytest.mark.parametrize(
    ("area_path", "allowed"),
    [
        (SUPPORT_AREA_PATH, True),
        ("", False),
        (None, False),
        ("CTRM\\Customer Support Center\\Kundenportal", False),
        (SUPPORT_AREA_PATH.lower(), False),
        (SUPPORT_AREA_PATH + "\\Sub", False),
    ],
)
def test_visibility_requires_exact_area_path(area_path, allowed: bool) -> None:
    assert is_escalation_allowed(area_path) is allowed


def test_button_states() -> None:
    button = TriggerButton()
    assert button.state is ButtonState.HIDDEN
    assert not button.visible

    button.show()
    assert button.visible
    assert not button.disabled
    assert button.label == ENABLED_LABEL

    button.set_busy()
    assert button.visible
    assert button.disabled
    assert button.label == BUSY_LABEL


def test_on_loaded_shows_trigger_for_support_tickets(provider) -> None:
    provider.on_loaded(_support_form())

    assert provider.button.state is ButtonState.ENABLED
    assert provider.context == EscalationContext(work_item_id=42, project_name="CTRM")


def test_on_loaded_hides_trigger_elsewhere(provider) -> None:
    provider.button.show()

    provider.on_loaded(_support_form(area_path="CTRM\\Development"))

    assert provider.button.state is ButtonState.HIDDEN


def test_on_loaded_form_error_hides_trigger(provider) -> None:
    form = MagicMock()
    form.get_id.side_effect = RuntimeError("form not ready")

    provider.on_loaded(form)

    assert provider.button.state is ButtonState.HIDDEN
    assert provider.context == EscalationContext()


def test_on_field_changed_is_noop(provider) -> None:
    provider.on_loaded(_support_form())
    provider.on_field_changed({"changedFields": {"System.Title": "X"}})
    assert provider.button.state is ButtonState.ENABLED


def test_click_without_context_reports_and_reenables(provider, store, notifier) -> None:
    result = provider.on_escalate_click()

    assert result is None
    assert notifier.messages == [("error", MISSING_CONTEXT_MESSAGE)]
    assert provider.button.state is ButtonState.ENABLED
    assert store.calls == []


def test_click_success_hides_trigger(provider, store, notifier, make_ticket) -> None:
    store.add(make_ticket())
    provider.on_loaded(_support_form())

    result = provider.on_escalate_click()

    assert result is not None
    assert notifier.messages == [("info", "Issue #500 successfully created and linked.")]
    assert provider.button.state is ButtonState.HIDDEN


def test_click_failure_shows_generic_message_and_reenables(provider, store, notifier, make_ticket, api_error) -> None:
    store.add(make_ticket())
    store.fail_on["create_work_item"] = api_error
    provider.on_loaded(_support_form())

    result = provider.on_escalate_click()

    assert result is None
    assert notifier.messages == [("error", FAILURE_MESSAGE)]
    assert provider.button.state is ButtonState.ENABLED
    assert provider.workflow.state is EscalationState.FAILED


def test_trigger_is_busy_while_workflow_runs(notifier) -> None:
    seen: list[ButtonState] = []
    workflow = MagicMock(spec=EscalationWorkflow)
    provider = WorkItemFormProvider(workflow, notifier=notifier)

    def _run(context):
        seen.append(provider.button.state)
        raise CreateError("nope", step=EscalationState.CREATING)

    workflow.run.side_effect = _run
    provider.on_loaded(_support_form())

    provider.on_escalate_click()

    assert seen == [ButtonState.BUSY]
    assert provider.button.state is ButtonState.ENABLED


def test_click_unexpected_error_shows_generic_message_and_reenables(provider, store, notifier, make_ticket) -> None:
    store.add(make_ticket())
    store.fail_on["create_work_item"] = RuntimeError("unexpected payload")
    provider.on_loaded(_support_form())

    result = provider.on_escalate_click()

    assert result is None
    assert notifier.messages == [("error", FAILURE_MESSAGE)]
    assert provider.button.state is ButtonState.ENABLED
    assert provider.workflow.state is EscalationState.FAILED
