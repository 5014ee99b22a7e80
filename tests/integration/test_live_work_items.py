"""Read-only smoke test against a real Azure DevOps organization.

Needs ESC_ADO_ORGANIZATION (or ESC_ADO_URL), ESC_ADO_PERSONAL_ACCESS_TOKEN and
ESC_TEST_WORK_ITEM_ID pointing at an existing support ticket.
"""

import os

import pytest

from ticket_escalation import config
from ticket_escalation.clients.work_item_client import WorkItemTrackingClient
from ticket_escalation.escalation import TEAM_PROJECT_FIELD, EscalationWorkflow
from ticket_escalation.models import EscalationContext

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def live_client() -> WorkItemTrackingClient:
    if not config.validate_config() or not os.environ.get("ESC_TEST_WORK_ITEM_ID"):
        pytest.skip("Azure DevOps credentials or ESC_TEST_WORK_ITEM_ID not configured")
    return WorkItemTrackingClient()


def test_preview_against_live_ticket(live_client: WorkItemTrackingClient) -> None:
    work_item_id = int(os.environ["ESC_TEST_WORK_ITEM_ID"])
    ticket = live_client.get_work_item(work_item_id)
    context = EscalationContext(
        work_item_id=work_item_id, project_name=ticket.field(TEAM_PROJECT_FIELD),
    )

    patch = EscalationWorkflow.from_config(live_client).preview(context)

    assert patch[0].value.startswith(f"Escalated from #{work_item_id}: ")
    assert isinstance(live_client.get_comments(work_item_id, context.project_name), list)
