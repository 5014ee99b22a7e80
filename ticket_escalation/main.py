"""Main entry point for the ticket escalation tool.

Plays the host's part for the escalation: loads the work item form context
through the REST API, decides whether the trigger would be shown and runs the
escalation.
"""

import argparse
import json
import sys
from collections.abc import Iterable
from typing import Any

from ticket_escalation import config
from ticket_escalation.clients.exceptions import ClientError, ResourceNotFoundError
from ticket_escalation.clients.work_item_client import WorkItemStore, WorkItemTrackingClient
from ticket_escalation.config import logger, update_from_cli_args
from ticket_escalation.display import configure_logging, console
from ticket_escalation.escalation import EscalationWorkflow
from ticket_escalation.form_adapter import WorkItemFormProvider
from ticket_escalation.models import EscalationError


class RestWorkItemFormService:
    """Form service backed by the REST API instead of an open form.

    ``load`` reads the work item up front so that a missing ticket or a failed
    request surfaces as a ``ClientError`` instead of an empty form.
    """

    def __init__(self, store: WorkItemStore, work_item_id: int, project: str | None = None) -> None:
        self.store = store
        self.work_item_id = work_item_id
        self.project = project
        self._fields: dict[str, Any] | None = None

    def load(self) -> None:
        self._fields = self.store.get_work_item(self.work_item_id).fields

    def get_id(self) -> int | None:
        return self.work_item_id

    def get_field_values(self, names: Iterable[str]) -> dict[str, Any]:
        if self._fields is None:
            self.load()
        values = {name: self._fields.get(name) for name in names}
        if self.project and "System.TeamProject" in values:
            values["System.TeamProject"] = self.project
        return values


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Escalate Azure DevOps support tickets to second-line issues",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "NOTICE", "WARNING", "ERROR"],
        help="Override the configured log level",
    )
    parser.add_argument(
        "--organization",
        help="Azure DevOps organization (overrides ESC_ADO_ORGANIZATION)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands", required=True)

    escalate_parser = subparsers.add_parser(
        "escalate",
        help="Create a second-line issue from a support ticket",
    )
    escalate_parser.add_argument("work_item_id", type=int, help="Support ticket id")
    escalate_parser.add_argument(
        "--project",
        help="Team project (defaults to the ticket's System.TeamProject)",
    )
    escalate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the issue patch document without changing anything",
    )
    escalate_parser.add_argument(
        "--force",
        action="store_true",
        help="Escalate even if the ticket is not in the support area path",
    )
    escalate_parser.add_argument(
        "--continue-on-comment-error",
        action="store_true",
        help="Keep going when a comment cannot be copied instead of aborting",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Show whether the escalate trigger would be visible for a ticket",
    )
    check_parser.add_argument("work_item_id", type=int, help="Support ticket id")

    return parser


def _load_form(store: WorkItemStore, work_item_id: int, project: str | None) -> WorkItemFormProvider:
    form_service = RestWorkItemFormService(store, work_item_id, project)
    form_service.load()
    provider = WorkItemFormProvider(EscalationWorkflow.from_config(store))
    provider.on_loaded(form_service)
    return provider


def run_check(store: WorkItemStore, work_item_id: int) -> int:
    provider = _load_form(store, work_item_id, None)
    if provider.button.visible:
        console.print(f"Work item #{work_item_id} can be escalated.")
        return 0
    console.print(f"Work item #{work_item_id} is not in the support area path; trigger hidden.")
    return 1


def run_escalate(store: WorkItemStore, args: argparse.Namespace) -> int:
    provider = _load_form(store, args.work_item_id, args.project)

    if not provider.button.visible:
        if not config.escalation_config.get("force"):
            logger.error(
                "Work item #%s is not in the support area path; use --force to escalate anyway",
                args.work_item_id,
            )
            return 1
        logger.warning("Escalating work item #%s outside the support area path", args.work_item_id)
        provider.button.show()

    if config.escalation_config.get("dry_run"):
        try:
            patch = provider.workflow.preview(provider.context)
        except EscalationError as e:
            logger.error("Dry run failed: %s", e.message)
            return 1
        console.print_json(json.dumps([operation.to_wire() for operation in patch]))
        return 0

    result = provider.on_escalate_click()
    if result is None:
        return 1
    console.print(f"Issue: {result.issue_url}")
    for failure in result.comment_failures:
        logger.warning(failure)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and execute the appropriate command."""
    args = build_parser().parse_args(argv)

    if args.log_level:
        configure_logging(args.log_level, config.log_file)
    update_from_cli_args(args)

    if not config.validate_config():
        return 1

    try:
        store = WorkItemTrackingClient()
        match args.command:
            case "check":
                return run_check(store, args.work_item_id)
            case "escalate":
                return run_escalate(store, args)
    except ResourceNotFoundError:
        logger.error("Work item #%s not found", args.work_item_id)
        return 1
    except ClientError as e:
        logger.error("Azure DevOps request failed: %s", e)
        return 1
    return 1


if __name__ == "__main__":
    sys.exit(main())
