"""Escalation of a Support Ticket into a linked second-line Issue.

The workflow reads the ticket, derives the new issue's patch document, creates
the issue, copies the ticket's comments into the issue history and finally
moves the ticket to the second-line area path. Steps run strictly in that
order; the first failure ends the invocation and nothing already written is
rolled back.
"""

from __future__ import annotations

from collections.abc import Sequence

from ticket_escalation import config
from ticket_escalation.clients.exceptions import ClientError, ResourceNotFoundError
from ticket_escalation.clients.work_item_client import WorkItemStore, WorkItemTrackingClient
from ticket_escalation.config import logger
from ticket_escalation.link_extractor import extract_portal_link
from ticket_escalation.models import (
    Comment,
    CommentCopyError,
    CreateError,
    EscalationContext,
    EscalationError,
    EscalationResult,
    EscalationState,
    FetchError,
    MissingContextError,
    PatchOperation,
    UpdateError,
    WorkItem,
)

SUPPORT_AREA_PATH = "CTRM\\Customer Support Center\\Kundenportal\\Kundenportalsupport"
SECOND_LINE_AREA_PATH = "CTRM\\Customer Support Center\\Kundenportal\\Product Owner"

TITLE_FIELD = "System.Title"
DESCRIPTION_FIELD = "System.Description"
AREA_PATH_FIELD = "System.AreaPath"
HISTORY_FIELD = "System.History"
TEAM_PROJECT_FIELD = "System.TeamProject"
CUSTOMER_DETAILS_FIELD = "Custom.CTRM_CustomerDetails"

PARENT_LINK_TYPE = "System.LinkTypes.Hierarchy-Reverse"
ISSUE_TYPE = "Issue"
TITLE_PREFIX = "Escalated from #{id}: "


def work_item_web_url(host: str, project: str, work_item_id: int) -> str:
    """URL of the work item's page in the web UI."""
    return f"{host}/{project}/_workitems/edit/{work_item_id}"


def work_item_api_url(host: str, project: str, work_item_id: int) -> str:
    """Canonical REST resource URL of the work item, used as relation target."""
    return f"{host}/{project}/_apis/wit/workItems/{work_item_id}"


def build_issue_title(source_id: int, title: str | None) -> str:
    return TITLE_PREFIX.format(id=source_id) + (title or "")


def build_issue_description(
    source_id: int,
    ticket_url: str,
    original_description: str,
    portal_link: str | None = None,
) -> str:
    """Compose the issue description.

    The original description is appended verbatim; it is HTML and is not
    parsed or escaped.
    """
    parts = []
    if portal_link:
        parts.append(
            f'<p><a href="{portal_link}" target="_blank">Show customer in Fuse</a></p>'
        )
    parts.append(
        "<p>Escalated from Support Ticket "
        f'<a href="{ticket_url}" target="_blank">#{source_id}</a>.</p>'
    )
    parts.append("<p>Original Description:</p>")
    parts.append(original_description)
    return "\n".join(parts)


def build_issue_patch(
    source: WorkItem,
    context: EscalationContext,
    host: str,
    portal_tenant: str | None = None,
) -> list[PatchOperation]:
    """Build the patch document that creates the escalated issue.

    Order: title, area path, description, parent relation.
    """
    source_id = context.work_item_id
    project = context.project_name

    portal_link = extract_portal_link(
        source.field(CUSTOMER_DETAILS_FIELD, ""), tenant=portal_tenant,
    )
    if portal_link:
        logger.debug("Found customer portal link %s", portal_link)

    description = build_issue_description(
        source_id,
        work_item_web_url(host, project, source_id),
        source.field(DESCRIPTION_FIELD, ""),
        portal_link,
    )

    return [
        PatchOperation(
            path=f"/fields/{TITLE_FIELD}",
            value=build_issue_title(source_id, source.field(TITLE_FIELD)),
        ),
        PatchOperation(path=f"/fields/{AREA_PATH_FIELD}", value=SECOND_LINE_AREA_PATH),
        PatchOperation(path=f"/fields/{DESCRIPTION_FIELD}", value=description),
        PatchOperation(
            path="/relations/-",
            value={
                "rel": PARENT_LINK_TYPE,
                "url": work_item_api_url(host, project, source_id),
            },
        ),
    ]


def build_history_patch(comment: Comment) -> list[PatchOperation]:
    return [PatchOperation(path=f"/fields/{HISTORY_FIELD}", value=comment.text)]


def build_reclassify_patch() -> list[PatchOperation]:
    return [PatchOperation(path=f"/fields/{AREA_PATH_FIELD}", value=SECOND_LINE_AREA_PATH)]


class EscalationWorkflow:
    """Escalate one Support Ticket per ``run`` call.

    ``state`` follows IDLE -> VALIDATING -> FETCHING -> CREATING ->
    COPYING_COMMENTS -> RECLASSIFYING -> SUCCEEDED, or ends in FAILED with
    ``failure_reason`` set. Nothing is retried and re-running after a partial
    failure creates another issue.
    """

    def __init__(
        self,
        store: WorkItemStore,
        host: str,
        portal_tenant: str | None = None,
        stop_on_comment_error: bool = True,
    ) -> None:
        """Initialize the workflow.

        Args:
            store: Work item store used for all reads and writes
            host: Organization URL used to build the backlink and relation URLs
            portal_tenant: Customer portal tenant domain, any tenant if empty
            stop_on_comment_error: Abort on the first comment that cannot be
                copied; otherwise log it and continue with the next one

        """
        self.store = store
        self.host = host.rstrip("/")
        self.portal_tenant = portal_tenant or None
        self.stop_on_comment_error = stop_on_comment_error
        self.state = EscalationState.IDLE
        self.failure_reason: str | None = None

    @classmethod
    def from_config(cls, store: WorkItemStore | None = None) -> EscalationWorkflow:
        """Build a workflow wired to the configured Azure DevOps organization."""
        escalation_config = config.escalation_config
        return cls(
            store=store or WorkItemTrackingClient(),
            host=config.get_host_url(),
            portal_tenant=escalation_config.get("portal_tenant"),
            stop_on_comment_error=escalation_config.get("stop_on_comment_error", True),
        )

    def _enter(self, state: EscalationState) -> None:
        logger.debug("Escalation state %s -> %s", self.state.value, state.value)
        self.state = state

    def _mark_failed(self, reason: str) -> EscalationState:
        """Move to FAILED and return the step that failed."""
        step = self.state
        self.state = EscalationState.FAILED
        self.failure_reason = reason
        return step

    def _validate(self, context: EscalationContext) -> None:
        self._enter(EscalationState.VALIDATING)
        if not context.is_complete:
            error_msg = (
                "Work item data is missing: "
                f"work_item_id={context.work_item_id!r}, project={context.project_name!r}"
            )
            step = self._mark_failed(error_msg)
            logger.error(error_msg)
            raise MissingContextError(error_msg, step=step)

    def _fetch(self, context: EscalationContext) -> WorkItem:
        self._enter(EscalationState.FETCHING)
        try:
            return self.store.get_work_item(context.work_item_id)
        except ResourceNotFoundError as e:
            error_msg = f"Support ticket #{context.work_item_id} not found"
            step = self._mark_failed(error_msg)
            logger.exception(error_msg)
            raise FetchError(error_msg, step=step) from e
        except ClientError as e:
            error_msg = f"Failed to read support ticket #{context.work_item_id}: {e!s}"
            step = self._mark_failed(error_msg)
            logger.exception(error_msg)
            raise FetchError(error_msg, step=step) from e

    def _create(self, patch: Sequence[PatchOperation], context: EscalationContext) -> WorkItem:
        self._enter(EscalationState.CREATING)
        try:
            issue = self.store.create_work_item(patch, context.project_name, ISSUE_TYPE)
        except ClientError as e:
            error_msg = (
                f"Failed to create {ISSUE_TYPE} for support ticket "
                f"#{context.work_item_id}: {e!s}"
            )
            step = self._mark_failed(error_msg)
            logger.exception(error_msg)
            raise CreateError(error_msg, step=step) from e

        logger.notice("Created %s #%s from support ticket #%s", ISSUE_TYPE, issue.id, context.work_item_id)
        return issue

    def _copy_comments(self, context: EscalationContext, result: EscalationResult) -> None:
        self._enter(EscalationState.COPYING_COMMENTS)
        try:
            comments = self.store.get_comments(context.work_item_id, context.project_name)
        except ClientError as e:
            error_msg = f"Failed to list comments of support ticket #{context.work_item_id}: {e!s}"
            step = self._mark_failed(error_msg)
            logger.exception(error_msg)
            raise CommentCopyError(error_msg, step=step, issue_id=result.issue_id) from e

        if not comments:
            logger.debug("Support ticket #%s has no comments to copy", context.work_item_id)
            return

        for comment in comments:
            try:
                self.store.update_work_item(build_history_patch(comment), result.issue_id)
            except ClientError as e:
                error_msg = (
                    f"Failed to copy comment {comment.id} to {ISSUE_TYPE} "
                    f"#{result.issue_id}: {e!s}"
                )
                if self.stop_on_comment_error:
                    step = self._mark_failed(error_msg)
                    logger.exception(error_msg)
                    raise CommentCopyError(
                        error_msg,
                        step=step,
                        issue_id=result.issue_id,
                        copied=result.comments_copied,
                    ) from e
                logger.warning(error_msg)
                result.add_comment_failure(error_msg)
                continue
            result.comments_copied += 1

        logger.info(
            "Copied %d of %d comments to %s #%s",
            result.comments_copied,
            len(comments),
            ISSUE_TYPE,
            result.issue_id,
        )

    def _reclassify(self, context: EscalationContext, issue_id: int) -> None:
        self._enter(EscalationState.RECLASSIFYING)
        try:
            self.store.update_work_item(build_reclassify_patch(), context.work_item_id)
        except ClientError as e:
            # The issue already exists at this point and is left in place
            error_msg = (
                f"{ISSUE_TYPE} #{issue_id} was created but support ticket "
                f"#{context.work_item_id} could not be moved to the second line: {e!s}"
            )
            step = self._mark_failed(error_msg)
            logger.exception(error_msg)
            raise UpdateError(error_msg, step=step, issue_id=issue_id) from e

    def preview(self, context: EscalationContext) -> list[PatchOperation]:
        """Validate, read the ticket and return the issue patch without writing anything."""
        self.failure_reason = None
        self._validate(context)
        source = self._fetch(context)
        patch = build_issue_patch(source, context, self.host, self.portal_tenant)
        self._enter(EscalationState.IDLE)
        return patch

    def run(self, context: EscalationContext) -> EscalationResult:
        """Escalate the ticket described by ``context``.

        Returns:
            The result carrying the new issue id

        Raises:
            MissingContextError: If id or project is missing; no remote call is made
            FetchError: If the ticket cannot be read
            CreateError: If the issue cannot be created; the ticket is untouched
            CommentCopyError: If comments cannot be listed, or one cannot be
                copied while ``stop_on_comment_error`` is set
            UpdateError: If the ticket cannot be reclassified

        Any other exception is re-raised unchanged after moving to FAILED.
        """
        self.state = EscalationState.IDLE
        self.failure_reason = None

        try:
            return self._run_steps(context)
        except EscalationError:
            raise
        except Exception as e:
            step = self._mark_failed(f"Unexpected error: {e!s}")
            logger.exception("Unexpected error while %s", step.value)
            raise

    def _run_steps(self, context: EscalationContext) -> EscalationResult:
        self._validate(context)
        logger.info(
            "Escalating support ticket #%s in project %s",
            context.work_item_id,
            context.project_name,
        )

        source = self._fetch(context)
        patch = build_issue_patch(source, context, self.host, self.portal_tenant)
        issue = self._create(patch, context)

        result = EscalationResult(
            issue_id=issue.id,
            source_id=context.work_item_id,
            issue_url=work_item_web_url(self.host, context.project_name, issue.id),
        )
        self._copy_comments(context, result)
        self._reclassify(context, issue.id)

        self._enter(EscalationState.SUCCEEDED)
        result.state = self.state
        logger.success(
            "Support ticket #%s escalated to %s #%s",
            context.work_item_id,
            ISSUE_TYPE,
            issue.id,
        )
        return result
