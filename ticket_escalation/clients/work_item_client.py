"""Azure DevOps Work Item Tracking client.

Provides a clean, exception-based interface for the handful of work item
operations the escalation needs: read, create, update and list comments.
"""

from collections.abc import Sequence
from typing import Any, Protocol
from urllib.parse import quote

import requests
from pydantic import BaseModel, ValidationError

from ticket_escalation import config
from ticket_escalation.clients.exceptions import (
    ApiError,
    AuthenticationError,
    ClientConnectionError,
    JsonParseError,
    RateLimitError,
    ResourceNotFoundError,
)
from ticket_escalation.config import logger
from ticket_escalation.models import Comment, PatchOperation, WorkItem

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_BAD_REQUEST_MIN = 400

DEFAULT_API_VERSION = "7.1"
DEFAULT_COMMENTS_API_VERSION = "7.1-preview.4"
DEFAULT_TIMEOUT = 30

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"


class WorkItemStore(Protocol):
    """Work item operations the escalation workflow depends on."""

    def get_work_item(self, work_item_id: int) -> WorkItem: ...

    def create_work_item(
        self, patch: Sequence[PatchOperation], project: str, type_name: str,
    ) -> WorkItem: ...

    def update_work_item(
        self, patch: Sequence[PatchOperation], work_item_id: int,
    ) -> WorkItem: ...

    def get_comments(self, work_item_id: int, project: str) -> list[Comment]: ...


class WorkItemTrackingClient:
    """REST client for the Azure DevOps Work Item Tracking API.

    Authenticates with a personal access token over HTTP Basic auth. Every
    method raises a ``ClientError`` subclass instead of returning empty
    results, so callers decide how to handle failures.
    """

    def __init__(  # noqa: PLR0913
        self,
        base_url: str | None = None,
        personal_access_token: str | None = None,
        api_version: str | None = None,
        comments_api_version: str | None = None,
        timeout: int | None = None,
        verify_ssl: bool | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client, falling back to the loaded configuration.

        Args:
            base_url: Organization URL, e.g. ``https://dev.azure.com/contoso``
            personal_access_token: PAT with work item read/write scope
            api_version: REST api-version for work item calls
            comments_api_version: REST api-version for the comments endpoint
            timeout: Per-request timeout in seconds
            verify_ssl: Whether to verify TLS certificates
            session: Pre-built session, mainly for tests

        """
        ado_config = config.ado_config
        self.base_url = (base_url or config.get_host_url()).rstrip("/")
        self.personal_access_token = personal_access_token or ado_config.get(
            "personal_access_token", "",
        )
        if not self.personal_access_token:
            msg = "Azure DevOps personal access token is required"
            raise ValueError(msg)

        self.api_version = api_version or ado_config.get("api_version") or DEFAULT_API_VERSION
        self.comments_api_version = (
            comments_api_version
            or ado_config.get("comments_api_version")
            or DEFAULT_COMMENTS_API_VERSION
        )
        self.timeout = timeout or ado_config.get("timeout") or DEFAULT_TIMEOUT
        self.verify_ssl = (
            verify_ssl if verify_ssl is not None else ado_config.get("verify_ssl", True)
        )

        self.session = session or requests.Session()
        self.session.auth = ("", self.personal_access_token)
        self.session.headers.update({"Accept": "application/json"})

        logger.debug("Work item client configured for %s", self.base_url)

    def _url(self, *parts: str, project: str | None = None) -> str:
        prefix = self.base_url
        if project:
            prefix = f"{prefix}/{quote(project, safe='')}"
        return "/".join([prefix, "_apis", "wit", *parts])

    def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        patch: Sequence[PatchOperation] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ClientConnectionError: If the request never got a response
            AuthenticationError: On 401/403
            ResourceNotFoundError: On 404
            RateLimitError: On 429
            ApiError: On any other error status
            JsonParseError: If the body is not JSON

        """
        headers = {}
        body = None
        if patch is not None:
            headers["Content-Type"] = JSON_PATCH_CONTENT_TYPE
            body = [operation.to_wire() for operation in patch]

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=body,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify_ssl,
            )
        except requests.RequestException as e:
            error_msg = f"{method} {url} failed: {e!s}"
            logger.error(error_msg)
            raise ClientConnectionError(error_msg) from e

        self._raise_for_status(method, url, response)

        try:
            return response.json()
        except ValueError as e:
            error_msg = f"{method} {url} returned a non-JSON body"
            logger.error(error_msg)
            raise JsonParseError(error_msg) from e

    def _raise_for_status(self, method: str, url: str, response: requests.Response) -> None:
        status = response.status_code
        if status < HTTP_BAD_REQUEST_MIN:
            return

        error_msg = f"{method} {url} returned {status}: {self._error_message(response)}"
        logger.error(error_msg)

        if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            raise AuthenticationError(error_msg)
        if status == HTTP_NOT_FOUND:
            raise ResourceNotFoundError(error_msg)
        if status == HTTP_TOO_MANY_REQUESTS:
            retry_after = response.headers.get("Retry-After", "")
            raise RateLimitError(
                error_msg, retry_after=int(retry_after) if retry_after.isdigit() else None,
            )
        raise ApiError(error_msg, status_code=status)

    @staticmethod
    def _parse[M: BaseModel](model: type[M], data: Any, method: str, url: str) -> M:
        """Validate a decoded body against ``model``.

        Raises:
            JsonParseError: If the body does not have the expected shape

        """
        try:
            return model.model_validate(data)
        except ValidationError as e:
            error_msg = f"{method} {url} returned an unexpected {model.__name__} payload: {e!s}"
            logger.error(error_msg)
            raise JsonParseError(error_msg) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Pull the service's own message out of an error response."""
        try:
            payload = response.json()
        except ValueError:
            return response.text[:200] or response.reason or "no details"
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return response.reason or "no details"

    def get_work_item(self, work_item_id: int) -> WorkItem:
        """Get a work item with its fields and relations.

        Raises:
            ResourceNotFoundError: If the work item does not exist
            ClientError: If the API request fails

        """
        url = self._url("workitems", str(work_item_id))
        data = self._request(
            "GET", url, params={"$expand": "relations", "api-version": self.api_version},
        )
        return self._parse(WorkItem, data, "GET", url)

    def create_work_item(
        self, patch: Sequence[PatchOperation], project: str, type_name: str,
    ) -> WorkItem:
        """Create a work item of ``type_name`` in ``project`` from a patch document."""
        url = self._url("workitems", f"${quote(type_name, safe='')}", project=project)
        data = self._request("POST", url, params={"api-version": self.api_version}, patch=patch)
        work_item = self._parse(WorkItem, data, "POST", url)
        logger.debug("Created %s #%s in %s", type_name, work_item.id, project)
        return work_item

    def update_work_item(
        self, patch: Sequence[PatchOperation], work_item_id: int,
    ) -> WorkItem:
        """Apply a patch document to an existing work item."""
        url = self._url("workitems", str(work_item_id))
        data = self._request("PATCH", url, params={"api-version": self.api_version}, patch=patch)
        return self._parse(WorkItem, data, "PATCH", url)

    def get_comments(self, work_item_id: int, project: str) -> list[Comment]:
        """Get all comments of a work item, oldest first.

        Follows continuation tokens until the service reports no more pages.
        """
        url = self._url("workItems", str(work_item_id), "comments", project=project)
        params: dict[str, Any] = {"order": "asc", "api-version": self.comments_api_version}

        comments: list[Comment] = []
        while True:
            data = self._request("GET", url, params=params)
            if not isinstance(data, dict) or not isinstance(data.get("comments") or [], list):
                error_msg = f"GET {url} returned an unexpected comments payload"
                logger.error(error_msg)
                raise JsonParseError(error_msg)
            comments.extend(
                self._parse(Comment, item, "GET", url) for item in data.get("comments") or []
            )
            token = data.get("continuationToken")
            if not token:
                break
            params = {**params, "continuationToken": token}

        logger.debug("Retrieved %d comments for work item #%s", len(comments), work_item_id)
        return comments
