"""Type definitions for the ticket escalation tool.

Configuration shapes and the literal types used by the config layer.
"""

from typing import Any, Literal, NotRequired, TypedDict

type ConfigValue = str | int | bool | dict[str, Any] | list[Any] | None

type LogLevel = Literal[
    "DEBUG", "INFO", "NOTICE", "SUCCESS", "WARNING", "ERROR", "CRITICAL"
]

type SectionName = Literal["azure_devops", "escalation"]

type DirType = Literal["root", "logs"]


class AzureDevOpsConfig(TypedDict, total=False):
    """Configuration for the Azure DevOps connection."""

    organization: str
    url: NotRequired[str]
    personal_access_token: NotRequired[str]
    api_version: NotRequired[str]
    comments_api_version: NotRequired[str]
    timeout: NotRequired[int]
    verify_ssl: NotRequired[bool]


class EscalationConfig(TypedDict, total=False):
    """Configuration for the escalation workflow itself."""

    log_level: LogLevel
    portal_tenant: NotRequired[str | None]
    stop_on_comment_error: NotRequired[bool]
    dry_run: NotRequired[bool]
    force: NotRequired[bool]


class Config(TypedDict):
    """Complete configuration document."""

    azure_devops: AzureDevOpsConfig
    escalation: EscalationConfig
