"""Configuration module for the ticket escalation tool.
Provides a centralized configuration interface using ConfigLoader.
"""

from pathlib import Path
from typing import Any

from ticket_escalation.config_loader import ConfigLoader
from ticket_escalation.display import configure_logging
from ticket_escalation.type_definitions import DirType, LogLevel

DEFAULT_HOST_TEMPLATE = "https://dev.azure.com/{organization}"

# Create a singleton instance of ConfigLoader
_config_loader = ConfigLoader()

ado_config = _config_loader.get_ado_config()
escalation_config = _config_loader.get_escalation_config()

root_dir = Path(__file__).parent.parent
var_dir = root_dir / "var"

var_dirs: dict[DirType, Path] = {
    "root": var_dir,
    "logs": var_dir / "logs",
}

created_dirs = []
for dir_path in var_dirs.values():
    if not dir_path.exists():
        dir_path.mkdir(parents=True, exist_ok=True)
        created_dirs.append(f"Created directory: {dir_path}")

LOG_LEVEL: LogLevel = escalation_config.get("log_level", "INFO")
log_file = var_dirs["logs"] / "escalation.log"
logger = configure_logging(LOG_LEVEL, log_file)

for message in created_dirs:
    logger.debug(message)


def get_host_url() -> str:
    """Return the organization base URL used for REST calls and backlinks.

    An explicit ``azure_devops.url`` wins; otherwise the URL is derived from
    the organization name.
    """
    url = ado_config.get("url")
    if url:
        return str(url).rstrip("/")

    organization = ado_config.get("organization")
    if not organization:
        msg = "Azure DevOps organization or url must be configured"
        raise ValueError(msg)
    return DEFAULT_HOST_TEMPLATE.format(organization=organization)


def validate_config() -> bool:
    """Validate that all required configuration variables are set."""
    missing_vars = []

    if not (ado_config.get("organization") or ado_config.get("url")):
        missing_vars.append("ESC_ADO_ORGANIZATION or ESC_ADO_URL")
    if not ado_config.get("personal_access_token"):
        missing_vars.append("ESC_ADO_PERSONAL_ACCESS_TOKEN")

    if missing_vars:
        logger.error(
            "Missing required environment variables: %s", ", ".join(missing_vars),
        )
        return False

    return True


def update_from_cli_args(args: Any) -> None:
    """Update escalation configuration from CLI arguments.

    Args:
        args: An object containing CLI arguments (typically from argparse)

    """
    if getattr(args, "dry_run", False):
        escalation_config["dry_run"] = True
        logger.debug("Setting dry_run=True from CLI arguments")

    if getattr(args, "force", False):
        escalation_config["force"] = True
        logger.debug("Setting force=True from CLI arguments")

    if getattr(args, "continue_on_comment_error", False):
        escalation_config["stop_on_comment_error"] = False
        logger.debug("Setting stop_on_comment_error=False from CLI arguments")

    if getattr(args, "organization", None):
        ado_config["organization"] = args.organization
        logger.debug("Setting organization=%s from CLI arguments", args.organization)
