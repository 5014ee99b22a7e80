"""Configuration loading for the ticket escalation tool.

Handles loading and accessing configuration settings from YAML, ``.env``
files and ``ESC_`` environment variables.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from ticket_escalation.type_definitions import (
    AzureDevOpsConfig,
    Config,
    ConfigValue,
    EscalationConfig,
    SectionName,
)

config_logger = logging.getLogger("config_loader")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "NOTICE", "WARNING", "ERROR", "CRITICAL", "SUCCESS")


def is_test_environment() -> bool:
    """Detect if code is running in a test environment.

    Returns:
        bool: True if pytest is running or ESC_TEST_MODE is set, False otherwise

    """
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True

    return os.environ.get("ESC_TEST_MODE", "").lower() in ("true", "1", "yes")


class ConfigLoader:
    """Loads and provides access to configuration settings from YAML files and environment variables."""

    def __init__(self, config_file_path: Path = DEFAULT_CONFIG_PATH) -> None:
        """Initialize the configuration loader.

        Args:
            config_file_path (Path): Path to the YAML configuration file

        """
        self._load_environment_configuration()

        self.config: Config = self._load_yaml_config(config_file_path)

        if not self.config.get("azure_devops"):
            self.config["azure_devops"] = {}
        if not self.config.get("escalation"):
            self.config["escalation"] = {}

        self._apply_environment_overrides()

    def _load_environment_configuration(self) -> None:
        """Load environment variables from .env files based on execution context.

        The loading order respects precedence:
        - .env (base config for all environments)
        - .env.local (local overrides, if present)
        - .env.test (test-specific config, if in test environment)
        - .env.test.local (local test overrides, if in test environment and present)

        Later files override values from earlier files.
        """
        load_dotenv(".env")
        config_logger.debug("Loaded base environment from .env")

        if Path(".env.local").exists():
            load_dotenv(".env.local", override=True)
            config_logger.debug("Loaded local overrides from .env.local")

        if not is_test_environment():
            return

        config_logger.debug("Running in test environment")
        if Path(".env.test").exists():
            load_dotenv(".env.test", override=True)
            config_logger.debug("Loaded test environment from .env.test")

        if Path(".env.test.local").exists():
            load_dotenv(".env.test.local", override=True)
            config_logger.debug("Loaded local test overrides from .env.test.local")

    def _load_yaml_config(self, config_file_path: Path) -> Config:
        """Load configuration from YAML file.

        Args:
            config_file_path (Path): Path to the YAML configuration file

        Returns:
            dict: Configuration settings

        """
        try:
            with config_file_path.open("r") as config_file:
                config: Config = yaml.safe_load(config_file) or {}
                return config
        except FileNotFoundError:
            config_logger.exception("Config file not found: %s", config_file_path)
            raise

    def _apply_environment_overrides(self) -> None:
        """Override configuration settings with environment variables."""
        for env_var, env_value in os.environ.items():
            if not env_var.startswith("ESC_"):
                continue

            match env_var.split("_"):
                case ["ESC", "LOG", "LEVEL"]:
                    log_level = env_value.upper()
                    if log_level in LOG_LEVELS:
                        self.config["escalation"]["log_level"] = log_level
                    config_logger.debug("Applied log level: %s", log_level)

                case ["ESC", "ADO", *rest] if rest:
                    key = "_".join(rest).lower()
                    self.config["azure_devops"][key] = self._convert_value(env_value)
                    if key == "personal_access_token":
                        config_logger.debug("Applied Azure DevOps config: %s=***", key)
                    else:
                        config_logger.debug(
                            "Applied Azure DevOps config: %s=%s", key, env_value,
                        )

                case ["ESC", "ESCALATION", *rest] if rest:
                    key = "_".join(rest).lower()
                    self.config["escalation"][key] = self._convert_value(env_value)
                    config_logger.debug("Applied escalation config: %s=%s", key, env_value)

                case ["ESC", "SSL", "VERIFY"]:
                    ssl_verify = env_value.lower() not in ("false", "0", "no", "n", "f")
                    self.config["azure_devops"]["verify_ssl"] = ssl_verify
                    config_logger.debug("Applied SSL verify: %s", ssl_verify)

    def _convert_value(self, value: str) -> ConfigValue:
        """Convert string value to appropriate type."""
        if value.isdigit():
            return int(value)

        match value.lower():
            case "true" | "yes" | "y":
                return True
            case "false" | "no" | "n":
                return False
            case _:
                return value

    def get_config(self) -> Config:
        """Get the complete configuration dictionary."""
        return self.config

    def get_ado_config(self) -> AzureDevOpsConfig:
        """Get Azure DevOps connection configuration."""
        return self.config["azure_devops"]

    def get_escalation_config(self) -> EscalationConfig:
        """Get escalation workflow configuration."""
        return self.config["escalation"]

    def get_value(self, section: SectionName, key: str, default: Any = None) -> Any:
        """Get a specific configuration value.

        Args:
            section (str): Configuration section (azure_devops, escalation)
            key (str): Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default if not found

        """
        return self.config[section].get(key, default)
