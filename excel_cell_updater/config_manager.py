"""Configuration management with environment and .env file support."""

import os
from typing import Any, Dict, List, Optional
import logging
from dotenv import load_dotenv

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE_ROOT_PREFIX = "src/main/resources/"
DEFAULT_ALLOWED_EXTENSIONS = ["xlsx", "xlsm"]
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigManager:
    """Manages application configuration with environment support."""

    def __init__(self, config_dir: str = "config") -> None:
        """Initialize configuration manager."""
        self.config_dir = config_dir
        self._load_environment()

    def _load_environment(self) -> None:
        """Load environment variables from .env files.

        Values already present in the process environment win.
        """
        env_file = os.path.join(os.getcwd(), ".env")
        if os.path.exists(env_file):
            load_dotenv(env_file)
            logger.debug("Loaded environment from .env file")

        env = os.getenv("ENVIRONMENT", "development")
        env_specific_file = os.path.join(self.config_dir, f"{env}.env")

        if os.path.exists(env_specific_file):
            load_dotenv(env_specific_file)
            logger.debug(f"Loaded environment from {env_specific_file}")

    def _get_env_bool(self, key: str, default: bool) -> bool:
        """Get boolean value from environment variable."""
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on")

    def _get_env_optional_bool(self, key: str) -> Optional[bool]:
        """Get boolean value, or None when unset or set to "auto"."""
        value = os.getenv(key, "auto").strip().lower()
        if value in ("", "auto"):
            return None
        return value in ("true", "1", "yes", "on")

    def _get_env_str(self, key: str, default: str) -> str:
        """Get string value from environment variable."""
        return os.getenv(key, default)

    def _get_env_list(
        self, key: str, default: List[str], separator: str = ","
    ) -> List[str]:
        """Get list value from environment variable."""
        value = os.getenv(key)
        if value:
            return [item.strip() for item in value.split(separator) if item.strip()]
        return default

    def get_app_config(self) -> Dict[str, Any]:
        """Get application-wide configuration settings."""
        log_level = self._get_env_str("LOG_LEVEL", "INFO").upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid LOG_LEVEL '{log_level}'. Expected one of: {', '.join(VALID_LOG_LEVELS)}"
            )

        return {
            "log_level": log_level,
            "base_directory": self._get_env_str("EXCEL_UPDATER_BASE_DIR", ""),
            "resource_package": self._get_env_str("EXCEL_UPDATER_RESOURCE_PACKAGE", ""),
            "resource_root_prefix": self._get_env_str(
                "EXCEL_UPDATER_RESOURCE_PREFIX", DEFAULT_RESOURCE_ROOT_PREFIX
            ),
            "allowed_extensions": self._get_env_list(
                "ALLOWED_EXTENSIONS", list(DEFAULT_ALLOWED_EXTENSIONS)
            ),
            "keep_vba": self._get_env_optional_bool("KEEP_VBA"),
        }
