"""Configuration management for cmdwire.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a Config object. Property getters provide safe access with
defaults for the dispatcher, help rendering, reply sanitizing and
logging.

Example settings.yaml::

    prefixes: ["!", "bot "]
    quiet_unknown_command: false
    reply_errors: true
    admin_ids: [123456789]
    logging:
      level: INFO
      subsystem_levels: {dispatch: DEBUG}

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = structlog.get_logger("cmdwire.setup")


class Config:
    """Central configuration manager for cmdwire.

    Loads settings.yaml and .env from the config directory. Missing
    files fall back to defaults. No mutation after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if not filepath.exists():
            return {}
        try:
            with open(filepath, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {filename}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"{filename} must contain a mapping", type=type(data).__name__
            )
        return data

    def validate(self):
        """Validate settings at startup.

        Logs errors but does not raise -- dispatch falls back to the
        defaults of each property.
        """
        prefixes = self.settings.get("prefixes")
        if prefixes is not None and not isinstance(prefixes, (list, str)):
            logger.error("config_invalid_value", key="prefixes", type=type(prefixes).__name__)

        for admin in self.settings.get("admin_ids", []) or []:
            if not isinstance(admin, int):
                logger.error("config_invalid_value", key="admin_ids", value=admin)

        log_config = self.settings.get("logging", {})
        if not isinstance(log_config, dict):
            logger.error("config_invalid_value", key="logging", type=type(log_config).__name__)

    @property
    def prefixes(self) -> List[str]:
        """Command prefixes. Env var CMDWIRE_PREFIX takes precedence."""
        env = os.environ.get("CMDWIRE_PREFIX")
        if env:
            return [env]
        prefixes = self.settings.get("prefixes", ["!"])
        if isinstance(prefixes, str):
            return [prefixes]
        if not isinstance(prefixes, list):
            return ["!"]
        return [str(p) for p in prefixes]

    @property
    def quiet_unknown_command(self) -> bool:
        """Silently ignore unknown commands instead of raising (default False)."""
        return bool(self.settings.get("quiet_unknown_command", False))

    @property
    def reply_errors(self) -> bool:
        """Send dispatch errors back into the channel (default True)."""
        return bool(self.settings.get("reply_errors", True))

    @property
    def help_underline(self) -> bool:
        """Underline argument names in help text, manpage style (default True)."""
        return bool(self.settings.get("help_underline", True))

    @property
    def sanitize_mentions(self) -> bool:
        """Apply the default reply sanitizer (default True)."""
        return bool(self.settings.get("sanitize_mentions", True))

    @property
    def ignore_bots(self) -> bool:
        """Ignore messages authored by bot accounts (default True)."""
        return bool(self.settings.get("ignore_bots", True))

    @property
    def admin_ids(self) -> List[int]:
        """User IDs allowed to run admin-only commands."""
        ids = self.settings.get("admin_ids", []) or []
        if not isinstance(ids, list):
            logger.error("admin_ids_invalid_type", type=type(ids).__name__)
            return []
        return [i for i in ids if isinstance(i, int)]

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"dispatch": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
