"""Agent settings.

Loaded in three layers, later layers winning:
1. Defaults below
2. A YAML file (explicit path, or the first of SEARCH_PATHS that exists)
3. Environment variables prefixed with VROUTER_AGENT_

```yaml
host: 192.168.100.10
port: 7272
callback_attempts: 15
script_user: vyos
```
"""
import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..devices.base import DeviceConfig
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "VROUTER_AGENT_"

SEARCH_PATHS = [
    Path.cwd() / "vrouter-agent.yaml",
    Path("/etc/vrouter-agent/agent.yaml"),
]


class AgentSettings(BaseSettings):
    """Runtime settings for the agent process."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="forbid",
        validate_assignment=True,
    )

    # Listener
    host: str = ""  # required to serve
    port: int = 7272
    keepalive_timeout: int = 10

    # Callback delivery
    callback_attempts: int = 15
    callback_interval: float = 1.0
    callback_timeout: float = 10.0

    # Session scripts; an empty script_user runs them directly
    script_user: str = "vyos"
    script_group: str = "users"
    cli_shell_api: str = "/bin/cli-shell-api"
    vyatta_sbindir: str = "/opt/vyatta/sbin"

    audit_log_dir: str = Field(
        default="~/.vrouter-agent",
        validation_alias=AliasChoices("audit_log_dir", ENV_PREFIX + "AUDIT_DIR"),
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # the environment overrides values passed in (i.e. read from YAML)
        return env_settings, init_settings

    @classmethod
    def load(cls, path: Optional[str] = None) -> "AgentSettings":
        """
        Build settings from defaults, a YAML file and the environment.

        Args:
            path: YAML file to read; searched for when omitted

        Raises:
            ConfigurationError: If the file is missing, unreadable or holds
                unknown settings or values of the wrong type
        """
        config_path = Path(path) if path else cls._find_config()
        if path and not config_path.exists():
            raise ConfigurationError(f"settings file not found: {config_path}")

        values = cls._read_yaml(config_path) if config_path is not None else {}
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(describe_errors(e))

    @staticmethod
    def _find_config() -> Optional[Path]:
        for candidate in SEARCH_PATHS:
            if candidate.exists():
                return candidate
        return None

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"cannot read settings file {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"settings file {path} must contain a mapping")
        logger.info(f"Loaded settings from {path}")
        # "key:" with no value keeps the default
        return {k: v for k, v in data.items() if v is not None}

    def device_config(self) -> DeviceConfig:
        """Device CLI settings derived from the agent settings."""
        return DeviceConfig(
            cli_shell_api=self.cli_shell_api,
            vyatta_sbindir=self.vyatta_sbindir,
            script_user=self.script_user or None,
            script_group=self.script_group,
        )


def describe_errors(error: ValidationError) -> str:
    """One line per rejected setting."""
    messages = []
    for item in error.errors():
        name = item["loc"][0] if item["loc"] else "?"
        if item["type"] == "extra_forbidden":
            messages.append(f"unknown setting: {name}")
        else:
            messages.append(f"invalid value for setting {name}: {item['input']!r}")
    return "; ".join(messages)
