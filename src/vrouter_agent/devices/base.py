"""Base device abstraction for the managed appliance."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..errors import AgentError

logger = logging.getLogger(__name__)


class DeviceCommandError(AgentError):
    """A device CLI command exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, output: str = ""):
        super().__init__(
            f"command [{command}] failed with exit code {returncode}: {output.strip()}"
        )
        self.command = command
        self.returncode = returncode
        self.output = output


@dataclass
class DeviceConfig:
    """Local paths and principals used to drive the device CLI."""
    cli_shell_api: str = "/bin/cli-shell-api"
    vyatta_sbindir: str = "/opt/vyatta/sbin"
    script_user: Optional[str] = "vyos"
    script_group: str = "users"
    timeout: Optional[float] = None


class NetworkDevice(ABC):
    """Abstract base class for the device handler."""

    def __init__(self, device_id: str, config: DeviceConfig):
        self.device_id = device_id
        self.config = config

    @abstractmethod
    async def execute(self, argv: list[str]) -> tuple[int, str]:
        """Run a command on the device.

        Returns:
            Tuple of (returncode, combined stdout/stderr)
        """
        pass

    @abstractmethod
    async def show_configuration(self) -> str:
        """Get the current configuration text."""
        pass

    async def run_script(self, script_path: str) -> tuple[int, str]:
        """Run an executable script file, as the configured principal if any."""
        user = self.config.script_user
        if user:
            argv = ["su", "-", user, "-c", script_path]
        else:
            argv = ["bash", script_path]
        return await self.execute(argv)
