"""Executor for applying a change log to the device.

The whole change log runs as one configuration session: one rendered
script, one commit. There is no partial apply; a failed commit fails the
request and the caller re-reads the device before trying again.
"""
import logging
import os
import shutil
import tempfile
from typing import Iterable, Optional

from ..devices.base import NetworkDevice
from ..errors import AgentError
from ..utils.audit_log import log_change
from ..utils.logging_config import timed
from .generator import ScriptGenerator
from .schema import ChangeCommand, ScriptResult

logger = logging.getLogger(__name__)

SCRIPT_PREFIX = "vrouter-agent-"


class ScriptExecutionError(AgentError):
    """The session script exited non-zero (commit failed or was aborted)."""

    def __init__(self, result: ScriptResult):
        super().__init__(
            f"configuration script failed with exit code {result.returncode}: "
            f"{result.output.strip()}"
        )
        self.result = result


class ScriptRunner:
    """Render and run session scripts on a device."""

    def __init__(
        self,
        device: NetworkDevice,
        generator: Optional[ScriptGenerator] = None,
    ):
        """
        Initialize runner.

        Args:
            device: Device that executes the script
            generator: Script generator (defaults to one built from the
                device's sbindir / cli-shell-api paths)
        """
        self.device = device
        self.generator = generator or ScriptGenerator(
            sbindir=device.config.vyatta_sbindir,
            cli_shell_api=device.config.cli_shell_api,
        )

    @timed("apply")
    async def apply(self, changes: Iterable[ChangeCommand]) -> ScriptResult:
        """
        Apply a change log as a single device session.

        Args:
            changes: Change log entries, executed in order

        Returns:
            ScriptResult of the successful run (``skipped`` if there was
            nothing to apply)

        Raises:
            ScriptExecutionError: If the script exits non-zero
        """
        changes = list(changes)
        commands = [c.render() for c in changes]
        if not commands:
            logger.debug("Empty change log, nothing to apply")
            return ScriptResult(skipped=True)

        script = self.generator.render(changes)
        logger.info(f"Applying {len(commands)} configuration commands")
        logger.debug(script)

        try:
            returncode, output = await self._run(script)
        except Exception as e:
            log_change("apply", commands, success=False, error=str(e))
            raise

        result = ScriptResult(returncode=returncode, output=output, commands=commands)
        if not result.success:
            error = ScriptExecutionError(result)
            log_change("apply", commands, success=False, output=output, error=str(error))
            logger.error(str(error))
            raise error

        log_change("apply", commands, success=True, output=output)
        return result

    async def _run(self, script: str) -> tuple[int, str]:
        """Write the script to a temp file, run it, always remove it."""
        fd, path = tempfile.mkstemp(prefix=SCRIPT_PREFIX, suffix=".sh")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(script)

            os.chmod(path, 0o755)
            user = self.device.config.script_user
            if user:
                shutil.chown(path, user=user, group=self.device.config.script_group)

            return await self.device.run_script(path)
        finally:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
