"""VyOS / Vyatta device handler.

The agent runs on the appliance itself, so every operation is a local
subprocess:
- ``cli-shell-api showCfg`` to read the running configuration
- rendered session scripts (see config_engine.executor) to change it
"""
import asyncio
import logging
from typing import Optional

from ..config_engine.tree import ConfigTree
from ..utils.logging_config import timed
from .base import DeviceCommandError, NetworkDevice

logger = logging.getLogger(__name__)


class VyosDevice(NetworkDevice):
    """Local VyOS appliance handler."""

    async def execute(self, argv: list[str]) -> tuple[int, str]:
        """Run a command and capture stdout and stderr together."""
        logger.debug(f"Executing: {' '.join(argv)}")

        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        if self.config.timeout:
            try:
                out, _ = await asyncio.wait_for(proc.communicate(), self.config.timeout)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
                raise
        else:
            out, _ = await proc.communicate()

        output = out.decode("utf-8", errors="replace") if out else ""
        return proc.returncode, output

    @timed("show_configuration")
    async def show_configuration(self) -> str:
        """
        Dump the running configuration.

        Raises:
            DeviceCommandError: If cli-shell-api exits non-zero
        """
        argv = [self.config.cli_shell_api, "showCfg"]
        returncode, output = await self.execute(argv)
        if returncode != 0:
            raise DeviceCommandError(" ".join(argv), returncode, output)
        return output


def find_nic_name_by_mac(tree: ConfigTree, mac: str) -> Optional[str]:
    """
    Find the ethernet interface whose ``hw-id`` matches a MAC address.

    Args:
        tree: Parsed device configuration
        mac: MAC address, any case

    Returns:
        Interface name (e.g. "eth1") or None if no interface matches
    """
    ethernet = tree.get("interfaces ethernet")
    if ethernet is None:
        return None

    mac = mac.lower()
    for nic in ethernet.children:
        hw_id = nic.child("hw-id")
        if hw_id is None or not hw_id.is_key_node():
            continue
        if hw_id.value().lower() == mac:
            return nic.name

    return None
