"""Shared fixtures: an in-memory device and a recording callback endpoint."""
import asyncio

import httpx
import pytest

from vrouter_agent.devices.base import DeviceConfig, NetworkDevice
from vrouter_agent.dispatcher import CallbackClient

NAT_CONFIG = """\
interfaces {
    ethernet eth0 {
        address 172.20.0.10/16
        hw-id 52:54:00:AA:BB:01
    }
    ethernet eth1 {
        address 10.0.0.1/24
        hw-id 52:54:00:aa:bb:02
    }
}
nat {
    source {
        rule 1 {
            outbound-interface eth0
            source address 10.0.0.0/24
            translation address masquerade
        }
    }
}
system {
    host-name vrouter
}
"""


class FakeDevice(NetworkDevice):
    """Device double that serves fixed config text and records scripts."""

    def __init__(self, config_text: str = NAT_CONFIG, returncode: int = 0, output: str = ""):
        super().__init__("test-device", DeviceConfig(script_user=None))
        self.config_text = config_text
        self.returncode = returncode
        self.output = output
        self.scripts: list[str] = []
        self.script_paths: list[str] = []
        self.reads = 0

    async def execute(self, argv: list[str]) -> tuple[int, str]:
        return 0, ""

    async def show_configuration(self) -> str:
        self.reads += 1
        await asyncio.sleep(0)
        return self.config_text

    async def run_script(self, script_path: str) -> tuple[int, str]:
        self.script_paths.append(script_path)
        with open(script_path) as f:
            self.scripts.append(f.read())
        await asyncio.sleep(0)
        return self.returncode, self.output


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def callbacks():
    """Requests received by the fake callback endpoint."""
    return []


@pytest.fixture
def callback_client(callbacks):
    def handler(request: httpx.Request) -> httpx.Response:
        callbacks.append(request)
        return httpx.Response(200)

    return CallbackClient(
        max_attempts=3,
        interval=0,
        transport=httpx.MockTransport(handler),
    )
