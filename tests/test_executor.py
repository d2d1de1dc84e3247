"""Tests for the script runner and the read/mutate/apply pipeline."""
import os
import shutil

import pytest
from vrouter_agent.config_engine import (
    ChangeAction,
    ChangeCommand,
    ConfigEngine,
    ConfigTree,
    ParseError,
    ScriptExecutionError,
    ScriptRunner,
)
from vrouter_agent.devices import DeviceConfig, VyosDevice

from conftest import FakeDevice

RECORDING_HELPER = """#!/bin/sh
printf '%s' "$(basename "$0")" >> "$(dirname "$0")/calls.log"
for arg in "$@"; do
    printf ' [%s]' "$arg" >> "$(dirname "$0")/calls.log"
done
echo >> "$(dirname "$0")/calls.log"
"""


@pytest.fixture
def session_helpers(tmp_path):
    """A stand-in sbin directory whose helpers log their arguments."""
    for name in ("my_set", "my_delete", "my_commit", "cli-shell-api"):
        helper = tmp_path / name
        helper.write_text(RECORDING_HELPER)
        helper.chmod(0o755)
    return tmp_path


class TestScriptRunner:
    """Tests for ScriptRunner.apply."""

    @pytest.mark.asyncio
    async def test_apply_runs_one_script(self, device):
        """The whole change log goes into a single script."""
        runner = ScriptRunner(device)
        changes = [
            ChangeCommand(ChangeAction.DELETE, ("system", "host-name")),
            ChangeCommand(ChangeAction.SET, ("system", "host-name", "vr2")),
        ]

        result = await runner.apply(changes)

        assert result.success
        assert result.commands == ["$DELETE system host-name", "$SET system host-name vr2"]
        assert len(device.scripts) == 1
        assert "$DELETE system host-name\n$SET system host-name vr2\n$COMMIT" in device.scripts[0]

    @pytest.mark.asyncio
    async def test_apply_empty_change_log_is_skipped(self, device):
        """Nothing is executed when there is nothing to change."""
        runner = ScriptRunner(device)

        result = await runner.apply([])

        assert result.skipped
        assert result.success
        assert device.scripts == []

    @pytest.mark.asyncio
    async def test_apply_removes_script_and_marks_executable(self):
        """The temp script is executable while running and gone afterwards."""
        modes = []

        class ModeDevice(FakeDevice):
            async def run_script(self, script_path):
                modes.append(os.stat(script_path).st_mode & 0o777)
                return await super().run_script(script_path)

        device = ModeDevice()
        runner = ScriptRunner(device)

        await runner.apply([ChangeCommand(ChangeAction.SET, ("system", "host-name", "vr2"))])

        assert modes == [0o755]
        assert not os.path.exists(device.script_paths[0])

    @pytest.mark.asyncio
    async def test_apply_failure_raises_with_output(self):
        """A non-zero exit is fatal and carries the script output."""
        device = FakeDevice(returncode=1, output="Commit failed\nfail to commit\n")
        runner = ScriptRunner(device)

        with pytest.raises(ScriptExecutionError) as exc:
            await runner.apply([ChangeCommand(ChangeAction.SET, ("system", "host-name", "x"))])

        assert exc.value.result.returncode == 1
        assert "fail to commit" in str(exc.value)
        assert not os.path.exists(device.script_paths[0])

    @pytest.mark.asyncio
    async def test_apply_removes_script_when_device_raises(self):
        """The temp script is removed even if running it raises."""

        class BrokenDevice(FakeDevice):
            async def run_script(self, script_path):
                self.script_paths.append(script_path)
                raise OSError("su: not found")

        device = BrokenDevice()
        runner = ScriptRunner(device)

        with pytest.raises(OSError):
            await runner.apply([ChangeCommand(ChangeAction.DELETE, ("nat",))])

        assert not os.path.exists(device.script_paths[0])


class TestConfigEngine:
    """Tests for the engine pipeline."""

    @pytest.mark.asyncio
    async def test_load_tree_reads_device(self, device):
        """Each load builds a fresh tree from the device."""
        engine = ConfigEngine(device)

        first = await engine.load_tree()
        second = await engine.load_tree()

        assert first is not second
        assert device.reads == 2
        assert first.get_value("system host-name") == "vrouter"

    @pytest.mark.asyncio
    async def test_edit_applies_mutations(self, device):
        """Mutations made by the callback are applied in one script."""
        engine = ConfigEngine(device)

        def mutate(tree):
            tree.set("system host-name edge")
            tree.delete("nat source rule 1")

        tree = await engine.edit(mutate)

        assert tree.commands() == [
            "$DELETE system host-name",
            "$SET system host-name edge",
            "$DELETE nat source rule 1",
        ]
        assert len(device.scripts) == 1

    @pytest.mark.asyncio
    async def test_edit_accepts_async_mutator(self, device):
        """Coroutine mutators are awaited."""
        engine = ConfigEngine(device)

        async def mutate(tree):
            tree.set("system time-zone UTC")

        await engine.edit(mutate)

        assert "$SET system time-zone UTC" in device.scripts[0]

    @pytest.mark.asyncio
    async def test_edit_without_changes_runs_nothing(self, device):
        """A no-op edit does not open a session."""
        engine = ConfigEngine(device)

        await engine.edit(lambda tree: tree.set("system host-name vrouter"))

        assert device.scripts == []

    @pytest.mark.asyncio
    async def test_edit_parse_error_aborts(self):
        """Malformed device output fails before any mutation."""
        device = FakeDevice(config_text="system {\n    bogus\n}\n")
        engine = ConfigEngine(device)
        called = []

        with pytest.raises(ParseError):
            await engine.edit(called.append)

        assert called == []
        assert device.scripts == []


@pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")
class TestScriptRunnerShell:
    """Run rendered scripts through bash against recording helpers."""

    def _runner(self, sbindir) -> ScriptRunner:
        device = VyosDevice(
            "local",
            DeviceConfig(
                cli_shell_api=str(sbindir / "cli-shell-api"),
                vyatta_sbindir=str(sbindir),
                script_user=None,
            ),
        )
        return ScriptRunner(device)

    def _calls(self, sbindir) -> list[str]:
        return (sbindir / "calls.log").read_text().splitlines()

    @pytest.mark.asyncio
    async def test_value_with_spaces_is_one_argument(self, session_helpers):
        """A description with spaces reaches my_set as a single argument."""
        tree = ConfigTree()
        tree.set(["interfaces", "ethernet", "eth0", "description", "uplink to core"])

        await self._runner(session_helpers).apply(tree.changes)

        assert (
            "my_set [interfaces] [ethernet] [eth0] [description] [uplink to core]"
            in self._calls(session_helpers)
        )

    @pytest.mark.asyncio
    async def test_shell_metacharacters_are_not_executed(self, session_helpers, tmp_path):
        """Shell syntax inside a value never runs as a command."""
        marker = tmp_path / "marker"
        tree = ConfigTree()
        tree.set(["system", "host-name", f"vr1;touch {marker}"])
        tree.set(["system", "domain-name", f"$(touch {marker})"])

        await self._runner(session_helpers).apply(tree.changes)

        assert not marker.exists()
        calls = self._calls(session_helpers)
        assert f"my_set [system] [host-name] [vr1;touch {marker}]" in calls
        assert f"my_set [system] [domain-name] [$(touch {marker})]" in calls
        assert calls.index("my_commit") > calls.index(f"my_set [system] [domain-name] [$(touch {marker})]")
        assert calls[-1] == "cli-shell-api [teardownSession]"
