"""Built-in agent commands.

- /echo: liveness probe, empty reply
- /showconfig: flattened view of the running configuration
- /nicname: ethernet interface name for a MAC address
- /configure: apply raw set/delete statements (async, mutating)
- /auditlog: recent applies from the audit log
"""
import logging
from dataclasses import asdict
from typing import Optional, Union

from pydantic import BaseModel, Field

from .config.settings import AgentSettings
from .config_engine import ChangeAction, ConfigEngine, ConfigTree
from .devices.vyos import find_nic_name_by_mac
from .dispatcher import CommandContext, CommandDispatcher
from .utils.audit_log import get_audit_file, get_recent_changes

logger = logging.getLogger(__name__)

ECHO_PATH = "/echo"
SHOW_CONFIG_PATH = "/showconfig"
NIC_NAME_PATH = "/nicname"
CONFIGURE_PATH = "/configure"
AUDIT_LOG_PATH = "/auditlog"


class ConfigStatement(BaseModel):
    """One set/delete statement, e.g. set "system host-name vr1"."""
    action: ChangeAction
    path: Union[str, list[str]]


class ConfigureCmd(BaseModel):
    commands: list[ConfigStatement] = Field(default_factory=list)


class NicNameCmd(BaseModel):
    mac: str


class AuditLogCmd(BaseModel):
    limit: int = 20
    operation: Optional[str] = None


class BuiltinCommands:
    """Handlers for the built-in command paths."""

    def __init__(self, engine: ConfigEngine, settings: Optional[AgentSettings] = None):
        self.engine = engine
        self.settings = settings or AgentSettings()

    def register(self, dispatcher: CommandDispatcher) -> None:
        dispatcher.register_sync(ECHO_PATH, self.echo)
        dispatcher.register_sync(SHOW_CONFIG_PATH, self.show_config)
        dispatcher.register_sync(NIC_NAME_PATH, self.nic_name)
        dispatcher.register_async(CONFIGURE_PATH, self.configure, mutating=True)
        dispatcher.register_sync(AUDIT_LOG_PATH, self.audit_log)

    async def echo(self, ctx: CommandContext) -> None:
        return None

    async def show_config(self, ctx: CommandContext) -> dict:
        tree = await self.engine.load_tree()
        return {"config": tree.serialize()}

    async def nic_name(self, ctx: CommandContext) -> dict:
        cmd = ctx.get_command(NicNameCmd)
        tree = await self.engine.load_tree()
        return {"nicName": find_nic_name_by_mac(tree, cmd.mac)}

    async def configure(self, ctx: CommandContext) -> dict:
        cmd = ctx.get_command(ConfigureCmd)

        def mutate(tree: ConfigTree) -> None:
            for statement in cmd.commands:
                if statement.action is ChangeAction.SET:
                    tree.set(statement.path)
                else:
                    tree.delete(statement.path)

        tree = await self.engine.edit(mutate)
        logger.info(f"configure applied {len(tree.changes)} changes")
        return {"changes": [str(c) for c in tree.changes]}

    def audit_log(self, ctx: CommandContext) -> dict:
        cmd = ctx.get_command(AuditLogCmd)
        records = get_recent_changes(
            log_file=get_audit_file(self.settings.audit_log_dir),
            operation=cmd.operation,
            limit=cmd.limit,
        )
        return {"records": [asdict(r) for r in records]}


def register_builtin_commands(
    dispatcher: CommandDispatcher,
    engine: ConfigEngine,
    settings: Optional[AgentSettings] = None,
) -> BuiltinCommands:
    """Register every built-in command on a dispatcher."""
    commands = BuiltinCommands(engine, settings)
    commands.register(dispatcher)
    return commands
