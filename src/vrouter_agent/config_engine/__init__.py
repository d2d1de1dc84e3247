"""Config Engine - parse, edit and apply the device configuration.

The Config Engine turns the device's configuration text into an in-memory
tree, records every effective edit as a primitive SET/DELETE command, and
replays those commands on the device inside one configuration session.

Usage:
    from vrouter_agent.config_engine import ConfigEngine

    engine = ConfigEngine(device)

    def add_masquerade(tree):
        tree.set("nat source rule 100 outbound-interface eth0")
        tree.set("nat source rule 100 source address 10.0.0.0/24")
        tree.set("nat source rule 100 translation address masquerade")

    await engine.edit(add_masquerade)
"""

from .engine import ConfigEngine
from .schema import (
    ChangeAction,
    ChangeCommand,
    SetResult,
    DeleteResult,
    ScriptResult,
)
from .tree import ConfigNode, ConfigTree, NotAKeyNodeError, InvalidPathError
from .parser import ConfigParser, ParseError, parse_config
from .generator import ScriptGenerator
from .executor import ScriptRunner, ScriptExecutionError

__all__ = [
    # Main engine
    "ConfigEngine",
    # Schema classes
    "ChangeAction",
    "ChangeCommand",
    "SetResult",
    "DeleteResult",
    "ScriptResult",
    # Tree
    "ConfigNode",
    "ConfigTree",
    "NotAKeyNodeError",
    "InvalidPathError",
    # Parser
    "ConfigParser",
    "ParseError",
    "parse_config",
    # Components (for advanced use)
    "ScriptGenerator",
    "ScriptRunner",
    "ScriptExecutionError",
]
