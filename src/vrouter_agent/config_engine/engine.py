"""Main Config Engine - the read/parse/mutate/apply pipeline.

Provides a single entry point for:
1. Reading the live configuration from the device
2. Parsing it into a fresh ConfigTree
3. Letting the caller mutate the tree
4. Applying the accumulated change log in one session

The engine does not serialize callers; mutating commands hold the
dispatcher's device lock around the whole pipeline.
"""
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from ..devices.base import NetworkDevice
from .executor import ScriptRunner
from .parser import ConfigParser
from .schema import ScriptResult
from .tree import ConfigTree

logger = logging.getLogger(__name__)

TreeMutator = Callable[[ConfigTree], Union[None, Awaitable[None]]]


class ConfigEngine:
    """
    Source, edit and apply device configuration.

    Usage:
        engine = ConfigEngine(device)
        tree = await engine.edit(lambda t: t.set("system host-name vr1"))
    """

    def __init__(
        self,
        device: NetworkDevice,
        runner: Optional[ScriptRunner] = None,
    ):
        """
        Initialize the Config Engine.

        Args:
            device: Device to read from and apply to
            runner: Script runner (defaults to one bound to device)
        """
        self.device = device
        self.parser = ConfigParser()
        self.runner = runner or ScriptRunner(device)

    async def load_tree(self) -> ConfigTree:
        """Build a fresh tree from the device's current configuration."""
        text = await self.device.show_configuration()
        return self.parser.parse(text)

    async def apply(self, tree: ConfigTree) -> ScriptResult:
        """Apply the tree's change log to the device."""
        if not tree.has_changes:
            logger.info("No changes needed - configuration already matches")
        return await self.runner.apply(tree.changes)

    async def edit(self, mutate: TreeMutator) -> ConfigTree:
        """
        Run the full pipeline with a caller-supplied mutation.

        Args:
            mutate: Function (sync or async) that edits the tree in place

        Returns:
            The tree after its changes were applied

        Raises:
            ParseError: If the device configuration cannot be parsed
            ScriptExecutionError: If the commit fails
        """
        tree = await self.load_tree()

        outcome = mutate(tree)
        if inspect.isawaitable(outcome):
            await outcome

        logger.info(f"Found {len(tree.changes)} changes to apply")
        await self.apply(tree)
        return tree
