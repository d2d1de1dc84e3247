"""In-memory configuration tree with change tracking.

The tree mirrors the device's hierarchical configuration. A statement such
as ``nat source rule 1 source address 10.0.0.0/24`` is stored as a chain of
nodes whose last two levels form a *key node* (``address``) holding a single
leaf (``10.0.0.0/24``) as its value.

Every mutation that changes observable state is recorded in the tree's
change log, which the executor later replays against the device inside one
configuration session.
"""
import logging
import weakref
from typing import Iterator, Optional, Sequence, Union

from ..errors import AgentError
from .schema import ChangeAction, ChangeCommand, DeleteResult, SetResult

logger = logging.getLogger(__name__)

Path = Union[str, Sequence[str]]


class NotAKeyNodeError(AgentError):
    """A key-node operation was attempted on a node that is not one."""
    pass


class InvalidPathError(AgentError):
    """A path is too short for the requested operation."""
    pass


def split_path(path: Path) -> tuple[str, ...]:
    """Normalize a path given as a space-joined string or a sequence of names."""
    if isinstance(path, str):
        return tuple(path.split())
    return tuple(path)


class ConfigNode:
    """A named node in the configuration tree.

    Children are kept both as an ordered list and as a name index; the two
    are always updated together. The parent link is a weak reference so a
    subtree never keeps its ancestors alive.
    """

    def __init__(self, name: str = "", parent: Optional["ConfigNode"] = None):
        self.name = name
        self._children: list[ConfigNode] = []
        self._index: dict[str, ConfigNode] = {}
        self._parent = weakref.ref(parent) if parent is not None else None

    @property
    def parent(self) -> Optional["ConfigNode"]:
        return self._parent() if self._parent is not None else None

    @property
    def children(self) -> tuple["ConfigNode", ...]:
        return tuple(self._children)

    def keys(self) -> list[str]:
        """Child names in insertion order."""
        return [c.name for c in self._children]

    def is_leaf(self) -> bool:
        return not self._children

    def is_key_node(self) -> bool:
        return len(self._children) == 1 and self._children[0].is_leaf()

    def value(self) -> str:
        """Return the value held by a key node.

        Raises:
            NotAKeyNodeError: If the node does not have exactly one leaf child
        """
        if not self.is_key_node():
            raise NotAKeyNodeError(f"the node[{self}] is not a key node")
        return self._children[0].name

    def child(self, name: str) -> Optional["ConfigNode"]:
        return self._index.get(name)

    def get(self, path: Path) -> Optional["ConfigNode"]:
        """Resolve a path relative to this node; None if any segment is missing."""
        names = split_path(path)
        if not names:
            return None

        current: Optional[ConfigNode] = self
        for name in names:
            current = current._index.get(name)
            if current is None:
                return None
        return current

    def add_child(self, name: str) -> "ConfigNode":
        """Attach a child, or return the existing one with the same name."""
        existing = self._index.get(name)
        if existing is not None:
            return existing

        node = ConfigNode(name, parent=self)
        self._children.append(node)
        self._index[name] = node
        return node

    def remove_child(self, name: str) -> Optional["ConfigNode"]:
        """Detach a child by name and return it (None if absent)."""
        node = self._index.pop(name, None)
        if node is None:
            return None
        self._children.remove(node)
        node._parent = None
        return node

    @property
    def path(self) -> tuple[str, ...]:
        """Names from the (unnamed) root down to this node."""
        names = []
        node: Optional[ConfigNode] = self
        while node is not None and node.parent is not None:
            names.append(node.name)
            node = node.parent
        return tuple(reversed(names))

    def __str__(self) -> str:
        return " ".join(self.path)

    def __repr__(self) -> str:
        return f"ConfigNode({str(self)!r}, children={len(self._children)})"


class ConfigTree:
    """Configuration tree plus the change log of primitive commands.

    Usage:
        tree = parse_config(text)
        if tree.set("nat source rule 1 translation address masquerade") is SetResult.CHANGED:
            ...
        tree.delete("nat source rule 2")
        await runner.apply(tree.changes)
    """

    def __init__(self) -> None:
        self.root = ConfigNode()
        self._changes: list[ChangeCommand] = []

    # Queries

    def has(self, path: Path) -> bool:
        return self.get(path) is not None

    def get(self, path: Path) -> Optional[ConfigNode]:
        return self.root.get(path)

    def get_value(self, path: Path) -> Optional[str]:
        """Shortcut for get(path).value(); None if the path is absent."""
        node = self.get(path)
        if node is None:
            return None
        return node.value()

    # Mutations

    def set(self, path: Path) -> SetResult:
        """
        Set a key/value statement, e.g. ``interfaces ethernet eth0 mtu 1500``.

        The last name is the value; everything before it is the key path.

        Returns:
            SetResult.UNCHANGED if the key already holds the value,
            SetResult.CHANGED otherwise

        Raises:
            InvalidPathError: If the path has fewer than two names
            NotAKeyNodeError: If the key path resolves to a node that has
                children but is not a key node
        """
        names = split_path(path)
        if len(names) < 2:
            raise InvalidPathError(
                f"cannot set [{' '.join(names)}]: a key and a value are required"
            )

        key, value = names[:-1], names[-1]
        key_node = self.get(key)

        # a bare leaf is a key whose value was deleted; treat it as unset
        if key_node is None or key_node.is_leaf():
            current = self.root
            for name in names:
                current = current.add_child(name)
            self._record(ChangeAction.SET, names)
            return SetResult.CHANGED

        if not key_node.is_key_node():
            raise NotAKeyNodeError(
                f"the node[{key_node}] is not a key node, cannot call set on it"
            )

        current_value = key_node.value()
        if current_value == value:
            return SetResult.UNCHANGED

        key_node.remove_child(current_value)
        key_node.add_child(value)
        self._record(ChangeAction.DELETE, key)
        self._record(ChangeAction.SET, names)
        return SetResult.CHANGED

    def delete(self, path: Path) -> DeleteResult:
        """Remove the subtree at path, if present."""
        names = split_path(path)
        node = self.get(names)
        if node is None:
            return DeleteResult.ABSENT

        node.parent.remove_child(node.name)
        self._record(ChangeAction.DELETE, names)
        return DeleteResult.DELETED

    def _record(self, action: ChangeAction, names: tuple[str, ...]) -> None:
        command = ChangeCommand(action, tuple(names))
        logger.debug(f"Recorded change: {command}")
        self._changes.append(command)

    # Change log

    @property
    def changes(self) -> tuple[ChangeCommand, ...]:
        return tuple(self._changes)

    @property
    def has_changes(self) -> bool:
        return bool(self._changes)

    def commands(self) -> list[str]:
        """Change log rendered as session script lines."""
        return [c.render() for c in self._changes]

    def commands_as_string(self) -> str:
        return "\n".join(self.commands())

    # Diagnostics

    def iter_paths(self) -> Iterator[tuple[str, ...]]:
        """Depth-first root-to-leaf paths in insertion order."""
        stack: list[tuple[ConfigNode, tuple[str, ...]]] = [
            (child, (child.name,)) for child in reversed(self.root.children)
        ]
        while stack:
            node, prefix = stack.pop()
            if node.is_leaf():
                yield prefix
                continue
            for child in reversed(node.children):
                stack.append((child, prefix + (child.name,)))

    def serialize(self) -> str:
        """Flatten the tree into one path per line.

        The output is for diagnostics only: it does not use the brace grammar
        and cannot be fed back to the parser.
        """
        return "\n".join(" ".join(p) for p in self.iter_paths())

    def __str__(self) -> str:
        return self.serialize()
