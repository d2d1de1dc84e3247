"""Schema definitions for the Config Engine.

Defines the change log entries recorded by a ConfigTree, the outcomes of
tree mutations, and the result of applying a change log to the device.
"""
import shlex
from dataclasses import dataclass, field
from enum import Enum


class ChangeAction(str, Enum):
    """Primitive command kinds understood by the device session."""
    SET = "set"
    DELETE = "delete"


class SetResult(str, Enum):
    """Outcome of ConfigTree.set()."""
    CHANGED = "changed"
    UNCHANGED = "unchanged"


class DeleteResult(str, Enum):
    """Outcome of ConfigTree.delete()."""
    DELETED = "deleted"
    ABSENT = "absent"


@dataclass(frozen=True)
class ChangeCommand:
    """A single primitive command in a tree's change log."""
    action: ChangeAction
    path: tuple[str, ...]

    def render(self) -> str:
        """Render as a script line using the session alias ($SET / $DELETE).

        Every name is shell-quoted, so one entry is always one helper call
        with one argument per name.
        """
        args = " ".join(shlex.quote(name) for name in self.path)
        return f"${self.action.value.upper()} {args}"

    def __str__(self) -> str:
        return f"{self.action.value} {' '.join(self.path)}"


@dataclass
class ScriptResult:
    """Result of running a rendered session script."""
    returncode: int = 0
    output: str = ""
    commands: list[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0
