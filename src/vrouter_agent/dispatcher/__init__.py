"""Command dispatch over HTTP: registry, device lock, failure boundary and
callback delivery for asynchronous commands."""
from .callback import CallbackClient
from .context import (
    CALLBACK_URL_HEADER,
    TASK_UUID_HEADER,
    CommandContext,
    CommandDecodeError,
    ReplyHeader,
)
from .dispatcher import (
    CommandDispatcher,
    CommandRegistration,
    DispatchResponse,
    DuplicateCommandError,
)

__all__ = [
    "CallbackClient",
    "CALLBACK_URL_HEADER",
    "TASK_UUID_HEADER",
    "CommandContext",
    "CommandDecodeError",
    "ReplyHeader",
    "CommandDispatcher",
    "CommandRegistration",
    "DispatchResponse",
    "DuplicateCommandError",
]
