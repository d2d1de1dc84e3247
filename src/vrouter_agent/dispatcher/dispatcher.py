"""Command dispatcher: path registry, interceptors, device lock and the
per-request failure boundary.

One dispatcher is built at startup, commands are registered on it, and the
HTTP listener hands every request to ``dispatch()``.

Synchronous commands reply inline. Asynchronous commands are acknowledged
with an empty 200 and their result is POSTed to the ``callbackurl`` header
afterwards, tagged with the ``taskuuid`` header.
"""
import asyncio
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from ..errors import ConfigurationError
from ..utils.logging_config import timed_section
from .callback import CallbackClient
from .context import (
    CALLBACK_URL_HEADER,
    TASK_UUID_HEADER,
    CommandContext,
    encode_result,
    failure_reply,
)

logger = logging.getLogger(__name__)

CommandHandler = Callable[[CommandContext], Any]
AsyncCommandHandler = Callable[[CommandContext], Awaitable[Any]]
Interceptor = Callable[[AsyncCommandHandler], AsyncCommandHandler]

JSON_MEDIA_TYPE = "application/json"
TEXT_MEDIA_TYPE = "text/plain"


class DuplicateCommandError(ConfigurationError):
    """A second handler was registered for an already registered path."""
    pass


@dataclass
class CommandRegistration:
    """A registered command path."""
    path: str
    handler: AsyncCommandHandler
    is_async: bool
    mutating: bool


@dataclass
class DispatchResponse:
    """Transport-neutral response for the HTTP layer to send."""
    status_code: int
    content: bytes = b""
    media_type: Optional[str] = None

    @classmethod
    def json(cls, data: Any) -> "DispatchResponse":
        return cls(200, json.dumps(data).encode("utf-8"), JSON_MEDIA_TYPE)

    @classmethod
    def text(cls, status_code: int, message: str) -> "DispatchResponse":
        return cls(status_code, message.encode("utf-8"), TEXT_MEDIA_TYPE)


async def call_handler(handler: CommandHandler, ctx: CommandContext) -> Any:
    """Await coroutine handlers; run plain functions in a worker thread."""
    if asyncio.iscoroutinefunction(handler):
        return await handler(ctx)

    result = await asyncio.to_thread(handler, ctx)
    if inspect.isawaitable(result):
        result = await result
    return result


class CommandDispatcher:
    """
    Registry and executor of agent commands.

    Usage:
        dispatcher = CommandDispatcher(CallbackClient())
        dispatcher.register_sync("/echo", echo)
        dispatcher.register_async("/setsnat", set_snat, mutating=True)
        app = create_app(dispatcher)
    """

    def __init__(self, callback_client: Optional[CallbackClient] = None):
        self.callback_client = callback_client or CallbackClient()
        self._commands: dict[str, CommandRegistration] = {}
        self._interceptors: list[Interceptor] = []
        self._device_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    # Registration

    def register_sync(
        self, path: str, handler: CommandHandler, mutating: bool = False
    ) -> None:
        """Register a command whose result is returned in the HTTP response."""
        self._register(path, handler, is_async=False, mutating=mutating)

    def register_async(
        self, path: str, handler: CommandHandler, mutating: bool = False
    ) -> None:
        """Register a command whose result is delivered to the callback URL."""
        self._register(path, handler, is_async=True, mutating=mutating)

    def _register(
        self, path: str, handler: CommandHandler, is_async: bool, mutating: bool
    ) -> None:
        if not path:
            raise ConfigurationError("path cannot be empty")
        if not callable(handler):
            raise ConfigurationError(f"handler for the path[{path}] is not callable")
        if path in self._commands:
            raise DuplicateCommandError(f"duplicate handler for the path[{path}]")

        if mutating:
            wrapped = self.locked(handler)
        else:
            async def wrapped(ctx: CommandContext) -> Any:
                return await call_handler(handler, ctx)

        self._commands[path] = CommandRegistration(
            path=path,
            handler=wrapped,
            is_async=is_async,
            mutating=mutating,
        )
        logger.debug(
            f"a command path[{path}] is registered "
            f"({'async' if is_async else 'sync'}{', mutating' if mutating else ''})"
        )

    def add_interceptor(self, interceptor: Interceptor) -> None:
        """
        Add a handler wrapper applied around every command.

        Interceptors are applied in registration order, each wrapping the
        previous one, so the last registered runs outermost.
        """
        if not callable(interceptor):
            raise ConfigurationError("interceptor is not callable")
        self._interceptors.append(interceptor)

    def locked(self, handler: CommandHandler) -> AsyncCommandHandler:
        """Wrap a handler in the process-wide device configuration lock."""
        async def wrapper(ctx: CommandContext) -> Any:
            async with self._device_lock:
                return await call_handler(handler, ctx)
        return wrapper

    @property
    def paths(self) -> list[str]:
        return list(self._commands)

    def get(self, path: str) -> Optional[CommandRegistration]:
        return self._commands.get(path)

    # Dispatch

    async def dispatch(
        self, path: str, headers: Mapping[str, str], body: bytes = b""
    ) -> DispatchResponse:
        """
        Route one request.

        Returns:
            404 for unknown paths, 400 for async commands missing a
            correlation header, otherwise 200 (inline reply for sync
            commands, empty for async ones)
        """
        registration = self._commands.get(path)
        if registration is None:
            logger.warning(f"no command registered for the path[{path}], drop it")
            return DispatchResponse.text(404, f"no command registered for the path[{path}]")

        ctx = CommandContext(path=path, headers=headers, body=body)

        if not registration.is_async:
            reply = await self._invoke(registration, ctx)
            if reply is None:
                return DispatchResponse(200)
            return DispatchResponse.json(reply)

        for header in (CALLBACK_URL_HEADER, TASK_UUID_HEADER):
            if not headers.get(header):
                message = (
                    f"no field '{header}' found in the HTTP header but the path[{path}] "
                    f"is registered as an async command"
                )
                logger.warning(message)
                return DispatchResponse.text(400, message)

        task = asyncio.create_task(
            self._run_async(registration, ctx, ctx.callback_url, ctx.task_uuid)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return DispatchResponse(200)

    async def _invoke(
        self, registration: CommandRegistration, ctx: CommandContext
    ) -> Any:
        """Run a handler behind the failure boundary; never raises."""
        try:
            handler = registration.handler
            for interceptor in self._interceptors:
                handler = interceptor(handler)

            async with timed_section("command", path=registration.path):
                result = await handler(ctx)
                reply = encode_result(result)
                if reply is not None:
                    json.dumps(reply)
        except Exception as e:
            logger.warning(f"command of the path[{registration.path}] fails, {e}", exc_info=True)
            return failure_reply(e)

        return reply

    async def _run_async(
        self,
        registration: CommandRegistration,
        ctx: CommandContext,
        callback_url: str,
        task_uuid: str,
    ) -> None:
        reply = await self._invoke(registration, ctx)

        if reply is None:
            reply = encode_result({})
        elif not isinstance(reply, dict):
            reply = encode_result({"result": reply})

        body = {TASK_UUID_HEADER: task_uuid, **reply}
        await self.callback_client.deliver(callback_url, task_uuid, body)

    async def drain(self) -> None:
        """Wait for in-flight async commands (and their callbacks) to finish."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
