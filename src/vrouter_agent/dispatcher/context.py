"""Command context and reply shapes shared by all handlers."""
import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, TypeVar

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError

from ..errors import AgentError

CALLBACK_URL_HEADER = "callbackurl"
TASK_UUID_HEADER = "taskuuid"

M = TypeVar("M", bound=BaseModel)


class CommandDecodeError(AgentError):
    """The request body does not match the command's schema."""
    pass


class ReplyHeader(BaseModel):
    """Fields present in every structured reply."""
    success: bool = True
    error: str = ""


@dataclass
class CommandContext:
    """Everything a handler gets to see about one request."""
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def callback_url(self) -> Optional[str]:
        return self.headers.get(CALLBACK_URL_HEADER) or None

    @property
    def task_uuid(self) -> Optional[str]:
        return self.headers.get(TASK_UUID_HEADER) or None

    def json(self) -> Any:
        """Decode the raw body; an empty body decodes to {}."""
        if not self.body.strip():
            return {}
        try:
            return json.loads(self.body)
        except ValueError as e:
            raise CommandDecodeError(f"invalid JSON body for the path[{self.path}]: {e}")

    def get_command(self, model: type[M]) -> M:
        """
        Decode the body into a command model.

        Raises:
            CommandDecodeError: If the body is not valid JSON or fails validation
        """
        try:
            return model.model_validate(self.json())
        except ValidationError as e:
            raise CommandDecodeError(
                f"invalid command for the path[{self.path}]: {e}"
            )


def failure_reply(error: BaseException) -> dict:
    """Structured reply for a handler that raised."""
    return ReplyHeader(success=False, error=str(error) or type(error).__name__).model_dump()


def encode_result(result: Any) -> Any:
    """
    Convert a handler result into JSON-compatible data.

    Dict-shaped results (dicts, pydantic models, dataclasses) gain the
    ``success``/``error`` fields unless the handler set them itself.
    None stays None (an empty reply).
    """
    if result is None:
        return None

    data = jsonable_encoder(result)
    if isinstance(data, dict):
        for key, value in ReplyHeader().model_dump().items():
            data.setdefault(key, value)
    return data
