"""Delivery of asynchronous command results to the caller's callback URL."""
import logging
from typing import Any, Optional

import httpx

from ..utils.connection import with_retry
from .context import TASK_UUID_HEADER

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 15
DEFAULT_INTERVAL = 1.0
DEFAULT_TIMEOUT = 10.0


class CallbackClient:
    """POST results to callback URLs, retrying at a fixed interval."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            max_attempts: Attempts per delivery before giving up
            interval: Seconds between attempts
            timeout: Per-attempt HTTP timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.max_attempts = max_attempts
        self.interval = interval
        self.timeout = timeout
        self._transport = transport

    async def deliver(self, url: str, task_uuid: str, body: dict[str, Any]) -> bool:
        """
        Deliver a result.

        Failures are logged and reported through the return value only; the
        original request has already been answered.

        Returns:
            True if the callback endpoint accepted the result
        """
        post = with_retry(
            max_attempts=self.max_attempts,
            interval=self.interval,
            exceptions=(httpx.HTTPError,),
        )(self._post)

        try:
            await post(url, task_uuid, body)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                f"giving up delivering the result of task[{task_uuid}] to {url} "
                f"after {self.max_attempts} attempts: {e}"
            )
            return False

        logger.debug(f"delivered the result of task[{task_uuid}] to {url}")
        return True

    async def _post(self, url: str, task_uuid: str, body: dict[str, Any]) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                url,
                json=body,
                headers={TASK_UUID_HEADER: task_uuid},
            )
            response.raise_for_status()
