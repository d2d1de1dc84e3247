"""HTTP listener for the vrouter agent.

Every POST is handed to the CommandDispatcher by path; the dispatcher owns
routing, so the app exposes a single catch-all route:

- POST <registered sync path>: 200 with the JSON reply (or an empty body)
- POST <registered async path>: 200 with an empty body, result delivered
  to the ``callbackurl`` header later
- POST <unknown path>: 404
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response

from .config.settings import AgentSettings
from .dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)


def create_app(dispatcher: CommandDispatcher) -> FastAPI:
    """Build the FastAPI app serving a dispatcher."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Serving {len(dispatcher.paths)} command paths: {', '.join(dispatcher.paths)}")
        yield
        logger.info("Shutting down, waiting for in-flight async commands")
        await dispatcher.drain()

    app = FastAPI(title="vrouter-agent", lifespan=lifespan)
    app.state.dispatcher = dispatcher

    @app.post("/{path:path}")
    async def dispatch(path: str, request: Request) -> Response:
        body = await request.body()
        reply = await dispatcher.dispatch(request.url.path, request.headers, body)
        return Response(
            content=reply.content,
            status_code=reply.status_code,
            media_type=reply.media_type,
        )

    return app


def serve(app: FastAPI, settings: AgentSettings) -> None:
    """Run the app with uvicorn until interrupted."""
    logger.info(f"Listening on {settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        timeout_keep_alive=settings.keepalive_timeout,
        log_config=None,
    )
