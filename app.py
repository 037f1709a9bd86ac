from contextlib import asynccontextmanager
import json
import os

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.websockets import WebSocketState

from constants import LOG_FILE, LOG_LEVEL, STATIC_DIR
from hub import Connection, SignalingHub
from logging_config import get_logger, setup_logging
from routers.info import info_router

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


class WebSocketConnection(Connection):
    """Adapts a Starlette WebSocket to the hub's connection interface."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, message: dict):
        await self.websocket.send_text(json.dumps(message))

    async def close(self):
        if self.is_open:
            await self.websocket.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Shutting down")
    await app.state.hub.close_all()


app = FastAPI(lifespan=lifespan)
app.state.hub = SignalingHub()

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(info_router)

logger.info("FastAPI application initialized")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Signaling socket. One per client tab/device; all traffic is JSON text frames."""
    hub: SignalingHub = websocket.app.state.hub
    await websocket.accept()
    connection = WebSocketConnection(websocket)
    hub.connect(connection)
    logger.debug(f"WebSocket connection accepted from {websocket.client}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug(f"WebSocket disconnected normally ({message.get('code')})")
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")

            # A bad frame must not take the connection down
            try:
                await hub.handle_message(connection, raw)
            except Exception as e:
                logger.error(f"Error handling message: {e}", exc_info=True)
    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
    finally:
        await hub.disconnect(connection)
        try:
            await connection.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")


# Mounted last so it does not shadow the API and websocket routes
if STATIC_DIR and os.path.isdir(STATIC_DIR):
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
    logger.info(f"Serving static files from {STATIC_DIR}")
