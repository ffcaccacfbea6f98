from __future__ import annotations

import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from app.api.rooms import router as rooms_router  # noqa: E402
from app.settings import get_settings  # noqa: E402
from hub import ConnectionHub  # noqa: E402
from rooms import SessionRegistry  # noqa: E402

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(registry: Optional[SessionRegistry] = None) -> FastAPI:
    registry = registry or SessionRegistry()
    hub = ConnectionHub(registry)

    app = FastAPI(title="Durak Online")
    app.state.registry = registry
    app.state.hub = hub
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.include_router(rooms_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # ---------- WS endpoint ----------
    @app.websocket("/ws")
    async def ws_endpoint(ws: WebSocket):
        await ws.accept()
        client_id = await hub.connect(ws)
        try:
            while True:
                raw = await ws.receive_text()
                await hub.handle_message(client_id, raw)
        except WebSocketDisconnect:
            logger.debug("Client %s closed the socket", client_id)
        finally:
            await hub.disconnect(client_id)

    return app


settings.log_status()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
