import logging
import socket
import uuid
from urllib.parse import urlencode

import PIL.Image
import qrcode
import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket

from .growth import GrowthConfig
from .remote import RemoteRenderer
from .session import GrowthSession, SessionSnapshot
from .settings import settings

logger = logging.getLogger(__name__)


def create_app(config: GrowthConfig | None = None, heartbeat_timeout: float | None = None) -> FastAPI:
    app = FastAPI()
    sessions: dict[str, GrowthSession] = dict()
    app.state.sessions = sessions

    async def entrypoint(ws: WebSocket) -> None:
        await ws.accept()
        query_params = dict(ws.query_params)
        session_id = query_params.get("session_id") or str(uuid.uuid4())
        if session_id in sessions:
            await ws.close(code=1008, reason=f"Session {session_id} is already connected.")
            return

        async with RemoteRenderer(ws, heartbeat_timeout) as remote:
            session = GrowthSession(session_id, remote, config)
            sessions[session_id] = session
            logger.info("session %s connected", session_id)
            try:
                if query_params.get("source") == "synthetic":
                    session.start_synthetic()
                await remote.wait_closed()
            finally:
                await session.close()
                sessions.pop(session_id, None)

        if remote.exception is not None:
            logger.info("session %s ended: %s", session_id, remote.exception)
        else:
            logger.info("normal session shutdown %s", session_id)

    app.add_api_websocket_route(
        settings.ws_path,
        entrypoint)

    @app.get("/sessions")
    def list_sessions() -> list[str]:
        return list(sessions)

    @app.get("/sessions/{session_id}")
    def get_session(session_id: str) -> SessionSnapshot:
        session = sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
        return session.snapshot()

    return app


def run(config: GrowthConfig | None = None) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    uvicorn.run(
        create_app(config),
        host=settings.host,
        port=settings.port,
    )
    logger.info("normal server shutdown")


def websocket_url(protocol="ws", address: str = None, path=None, **query_params) -> str:
    if address is None:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            address = s.getsockname()[0]

    if path is None:
        path = settings.ws_path
    elif not path.startswith("/"):
        path = "/" + path

    url = f"{protocol}://{address}:{settings.port}{path}"
    if query_params:
        url += "?" + urlencode(query_params, doseq=True)
    return url


def show_qrcode_link(protocol="ws", address: str = None, path=None, show=True, **query_params) -> PIL.Image.Image:
    """Renders the WebSocket URL as a QR code for the headset to scan."""
    url = websocket_url(protocol, address, path, **query_params)
    print(url)
    img = qrcode.make(f"heartwood.websocketurl={url}")
    if show:
        img.show()
    return img


def main() -> None:
    show_qrcode_link()
    run()
