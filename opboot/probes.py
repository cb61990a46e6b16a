from __future__ import annotations

import logging
import socket
from threading import Thread

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .api_models import ProbeStatus
from .errors import ProbeBindError
from .runtime import ProcessHealthState


def create_probe_app(state: ProcessHealthState, log: logging.Logger) -> FastAPI:
    app = FastAPI(title="operator probes", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_model=ProbeStatus)
    def liveness() -> ProbeStatus:
        log.debug("ping")
        return state.snapshot("alive")

    @app.get("/ready", response_model=ProbeStatus)
    def readiness():
        log.debug("ready")
        if not state.is_ready():
            return JSONResponse(status_code=503, content=state.snapshot("not-ready").model_dump())
        return state.snapshot("ready")

    return app


def bind_socket(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(128)
    except OSError as e:
        sock.close()
        raise ProbeBindError(f"failed to bind health probe on {host}:{port}: {e}") from e
    sock.setblocking(False)
    return sock


class HealthProbeServer:
    """Serves liveness/readiness for the whole process lifetime.

    The listener is bound synchronously in ``start`` so a bind failure is seen
    right away; serving then continues in a daemon thread that is never joined.
    """

    def __init__(self, state: ProcessHealthState, log: logging.Logger, host: str = "0.0.0.0", port: int = 8080):
        self.state = state
        self.log = log.getChild("probes")
        self.host = host
        self.port = port
        self.app = create_probe_app(state, self.log)
        self._thr: Thread | None = None
        self._server: uvicorn.Server | None = None

    def start(self) -> bool:
        """Start serving in the background. Returns False if the listener could not bind."""
        if self._thr and self._thr.is_alive():
            return True
        try:
            sock = bind_socket(self.host, self.port)
        except ProbeBindError as e:
            self.log.error(f"failed to start health probe: {e}")
            return False

        self.port = sock.getsockname()[1]
        config = uvicorn.Config(self.app, log_level="warning", access_log=False, lifespan="off")
        self._server = uvicorn.Server(config)
        self._thr = Thread(target=self._serve, args=(sock,), name="health-probe", daemon=True)
        self._thr.start()
        self.state.mark_alive()
        self.log.info(f"Liveness probe listening on: {self.port}")
        return True

    def _serve(self, sock: socket.socket) -> None:
        try:
            self._server.run(sockets=[sock])
        except Exception:
            self.log.exception("health probe server stopped")
