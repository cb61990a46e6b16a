from __future__ import annotations

import logging
import os
import signal
from threading import Event

_installed: Event | None = None


def setup_signal_handler(log: logging.Logger) -> Event:
    """Return an Event set on the first SIGTERM/SIGINT. A second signal exits with status 1.

    Only one handler may be installed per process.
    """
    global _installed
    if _installed is not None:
        raise RuntimeError("signal handler already installed")
    stop = Event()

    def _handle(signum, frame) -> None:
        if stop.is_set():
            log.error("Received second termination signal, exiting")
            os._exit(1)
        log.info(f"Received {signal.Signals(signum).name}, shutting down")
        stop.set()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)
    _installed = stop
    return stop
