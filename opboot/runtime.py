from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock

from .api_models import ProbeStatus


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ProcessHealthState:
    """In-memory process state read by the probe endpoints.

    ``alive`` flips once the probe listener is bound, ``leader`` once the leader lock
    is held and ``ready`` once scheme and controllers are registered. ``phase`` names
    the bootstrap step currently running.
    """

    def __init__(self) -> None:
        self.lock = Lock()
        self.alive = False
        self.leader = False
        self.ready = False
        self.phase = "starting"
        self.updated_at = utc_now()

    def _touch(self) -> None:
        self.updated_at = utc_now()

    def set_phase(self, phase: str) -> None:
        with self.lock:
            self.phase = phase
            self._touch()

    def mark_alive(self) -> None:
        with self.lock:
            self.alive = True
            self._touch()

    def mark_leader(self) -> None:
        with self.lock:
            self.leader = True
            self._touch()

    def mark_ready(self) -> None:
        with self.lock:
            self.ready = True
            self._touch()

    def is_ready(self) -> bool:
        with self.lock:
            return self.ready

    def snapshot(self, status: str) -> ProbeStatus:
        with self.lock:
            return ProbeStatus(
                status=status,
                phase=self.phase,
                alive=self.alive,
                leader=self.leader,
                ready=self.ready,
                updated_at=self.updated_at,
            )
