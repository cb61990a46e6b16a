from __future__ import annotations

import os
import re
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(raw: str) -> float:
    """Parse a duration like ``30s``, ``1m30s`` or ``250ms`` into seconds.

    A bare number is taken as seconds.
    """
    text = raw.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for m in _DURATION_PART_RE.finditer(text):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration {raw!r}")
    return total


SA_NAMESPACE_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"


@dataclass(frozen=True)
class Settings:
    # Scope
    # OPERATOR_NAMESPACE is the explicit override; WATCH_NAMESPACE comes from the downward API.
    namespace_override_env: str = "OPERATOR_NAMESPACE"
    watch_namespace_env: str = "WATCH_NAMESPACE"
    sa_namespace_path: str = os.getenv("OPBOOT_SA_NAMESPACE_PATH", SA_NAMESPACE_PATH)

    # Identity
    pod_name: str | None = os.getenv("POD_NAME")
    operator_name: str = os.getenv("OPERATOR_NAME", "vault-operator")

    # Probes
    liveness_host: str = os.getenv("OPBOOT_LIVENESS_HOST", "0.0.0.0")
    liveness_port: int = _env_int("OPBOOT_LIVENESS_PORT", 8080)

    # Metrics
    metrics_host: str = os.getenv("OPBOOT_METRICS_HOST", "0.0.0.0")
    metrics_port: int = _env_int("OPBOOT_METRICS_PORT", 8383)

    # Leader election
    leader_lock_name: str = os.getenv("OPBOOT_LEADER_LOCK", "vault-operator-lock")
    leader_initial_backoff_s: float = 1.0
    leader_max_backoff_s: int = _env_int("OPBOOT_LEADER_MAX_BACKOFF_S", 16)

    # Manager
    default_sync_period: str = os.getenv("OPBOOT_SYNC_PERIOD", "30s")
    verbose: bool = _env_bool("OPBOOT_VERBOSE", False)

    @property
    def metrics_bind_address(self) -> str:
        return f"{self.metrics_host}:{self.metrics_port}"


settings = Settings()
