from __future__ import annotations

import time

import httpx


def check_probe(url: str, timeout_s: float = 2.0, transport: httpx.BaseTransport | None = None) -> tuple[bool, dict, float | None]:
    """Call one of the operator's probe endpoints.

    Returns (ok, payload, latency_ms). ``ok`` is True only for HTTP 200.
    """
    start = time.time()
    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=False, trust_env=False, transport=transport) as client:
            resp = client.get(url)
        latency_ms = round((time.time() - start) * 1000.0, 2)
        try:
            data = resp.json()
        except ValueError:
            data = {"detail": resp.text}
        if not isinstance(data, dict):
            data = {"detail": data}
        data.setdefault("http_status", resp.status_code)
        return resp.status_code == 200, data, latency_ms
    except (httpx.ConnectError, httpx.TimeoutException):
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, {"detail": "No response"}, latency_ms
    except httpx.HTTPError as e:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, {"detail": f"Error: {type(e).__name__}: {e}"}, latency_ms
