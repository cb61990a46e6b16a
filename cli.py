from __future__ import annotations

import argparse
import json
import sys

from opboot.health import check_probe
from opboot.settings import settings

PROBE_PATHS = {"live": "/", "ready": "/ready"}


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Operator probe CLI")
    p.add_argument("--api", default=f"http://localhost:{settings.liveness_port}", help="Probe server base URL")
    p.add_argument("--timeout", type=float, default=2.0, help="Request timeout in seconds")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("live", help="Check the liveness probe")
    sub.add_parser("ready", help="Check the readiness probe")
    sub.add_parser("status", help="Show both probes")

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd in PROBE_PATHS:
        ok, data, latency = check_probe(f"{base}{PROBE_PATHS[args.cmd]}", timeout_s=args.timeout)
        _print({"ok": ok, "latency_ms": latency, **data})
        return 0 if ok else 1

    if args.cmd == "status":
        out = {}
        all_ok = True
        for name, path in PROBE_PATHS.items():
            ok, data, latency = check_probe(f"{base}{path}", timeout_s=args.timeout)
            out[name] = {"ok": ok, "latency_ms": latency, **data}
            all_ok = all_ok and ok
        _print(out)
        return 0 if all_ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
