import os
import signal
import subprocess
import sys
import time

import pytest

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")

PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))

# Runs a real orchestrator with in-process collaborators; MODE picks where it blocks.
OPERATOR_SCRIPT = r'''
import logging
import sys
import threading

from opboot.bootstrap import BootstrapOrchestrator
from opboot.manager import ManagerLifecycle
from opboot.namespace import NamespaceResolver
from opboot.scheme import Scheme
from opboot.settings import Settings

MODE = sys.argv[1]
logging.basicConfig(level=logging.INFO, stream=sys.stderr)
log = logging.getLogger("operator")
settings = Settings(liveness_host="127.0.0.1", liveness_port=0)


class Connection:
    def core_v1(self):
        return None


class Probe:
    def __init__(self, *args, **kwargs):
        pass

    def start(self):
        return True


class Elector:
    def __init__(self, *args, **kwargs):
        pass

    def acquire(self, lock_name):
        if MODE == "leader-wait":
            print("waiting", flush=True)
            threading.Event().wait()


class Manager:
    scheme = Scheme()

    def __init__(self, *args, **kwargs):
        pass

    def start(self, stop):
        print("running", flush=True)
        stop.wait()
        print("stopping", flush=True)
        if MODE == "slow-shutdown":
            threading.Event().wait()


class Publisher:
    def __init__(self, *args, **kwargs):
        pass

    def publish(self, ports):
        return None


orchestrator = BootstrapOrchestrator(
    log,
    sync_period_s=30.0,
    settings=settings,
    resolver=NamespaceResolver(log, settings, environ={"OPERATOR_NAMESPACE": "team-a"}),
    connect=lambda log: Connection(),
    probe_server_factory=Probe,
    elector_factory=Elector,
    lifecycle_factory=lambda connection, log: ManagerLifecycle(connection, log, manager_factory=Manager),
    publisher_factory=Publisher,
    add_to_scheme=lambda scheme: None,
    add_to_manager=lambda manager: None,
)
raise SystemExit(orchestrator.run())
'''


def _spawn(mode):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in [PROJECT_ROOT, env.get("PYTHONPATH")] if p)
    return subprocess.Popen(
        [sys.executable, "-c", OPERATOR_SCRIPT, mode],
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        text=True,
        env=env,
        cwd=PROJECT_ROOT,
    )


def _wait_for_line(proc, expected):
    line = proc.stdout.readline().strip()
    if line != expected:
        proc.kill()
        proc.wait(5)
        pytest.fail(f"expected {expected!r} from operator, got {line!r} (exit {proc.returncode})")


def test_sigterm_while_waiting_for_leadership_exits_promptly():
    proc = _spawn("leader-wait")
    try:
        _wait_for_line(proc, "waiting")
        start = time.time()
        proc.send_signal(signal.SIGTERM)
        returncode = proc.wait(5)
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait(5)
    assert returncode == -signal.SIGTERM
    assert time.time() - start < 5


def test_sigterm_while_running_exits_zero():
    proc = _spawn("run")
    try:
        _wait_for_line(proc, "running")
        proc.send_signal(signal.SIGTERM)
        _wait_for_line(proc, "stopping")
        assert proc.wait(10) == 0
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait(5)


def test_second_sigterm_exits_one():
    proc = _spawn("slow-shutdown")
    try:
        _wait_for_line(proc, "running")
        proc.send_signal(signal.SIGTERM)
        _wait_for_line(proc, "stopping")
        proc.send_signal(signal.SIGTERM)
        assert proc.wait(5) == 1
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait(5)
