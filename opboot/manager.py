from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from threading import Event, Lock, Thread
from typing import TYPE_CHECKING, Any, Callable, Iterator, Protocol

from prometheus_client import start_http_server

from .errors import (
    BootstrapError,
    ControllerRegistrationError,
    ManagerConstructionError,
    RunLoopError,
    SchemeRegistrationError,
)
from .scheme import Scheme

if TYPE_CHECKING:
    from .kube import ClusterConnection


@dataclass(frozen=True)
class ManagerConfig:
    namespace: str
    sync_period_s: float
    metrics_bind_address: str


class Runnable(Protocol):
    name: str

    def run(self, stop: Event) -> None: ...


def split_host_port(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    port_num = int(port)
    if not 0 <= port_num <= 65535:
        raise ValueError(f"port out of range in address {address!r}")
    return host, port_num


class Manager:
    """Owns the scheme, the registered controllers and the metrics listener.

    The metrics listener is bound at construction time; a bind address of ``"0"``
    disables it.
    """

    def __init__(
        self,
        connection: ClusterConnection | None,
        options: ManagerConfig,
        log: logging.Logger,
        metrics_server: Callable[..., Any] = start_http_server,
    ) -> None:
        if options.sync_period_s <= 0:
            raise ManagerConstructionError(f"sync period must be positive, got {options.sync_period_s}s")

        self.connection = connection
        self.options = options
        self.log = log.getChild("manager")
        self.scheme = Scheme()
        self.controllers: list[Runnable] = []
        self._lock = Lock()
        self._started = False
        self._errors: list[BaseException] = []

        if options.metrics_bind_address != "0":
            try:
                host, port = split_host_port(options.metrics_bind_address)
            except ValueError as e:
                raise ManagerConstructionError(f"invalid metrics bind address: {e}") from e
            try:
                metrics_server(port, addr=host or "0.0.0.0")
            except OSError as e:
                raise ManagerConstructionError(
                    f"failed to bind metrics listener on {options.metrics_bind_address}: {e}"
                ) from e
            self.log.info(f"Metrics listening on {options.metrics_bind_address}")

    @property
    def namespace(self) -> str:
        return self.options.namespace

    @property
    def sync_period_s(self) -> float:
        return self.options.sync_period_s

    def add(self, controller: Runnable) -> None:
        with self._lock:
            if self._started:
                raise ControllerRegistrationError(f"cannot add {controller.name!r}: manager already started")
            self.controllers.append(controller)
        self.log.debug(f"Registered controller {controller.name}")

    def start(self, stop: Event) -> None:
        """Run every controller until ``stop`` is set.

        Raises RunLoopError if a controller exits with an exception.
        """
        with self._lock:
            if self._started:
                raise RunLoopError("manager already started")
            self._started = True
            controllers = list(self.controllers)

        failed = Event()
        threads: list[Thread] = []
        for c in controllers:
            thr = Thread(target=self._run_controller, args=(c, stop, failed), name=f"controller-{c.name}", daemon=True)
            thr.start()
            threads.append(thr)

        while not stop.wait(0.5):
            if failed.is_set():
                break

        stop.set()
        for thr in threads:
            thr.join(timeout=max(1.0, self.sync_period_s))

        if self._errors:
            err = self._errors[0]
            raise RunLoopError(f"controller failed: {type(err).__name__}: {err}") from err

    def _run_controller(self, controller: Runnable, stop: Event, failed: Event) -> None:
        try:
            controller.run(stop)
        except Exception as e:
            self.log.error(f"Controller {controller.name} exited: {type(e).__name__}: {e}")
            with self._lock:
                self._errors.append(e)
            failed.set()


class LifecycleState(str, Enum):
    UNCONSTRUCTED = "unconstructed"
    CONSTRUCTED = "constructed"
    SCHEME_READY = "scheme-ready"
    CONTROLLERS_READY = "controllers-ready"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


class ManagerLifecycle:
    """Drives a Manager through construct -> scheme -> controllers -> run.

    Each step requires the previous one to have succeeded; any failure moves the
    lifecycle to FAILED and there is no way back.
    """

    def __init__(
        self,
        connection: ClusterConnection | None,
        log: logging.Logger,
        manager_factory: Callable[..., Manager] = Manager,
    ) -> None:
        self.connection = connection
        self.log = log
        self.manager_factory = manager_factory
        self.state = LifecycleState.UNCONSTRUCTED
        self.manager: Manager | None = None

    def _expect(self, state: LifecycleState, error: type[BootstrapError], action: str) -> None:
        if self.state is not state:
            raise error(f"cannot {action} in state {self.state.value} (expected {state.value})")

    @contextmanager
    def _step(self, error: type[BootstrapError], action: str) -> Iterator[None]:
        try:
            yield
        except error:
            self.state = LifecycleState.FAILED
            raise
        except Exception as e:
            self.state = LifecycleState.FAILED
            raise error(f"{action} failed: {type(e).__name__}: {e}") from e

    def construct(self, config: ManagerConfig) -> Manager:
        self._expect(LifecycleState.UNCONSTRUCTED, ManagerConstructionError, "construct manager")
        with self._step(ManagerConstructionError, "manager construction"):
            self.manager = self.manager_factory(self.connection, config, self.log)
        self.state = LifecycleState.CONSTRUCTED
        return self.manager

    def register_scheme(self, add_to_scheme: Callable[[Scheme], None]) -> None:
        self._expect(LifecycleState.CONSTRUCTED, SchemeRegistrationError, "register scheme")
        with self._step(SchemeRegistrationError, "scheme registration"):
            add_to_scheme(self.manager.scheme)
        self.state = LifecycleState.SCHEME_READY

    def register_controllers(self, add_to_manager: Callable[[Manager], None]) -> None:
        self._expect(LifecycleState.SCHEME_READY, ControllerRegistrationError, "register controllers")
        with self._step(ControllerRegistrationError, "controller registration"):
            add_to_manager(self.manager)
        self.state = LifecycleState.CONTROLLERS_READY

    def run(self, stop: Event) -> int:
        """Block until ``stop`` fires. Returns the process exit status."""
        self._expect(LifecycleState.CONTROLLERS_READY, RunLoopError, "run manager")
        self.state = LifecycleState.RUNNING
        with self._step(RunLoopError, "manager"):
            self.manager.start(stop)
        self.state = LifecycleState.STOPPED
        return 0
