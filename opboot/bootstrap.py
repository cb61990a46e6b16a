from __future__ import annotations

import argparse
import logging
import platform
import sys
from contextlib import contextmanager
from threading import Event
from typing import Callable, Iterator

import kubernetes

from . import __version__, apis, controller
from .errors import (
    BootstrapError,
    ConfigAcquisitionError,
    LeadershipAcquisitionError,
    MetricsPublicationError,
)
from .kube import ClusterConnection, get_connection
from .leader import LeaderElector
from .logs import setup_logging
from .manager import Manager, ManagerConfig, ManagerLifecycle
from .metrics import MetricsPublisher, default_service_ports
from .namespace import NamespaceResolver
from .probes import HealthProbeServer
from .runtime import ProcessHealthState
from .scheme import Scheme
from .settings import Settings, parse_duration, settings as default_settings
from .signals import setup_signal_handler


class BootstrapOrchestrator:
    """Sequences the bootstrap and turns any fatal failure into exit status 1.

    Order: resolve scope -> connect -> probes (background) -> leader lock (blocking)
    -> construct manager -> scheme -> controllers -> ready -> metrics Service -> run.
    The SIGTERM/SIGINT handler is installed only right before the manager runs.
    """

    def __init__(
        self,
        log: logging.Logger,
        sync_period_s: float,
        settings: Settings = default_settings,
        *,
        state: ProcessHealthState | None = None,
        resolver: NamespaceResolver | None = None,
        connect: Callable[[logging.Logger], ClusterConnection] = get_connection,
        probe_server_factory: Callable[..., HealthProbeServer] = HealthProbeServer,
        elector_factory: Callable[..., LeaderElector] = LeaderElector,
        lifecycle_factory: Callable[..., ManagerLifecycle] = ManagerLifecycle,
        publisher_factory: Callable[..., MetricsPublisher] = MetricsPublisher,
        add_to_scheme: Callable[[Scheme], None] = apis.add_to_scheme,
        add_to_manager: Callable[[Manager], None] = controller.add_to_manager,
        signal_handler: Callable[[logging.Logger], Event] = setup_signal_handler,
    ) -> None:
        self.log = log
        self.sync_period_s = sync_period_s
        self.settings = settings
        self.state = state or ProcessHealthState()
        self.resolver = resolver or NamespaceResolver(log, settings)
        self.connect = connect
        self.probe_server_factory = probe_server_factory
        self.elector_factory = elector_factory
        self.lifecycle_factory = lifecycle_factory
        self.publisher_factory = publisher_factory
        self.add_to_scheme = add_to_scheme
        self.add_to_manager = add_to_manager
        self.signal_handler = signal_handler
        self.probe_server: HealthProbeServer | None = None
        self.lifecycle: ManagerLifecycle | None = None

    def run(self) -> int:
        try:
            return self._bootstrap()
        except BootstrapError as e:
            self.state.set_phase("failed")
            self.log.error(f"Bootstrap failed: {type(e).__name__}: {e}", exc_info=e)
            return 1

    @contextmanager
    def _phase(self, phase: str, error: type[BootstrapError]) -> Iterator[None]:
        self.state.set_phase(phase)
        try:
            yield
        except BootstrapError:
            raise
        except Exception as e:
            raise error(f"{phase}: {type(e).__name__}: {e}") from e

    def _bootstrap(self) -> int:
        self.state.set_phase("resolving-namespace")
        namespace = self.resolver.resolve()

        with self._phase("connecting", ConfigAcquisitionError):
            connection = self.connect(self.log)

        self.probe_server = self.probe_server_factory(
            self.state, self.log, host=self.settings.liveness_host, port=self.settings.liveness_port
        )
        self.probe_server.start()

        with self._phase("electing-leader", LeadershipAcquisitionError):
            elector = self.elector_factory(connection.core_v1(), self.log, self.settings)
            elector.acquire(self.settings.leader_lock_name)
        self.state.mark_leader()

        config = ManagerConfig(
            namespace=namespace,
            sync_period_s=self.sync_period_s,
            metrics_bind_address=self.settings.metrics_bind_address,
        )
        self.lifecycle = self.lifecycle_factory(connection, self.log)
        self.state.set_phase("constructing-manager")
        self.lifecycle.construct(config)

        self.log.info("Registering Components.")
        self.state.set_phase("registering-scheme")
        self.lifecycle.register_scheme(self.add_to_scheme)
        self.state.set_phase("registering-controllers")
        self.lifecycle.register_controllers(self.add_to_manager)
        self.state.mark_ready()

        with self._phase("publishing-metrics", MetricsPublicationError):
            publisher = self.publisher_factory(connection.core_v1(), self.log, self.settings)
            publisher.publish(default_service_ports(self.settings.metrics_port))

        # Signals before this point keep the default disposition and end the process.
        stop = self.signal_handler(self.log)
        self.log.info("Starting the manager.")
        self.state.set_phase("running")
        status = self.lifecycle.run(stop)
        self.state.set_phase("stopped")
        self.log.info("Manager stopped.")
        return status


def print_version(log: logging.Logger) -> None:
    log.info(f"Python Version: {platform.python_version()}")
    log.info(f"Python OS/Arch: {sys.platform}/{platform.machine()}")
    log.info(f"kubernetes client Version: {kubernetes.__version__}")
    log.info(f"opboot Version: {__version__}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Vault operator")
    p.add_argument(
        "--sync_period",
        "--sync-period",
        dest="sync_period",
        type=parse_duration,
        default=default_settings.default_sync_period,
        help="Minimum frequency at which watched resources are reconciled (e.g. 30s, 1m30s)",
    )
    p.add_argument(
        "--verbose",
        action="store_true",
        default=default_settings.verbose,
        help="Enable verbose logging",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    log = setup_logging(args.verbose)
    print_version(log)
    try:
        return BootstrapOrchestrator(log, sync_period_s=args.sync_period).run()
    except KeyboardInterrupt:
        log.info("Interrupted before the manager started, exiting")
        return 1
