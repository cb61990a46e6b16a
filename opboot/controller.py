from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import Event
from typing import Any, Callable

from kubernetes.client.rest import ApiException
from prometheus_client import Counter

from .apis import VAULT_GVK, VAULT_PLURAL
from .errors import ControllerRegistrationError
from .manager import Manager
from .scheme import GroupVersionKind

RECONCILE_TOTAL = Counter(
    "opboot_controller_reconcile_total",
    "Reconcile calls per controller and result.",
    ["controller", "result"],
)


class Controller(ABC):
    """Periodically resyncs every object of one kind within the manager's scope."""

    name = "controller"
    gvk: GroupVersionKind
    plural: str

    def __init__(self, manager: Manager):
        if not manager.scheme.recognizes(self.gvk):
            raise ControllerRegistrationError(
                f"{self.name}: kind {self.gvk.kind!r} ({self.gvk.api_version}) is not registered in the scheme"
            )
        self.manager = manager
        self.obj_type = manager.scheme.type_for(self.gvk)
        self.log: logging.Logger = manager.log.getChild(f"controller.{self.name}")

    def run(self, stop: Event) -> None:
        self.log.info("Starting Controller")
        while not stop.is_set():
            try:
                self._tick()
            except ApiException as e:
                self.log.error(f"Resync failed: HTTP {e.status} {e.reason}")
            except Exception as e:
                self.log.error(f"Resync failed: {type(e).__name__}: {e}")
            stop.wait(self.manager.sync_period_s)
        self.log.info("Stopping Controller")

    def _tick(self) -> None:
        for item in self.list_objects():
            obj = self.obj_type.from_dict(item)
            try:
                self.reconcile(obj)
            except Exception as e:
                RECONCILE_TOTAL.labels(self.name, "error").inc()
                self.log.error(f"Reconcile {getattr(obj, 'name', obj)!r} failed: {type(e).__name__}: {e}")
            else:
                RECONCILE_TOTAL.labels(self.name, "success").inc()

    def list_objects(self) -> list[dict[str, Any]]:
        api = self.manager.connection.custom_objects()
        ns = self.manager.namespace
        if ns:
            resp = api.list_namespaced_custom_object(self.gvk.group, self.gvk.version, ns, self.plural)
        else:
            resp = api.list_cluster_custom_object(self.gvk.group, self.gvk.version, self.plural)
        return list(resp.get("items", []))

    @abstractmethod
    def reconcile(self, obj: Any) -> None: ...


class VaultController(Controller):
    name = "vault"
    gvk = VAULT_GVK
    plural = VAULT_PLURAL

    def reconcile(self, obj: Any) -> None:
        # Hook for the Vault reconciler; bootstrap only drives the resync loop.
        self.log.debug(f"Reconciling Vault {obj.namespace}/{obj.name} (resourceVersion={obj.resource_version})")


def add_vault_controller(manager: Manager) -> None:
    manager.add(VaultController(manager))


ADD_TO_MANAGER_FUNCS: list[Callable[[Manager], None]] = [add_vault_controller]


def add_to_manager(manager: Manager) -> None:
    """Add every controller to ``manager``."""
    for add in ADD_TO_MANAGER_FUNCS:
        add(manager)
