import logging
import os as _os
import sys
from threading import Lock

# Ensure project root is importable (so `import cli` works without installing)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from opboot.settings import Settings


class FakeCoreV1:
    """In-memory stand-in for the CoreV1Api calls bootstrap makes.

    ``fail`` maps a method name to an ApiException raised on every call.
    """

    def __init__(self, pods: dict[tuple[str, str], str] | None = None):
        self._lock = Lock()
        self.pods = dict(pods or {})  # (ns, name) -> uid
        self.config_maps: dict[tuple[str, str], client.V1ConfigMap] = {}
        self.services: dict[tuple[str, str], client.V1Service] = {}
        self.fail: dict[str, ApiException] = {}
        self.calls: list[str] = []
        self._rv = 0

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise self.fail[name]

    def _next_rv(self) -> str:
        self._rv += 1
        return str(self._rv)

    # pods
    def read_namespaced_pod(self, name, namespace):
        self._enter("read_namespaced_pod")
        uid = self.pods.get((namespace, name))
        if uid is None:
            raise ApiException(status=404, reason="Not Found")
        return client.V1Pod(metadata=client.V1ObjectMeta(name=name, namespace=namespace, uid=uid))

    # configmaps
    def read_namespaced_config_map(self, name, namespace):
        self._enter("read_namespaced_config_map")
        with self._lock:
            cm = self.config_maps.get((namespace, name))
        if cm is None:
            raise ApiException(status=404, reason="Not Found")
        return cm

    def create_namespaced_config_map(self, namespace, body):
        self._enter("create_namespaced_config_map")
        key = (namespace, body.metadata.name)
        with self._lock:
            if key in self.config_maps:
                raise ApiException(status=409, reason="AlreadyExists")
            body.metadata.resource_version = self._next_rv()
            self.config_maps[key] = body
        return body

    def delete_lock(self, namespace, name) -> None:
        with self._lock:
            self.config_maps.pop((namespace, name), None)

    def lock_owner(self, namespace, name) -> str | None:
        with self._lock:
            cm = self.config_maps.get((namespace, name))
        if cm is None:
            return None
        return cm.metadata.owner_references[0].name

    # services
    def create_namespaced_service(self, namespace, body):
        self._enter("create_namespaced_service")
        key = (namespace, body.metadata.name)
        with self._lock:
            if key in self.services:
                raise ApiException(status=409, reason="AlreadyExists")
            body.metadata.resource_version = self._next_rv()
            body.spec.cluster_ip = "10.96.0.10"
            self.services[key] = body
        return body

    def read_namespaced_service(self, name, namespace):
        self._enter("read_namespaced_service")
        svc = self.services.get((namespace, name))
        if svc is None:
            raise ApiException(status=404, reason="Not Found")
        return svc

    def replace_namespaced_service(self, name, namespace, body):
        self._enter("replace_namespaced_service")
        key = (namespace, name)
        with self._lock:
            current = self.services.get(key)
            if current is None:
                raise ApiException(status=404, reason="Not Found")
            if body.metadata.resource_version != current.metadata.resource_version:
                raise ApiException(status=409, reason="Conflict")
            body.metadata.resource_version = self._next_rv()
            self.services[key] = body
        return body


@pytest.fixture
def log():
    logger = logging.getLogger("tests.opboot")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def core_v1():
    return FakeCoreV1(pods={("vault-system", "op-0"): "uid-0", ("vault-system", "op-1"): "uid-1"})


@pytest.fixture
def test_settings():
    return Settings(
        pod_name="op-0",
        operator_name="vault-operator",
        liveness_host="127.0.0.1",
        liveness_port=0,
        metrics_port=8383,
        leader_lock_name="vault-operator-lock",
        leader_initial_backoff_s=0.01,
        leader_max_backoff_s=1,
    )

