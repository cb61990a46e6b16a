from __future__ import annotations

import logging

from kubernetes import client
from kubernetes.client.rest import ApiException

from .api_models import MetricsServiceDescriptor
from .errors import MetricsPublicationError
from .kube import operator_namespace
from .settings import Settings, settings as default_settings

OPERATOR_PORT_NAME = "http-metrics"


def default_service_ports(port: int) -> list[MetricsServiceDescriptor]:
    return [MetricsServiceDescriptor(port=port, protocol="TCP", name=OPERATOR_PORT_NAME, target_port=port)]


def _to_service_port(d: MetricsServiceDescriptor) -> client.V1ServicePort:
    return client.V1ServicePort(port=d.port, protocol=d.protocol, name=d.name, target_port=d.target_port)


def _port_key(p: client.V1ServicePort) -> tuple:
    target = p.target_port
    if isinstance(target, str) and target.isdigit():
        target = int(target)
    return (p.name, int(p.port), p.protocol or "TCP", target)


class MetricsPublisher:
    """Creates (or updates) the Service that exposes the operator's metrics port."""

    def __init__(
        self,
        core_v1: client.CoreV1Api,
        log: logging.Logger,
        settings: Settings = default_settings,
        namespace: str | None = None,
    ) -> None:
        self.core_v1 = core_v1
        self.log = log.getChild("metrics")
        self.operator_name = settings.operator_name
        self.namespace = namespace if namespace is not None else operator_namespace(settings.sa_namespace_path)

    @property
    def service_name(self) -> str:
        return f"{self.operator_name}-metrics"

    def build_service(self, ports: list[MetricsServiceDescriptor]) -> client.V1Service:
        labels = {"name": self.operator_name}
        return client.V1Service(
            api_version="v1",
            kind="Service",
            metadata=client.V1ObjectMeta(name=self.service_name, namespace=self.namespace, labels=labels),
            spec=client.V1ServiceSpec(ports=[_to_service_port(d) for d in ports], selector=labels),
        )

    def publish(self, ports: list[MetricsServiceDescriptor]) -> client.V1Service | None:
        """Create the metrics Service; an existing matching Service counts as success.

        Returns None when not running in a cluster.
        """
        if not self.namespace:
            self.log.info("Skipping metrics Service creation; not running in a cluster.")
            return None
        if not ports:
            raise MetricsPublicationError("no service ports to publish")

        desired = self.build_service(ports)
        ns = self.namespace
        try:
            svc = self.core_v1.create_namespaced_service(namespace=ns, body=desired)
            self.log.info(f"Metrics Service object created (Service.Name={self.service_name}, Service.Namespace={ns})")
            return svc
        except ApiException as e:
            if e.status != 409:
                raise MetricsPublicationError(
                    f"failed to create metrics service {ns}/{self.service_name}: HTTP {e.status} {e.reason}"
                ) from e

        try:
            existing = self.core_v1.read_namespaced_service(name=self.service_name, namespace=ns)
            if self._matches(existing, desired):
                self.log.info(f"Metrics Service object unchanged (Service.Name={self.service_name})")
                return existing
            desired.metadata.resource_version = existing.metadata.resource_version
            desired.spec.cluster_ip = existing.spec.cluster_ip
            svc = self.core_v1.replace_namespaced_service(name=self.service_name, namespace=ns, body=desired)
        except ApiException as e:
            raise MetricsPublicationError(
                f"failed to update metrics service {ns}/{self.service_name}: HTTP {e.status} {e.reason}"
            ) from e
        self.log.info(f"Metrics Service object updated (Service.Name={self.service_name}, Service.Namespace={ns})")
        return svc

    @staticmethod
    def _matches(existing: client.V1Service, desired: client.V1Service) -> bool:
        spec = existing.spec
        if spec is None:
            return False
        if (spec.selector or {}) != (desired.spec.selector or {}):
            return False
        have = sorted((_port_key(p) for p in (spec.ports or [])), key=repr)
        want = sorted((_port_key(p) for p in desired.spec.ports), key=repr)
        return have == want
