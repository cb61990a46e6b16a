from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from kubernetes import client, config

from .errors import ConfigAcquisitionError
from .settings import settings


@dataclass(frozen=True)
class ClusterConnection:
    """Read-only handle to the cluster API, shared by every bootstrap component."""

    api_client: client.ApiClient
    in_cluster: bool

    def core_v1(self) -> client.CoreV1Api:
        return client.CoreV1Api(self.api_client)

    def custom_objects(self) -> client.CustomObjectsApi:
        return client.CustomObjectsApi(self.api_client)


def get_connection(log: logging.Logger) -> ClusterConnection:
    """Load in-cluster credentials, falling back to the local kubeconfig."""
    configuration = client.Configuration()
    try:
        config.load_incluster_config(client_configuration=configuration)
        log.info("Loaded in-cluster Kubernetes config")
        return ClusterConnection(client.ApiClient(configuration), in_cluster=True)
    except config.ConfigException:
        pass

    try:
        config.load_kube_config(client_configuration=configuration)
    except (config.ConfigException, OSError) as e:
        raise ConfigAcquisitionError(f"Unable to load cluster config: {type(e).__name__}: {e}") from e
    log.info("Loaded local Kubernetes config")
    return ClusterConnection(client.ApiClient(configuration), in_cluster=False)


def operator_namespace(path: str | None = None) -> str | None:
    """Namespace the operator Pod runs in, or None when not running in a cluster."""
    p = Path(path or settings.sa_namespace_path)
    try:
        ns = p.read_text().strip()
    except (OSError, ValueError):
        return None
    return ns or None
