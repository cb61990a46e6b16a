from __future__ import annotations

import logging
import random
import time
from typing import Callable

from kubernetes import client
from kubernetes.client.rest import ApiException

from .errors import LeadershipAcquisitionError
from .kube import operator_namespace
from .settings import Settings, settings as default_settings


def jitter(duration: float, max_factor: float = 0.2) -> float:
    return duration + random.random() * max_factor * duration


class LeaderElector:
    """Leader-for-life election backed by a ConfigMap owned by the operator Pod.

    Whoever creates the ConfigMap is the leader until its Pod is deleted, at which
    point the garbage collector removes the lock and a waiting contender can create
    it. There is no explicit release.
    """

    def __init__(
        self,
        core_v1: client.CoreV1Api,
        log: logging.Logger,
        settings: Settings = default_settings,
        namespace: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.core_v1 = core_v1
        self.log = log.getChild("leader")
        self.settings = settings
        self.namespace = namespace if namespace is not None else operator_namespace(settings.sa_namespace_path)
        self._sleep = sleep

    def acquire(self, lock_name: str) -> None:
        """Block until this process holds ``lock_name``."""
        self.log.info("Trying to become the leader.")
        ns = self.namespace
        if not ns:
            self.log.info("Skipping leader election; not running in a cluster.")
            return

        owner = self._my_owner_ref(ns)

        existing = self._read_lock(ns, lock_name)
        if existing is not None:
            refs = existing.metadata.owner_references or []
            for ref in refs:
                if ref.name == owner.name:
                    self.log.info("Found existing lock with my name. I was likely restarted.")
                    self.log.info("Continuing as the leader.")
                    return
            holders = ", ".join(r.name for r in refs) or "<unknown>"
            self.log.info(f"Found existing lock (LockOwner={holders})")

        lock = client.V1ConfigMap(
            metadata=client.V1ObjectMeta(name=lock_name, namespace=ns, owner_references=[owner]),
        )

        backoff = self.settings.leader_initial_backoff_s
        while True:
            try:
                self.core_v1.create_namespaced_config_map(namespace=ns, body=lock)
            except ApiException as e:
                if e.status != 409:
                    self.log.error(f"unknown error creating configmap: HTTP {e.status} {e.reason}")
                    raise LeadershipAcquisitionError(
                        f"unable to create lock {ns}/{lock_name}: HTTP {e.status} {e.reason}"
                    ) from e
                self.log.info("Not the leader. Waiting.")
                self._sleep(jitter(backoff))
                backoff = min(backoff * 2, self.settings.leader_max_backoff_s)
                continue
            self.log.info("Became the leader.")
            return

    def _my_owner_ref(self, ns: str) -> client.V1OwnerReference:
        pod_name = self.settings.pod_name
        if not pod_name:
            raise LeadershipAcquisitionError("required env POD_NAME not set")
        try:
            pod = self.core_v1.read_namespaced_pod(name=pod_name, namespace=ns)
        except ApiException as e:
            raise LeadershipAcquisitionError(f"unable to read own pod {ns}/{pod_name}: HTTP {e.status} {e.reason}") from e
        self.log.debug(f"Found podname (Pod.Name={pod_name})")
        return client.V1OwnerReference(
            api_version="v1",
            kind="Pod",
            name=pod.metadata.name,
            uid=pod.metadata.uid,
        )

    def _read_lock(self, ns: str, lock_name: str) -> client.V1ConfigMap | None:
        try:
            return self.core_v1.read_namespaced_config_map(name=lock_name, namespace=ns)
        except ApiException as e:
            if e.status == 404:
                return None
            raise LeadershipAcquisitionError(f"unable to read lock {ns}/{lock_name}: HTTP {e.status} {e.reason}") from e
