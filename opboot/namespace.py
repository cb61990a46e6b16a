from __future__ import annotations

import logging
import os
from typing import Callable, Mapping

from .errors import NamespaceDiscoveryError
from .kube import operator_namespace
from .settings import Settings, settings as default_settings


class NamespaceResolver:
    """Determine the watch scope: a single namespace, or ``""`` for the whole cluster.

    Precedence:
      1) explicit override env var, when present and non-empty
      2) platform discovery (downward-API env var, then the service-account file)
      3) ``""`` with a logged fallback

    ``resolve`` never raises.
    """

    def __init__(
        self,
        log: logging.Logger,
        settings: Settings = default_settings,
        environ: Mapping[str, str] | None = None,
        discover: Callable[[], str] | None = None,
    ) -> None:
        self.log = log.getChild("namespace")
        self.settings = settings
        self.environ = os.environ if environ is None else environ
        self._discover = discover or self.discover

    def resolve(self) -> str:
        override = self.environ.get(self.settings.namespace_override_env)
        if override:
            self.log.info(f"Using namespace override from {self.settings.namespace_override_env}")
            namespace = override
        else:
            try:
                namespace = self._discover()
                self.log.info("Using namespace from platform discovery")
            except NamespaceDiscoveryError as e:
                self.log.info(f"No watched namespace found, watching the entire cluster ({e})")
                namespace = ""
            except Exception as e:
                self.log.info(
                    f"No watched namespace found, watching the entire cluster ({type(e).__name__}: {e})"
                )
                namespace = ""
        self.log.info(f"Watched namespace: {namespace}")
        return namespace

    def discover(self) -> str:
        env_name = self.settings.watch_namespace_env
        if env_name in self.environ:
            return self.environ[env_name]
        ns = operator_namespace(self.settings.sa_namespace_path)
        if ns is None:
            raise NamespaceDiscoveryError(
                f"{env_name} is not set and {self.settings.sa_namespace_path} is not readable"
            )
        return ns
