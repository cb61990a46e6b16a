"""Custom resource types known to the operator and the scheme hook that registers them."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from .scheme import GroupVersionKind, Scheme

VAULT_GVK = GroupVersionKind("vault.banzaicloud.com", "v1alpha1", "Vault")
VAULT_PLURAL = "vaults"


@dataclass(frozen=True)
class Vault:
    # The spec body is passed through untouched; its schema belongs to the reconciler.
    name: str
    namespace: str | None
    resource_version: str | None = None
    spec: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Vault":
        meta = obj.get("metadata") or {}
        return cls(
            name=meta.get("name", ""),
            namespace=meta.get("namespace"),
            resource_version=meta.get("resourceVersion"),
            spec=dict(obj.get("spec") or {}),
        )


def add_vault_types(scheme: Scheme) -> None:
    scheme.add_known_type(VAULT_GVK, Vault)


ADD_TO_SCHEME_FUNCS: list[Callable[[Scheme], None]] = [add_vault_types]


def add_to_scheme(scheme: Scheme) -> None:
    """Add every known resource type to ``scheme``."""
    for add in ADD_TO_SCHEME_FUNCS:
        add(scheme)
