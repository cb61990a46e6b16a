from __future__ import annotations

from threading import Lock
from typing import NamedTuple

from .errors import SchemeRegistrationError


class GroupVersionKind(NamedTuple):
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


class Scheme:
    """Maps resource type identifiers to their in-process representation."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._types: dict[GroupVersionKind, type] = {}

    def add_known_type(self, gvk: GroupVersionKind, cls: type) -> None:
        """Register ``cls`` for ``gvk``. Registering the same pair again is a no-op."""
        with self._lock:
            existing = self._types.get(gvk)
            if existing is not None and existing is not cls:
                raise SchemeRegistrationError(
                    f"{gvk.api_version}, Kind={gvk.kind} is already registered to {existing.__name__}"
                )
            self._types[gvk] = cls

    def recognizes(self, gvk: GroupVersionKind) -> bool:
        with self._lock:
            return gvk in self._types

    def type_for(self, gvk: GroupVersionKind) -> type:
        with self._lock:
            try:
                return self._types[gvk]
            except KeyError:
                raise KeyError(f"no kind {gvk.kind!r} is registered for version {gvk.api_version!r}") from None

    def known_kinds(self) -> list[GroupVersionKind]:
        with self._lock:
            return sorted(self._types)
