"""
OAP Module Library - Service Registry

Each provider owns one ``ServiceRegistry``: a map from ``CapabilityId`` to the
instance that fulfils it. Registration is open while the provider prepares and
the registry is sealed once ``prepare`` returns; lookups are allowed at any time.

Usage:
    STORAGE_DAO = CapabilityId("storage.dao", IStorageDAO)

    registry = ServiceRegistry(owner="storage.h2")
    registry.register(STORAGE_DAO, H2StorageDAO())
    registry.seal()
    dao = registry.get(STORAGE_DAO)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterator, List, Optional, Type, TypeVar

from module_library.errors import (
    SealedRegistryError,
    ServiceConflictError,
    ServiceNotProvidedError,
)

T = TypeVar("T")


@dataclass(frozen=True)
class CapabilityId(Generic[T]):
    """
    Value token naming one service contract.

    Two ids are equal when their names are equal; ``contract`` is only used
    to narrow and check instances on registration.
    """

    name: str
    contract: Optional[Type[T]] = field(default=None, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("CapabilityId name must not be empty")

    def accepts(self, instance: Any) -> bool:
        """Whether ``instance`` satisfies the declared contract."""
        if self.contract is None:
            return True
        try:
            return isinstance(instance, self.contract)
        except TypeError:
            # Protocols without @runtime_checkable cannot be checked.
            return True

    def __str__(self) -> str:
        return self.name


class ServiceRegistry:
    """Per-provider map of capability id to service instance."""

    __slots__ = ("_owner", "_services", "_sealed")

    def __init__(self, owner: str = "unknown"):
        self._owner = owner
        self._services: Dict[CapabilityId[Any], Any] = {}
        self._sealed = False

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, capability: CapabilityId[T], instance: T) -> "ServiceRegistry":
        """Bind ``instance`` to ``capability``."""
        if self._sealed:
            raise SealedRegistryError(
                f"Registry of {self._owner} is sealed, "
                f"cannot register {capability} after prepare."
            )
        if capability in self._services:
            raise ServiceConflictError(
                f"Service {capability} is already registered in {self._owner}."
            )
        if not capability.accepts(instance):
            raise ServiceNotProvidedError(
                f"{type(instance).__name__} is not an implementation of {capability} "
                f"({capability.contract.__name__})."
            )
        self._services[capability] = instance
        return self

    def get(self, capability: CapabilityId[T]) -> T:
        """Return the instance bound to ``capability``."""
        try:
            return self._services[capability]
        except KeyError:
            raise ServiceNotProvidedError(
                f"Service {capability} is not provided by {self._owner}."
            ) from None

    def has(self, capability: CapabilityId[Any]) -> bool:
        return capability in self._services

    def seal(self) -> None:
        """Close the registry for further registrations."""
        self._sealed = True

    def capabilities(self) -> List[CapabilityId[Any]]:
        """Registered capability ids in registration order."""
        return list(self._services)

    def __contains__(self, capability: object) -> bool:
        return capability in self._services

    def __iter__(self) -> Iterator[CapabilityId[Any]]:
        return iter(list(self._services))

    def __len__(self) -> int:
        return len(self._services)

    def __repr__(self) -> str:
        state = "sealed" if self._sealed else "open"
        return f"ServiceRegistry(owner={self._owner!r}, services={len(self._services)}, {state})"
