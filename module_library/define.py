"""
OAP Module Library - Module Definition

A ``ModuleDefine`` is the logical identity of a module: its name and the
service capabilities any implementation must expose. During prepare it picks
one provider from the discovered catalog, binds it and prepares it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Sequence

from opentelemetry import trace

from module_library.configuration import ModuleConfiguration
from module_library.errors import (
    AmbiguousProviderError,
    ErrorContext,
    ProviderNotBoundError,
    ProviderNotFoundError,
    ProviderStateError,
)
from module_library.provider import ModuleProvider
from module_library.registry import CapabilityId

if TYPE_CHECKING:
    from module_library.booting import BootingParameters
    from module_library.manager import ModuleManager

logger = logging.getLogger("oap.module")
tracer = trace.get_tracer("oap.module")


class ModuleDefine:
    """
    Module identity plus its selected provider.

    Subclasses declare the module name and its service capabilities:

        class StorageModule(ModuleDefine):
            NAME = "storage"

            def __init__(self):
                super().__init__(self.NAME)

            @property
            def services(self):
                return [STORAGE_DAO, HISTORY_DELETE_DAO]

    or a definition is built inline with
    ``ModuleDefine("storage", services=[STORAGE_DAO])``.
    """

    def __init__(self, name: str, services: Iterable[CapabilityId[Any]] = ()):
        if not name:
            raise ValueError("Module name must not be empty")
        self._name = name
        self._services = tuple(services)
        self._provider: Optional[ModuleProvider] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def services(self) -> Sequence[CapabilityId[Any]]:
        """Capabilities every provider of this module must register."""
        return self._services

    @property
    def provider(self) -> ModuleProvider:
        """The bound provider."""
        if self._provider is None:
            raise ProviderNotBoundError(
                f"Module {self._name} has no provider bound, it has not been prepared."
            )
        return self._provider

    @property
    def is_prepared(self) -> bool:
        return self._provider is not None

    def prepare(
        self,
        manager: "ModuleManager",
        configuration: ModuleConfiguration,
        providers: Iterable[ModuleProvider],
        booting_parameters: "BootingParameters",
    ) -> ModuleProvider:
        """Select, bind and prepare this module's provider."""
        if self._provider is not None:
            raise ProviderStateError(f"Module {self._name} is already prepared.")

        provider = self._select_provider(configuration, providers)
        provider.bind(self)
        self._provider = provider

        with tracer.start_as_current_span("module.prepare") as span:
            span.set_attribute("module.name", self._name)
            span.set_attribute("module.provider", provider.name)
            logger.info(f"Prepare the {provider.name} provider in {self._name} module.")
            provider.prepare(
                manager,
                configuration.settings_for(provider.name),
                booting_parameters,
            )
        return provider

    def _select_provider(
        self,
        configuration: ModuleConfiguration,
        providers: Iterable[ModuleProvider],
    ) -> ModuleProvider:
        candidates: List[ModuleProvider] = [
            p for p in providers if p.module_name == self._name
        ]
        context = ErrorContext(operation="select_provider", module_name=self._name)

        if not candidates:
            raise ProviderNotFoundError(
                f"{self._name} module has no provider.",
                context=context,
            )

        selector = configuration.effective_selector
        if selector is not None:
            selected = [p for p in candidates if p.name == selector]
            if not selected:
                raise ProviderNotFoundError(
                    f"{self._name} module has no provider named {selector}, "
                    f"available: {', '.join(p.name for p in candidates)}.",
                    context=context,
                    suggestions=[f"selector: {p.name}" for p in candidates],
                )
            if len(selected) > 1:
                raise AmbiguousProviderError(
                    f"Module name={self._name}, has duplicate provider named {selector}.",
                    candidates=[p.describe() for p in selected],
                    context=context,
                )
            return selected[0]

        if len(candidates) > 1:
            names = [p.name for p in candidates]
            raise AmbiguousProviderError(
                f"Module name={self._name} has {len(candidates)} providers "
                f"({', '.join(names)}) and no selector.",
                candidates=names,
                context=context,
                suggestions=[f"selector: {name}" for name in names],
            )
        return candidates[0]

    def __repr__(self) -> str:
        bound = self._provider.name if self._provider else None
        return f"<{type(self).__name__} {self._name} provider={bound}>"
