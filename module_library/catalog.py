"""
OAP Module Library - Module Catalog

Explicit registry of the module definitions and providers available to a
process. The application populates it before ``ModuleManager.init``:

    catalog = (
        ModuleCatalog()
        .register_module(CoreModule)
        .register_module(StorageModule)
        .register_provider(CoreModuleProvider)
        .register_provider(H2StorageProvider)
        .register_provider(ElasticsearchStorageProvider)
    )

or from installed distributions through entry points:

    [project.entry-points."oap.modules"]
    storage = "oap_storage:StorageModule"

    [project.entry-points."oap.providers"]
    storage-h2 = "oap_storage.h2:H2StorageProvider"
"""

from __future__ import annotations

import importlib.metadata as metadata
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from module_library.define import ModuleDefine
from module_library.errors import DuplicateModuleError
from module_library.provider import ModuleProvider

logger = logging.getLogger("oap.module")

MODULE_ENTRY_POINT_GROUP = "oap.modules"
PROVIDER_ENTRY_POINT_GROUP = "oap.providers"

ModuleFactory = Union[ModuleDefine, Callable[[], ModuleDefine]]
ProviderFactory = Union[ModuleProvider, Callable[[], ModuleProvider]]


class ModuleCatalog:
    """
    Ordered constructors for module definitions and providers.

    Factories are called on every ``module_definitions()`` / ``providers()``
    call, so each boot gets fresh instances. Instances registered directly
    are handed out as they are.
    """

    def __init__(
        self,
        modules: Iterable[ModuleFactory] = (),
        providers: Iterable[ProviderFactory] = (),
    ):
        self._module_factories: List[ModuleFactory] = list(modules)
        self._provider_factories: List[ProviderFactory] = list(providers)

    def register_module(self, factory: ModuleFactory) -> "ModuleCatalog":
        self._module_factories.append(factory)
        return self

    def register_provider(self, factory: ProviderFactory) -> "ModuleCatalog":
        self._provider_factories.append(factory)
        return self

    def module_definitions(self) -> Dict[str, ModuleDefine]:
        """Definitions keyed by module name, in registration order."""
        definitions: Dict[str, ModuleDefine] = {}
        for factory in self._module_factories:
            module = factory if isinstance(factory, ModuleDefine) else factory()
            if module.name in definitions:
                raise DuplicateModuleError(
                    f"Module {module.name} is defined by both "
                    f"{type(definitions[module.name]).__name__} and {type(module).__name__}."
                )
            definitions[module.name] = module
        return definitions

    def providers(self) -> List[ModuleProvider]:
        """Provider instances in registration order."""
        return [
            factory if isinstance(factory, ModuleProvider) else factory()
            for factory in self._provider_factories
        ]

    def __len__(self) -> int:
        return len(self._module_factories) + len(self._provider_factories)

    @classmethod
    def from_entry_points(
        cls,
        module_group: str = MODULE_ENTRY_POINT_GROUP,
        provider_group: str = PROVIDER_ENTRY_POINT_GROUP,
        entry_points: Optional[Iterable[metadata.EntryPoint]] = None,
    ) -> "ModuleCatalog":
        """
        Build a catalog from installed entry points.

        Entry points are loaded sorted by name so that discovery order, and
        with it provider candidate order, is stable across runs.
        """
        if entry_points is None:
            module_eps = list(metadata.entry_points(group=module_group))
            provider_eps = list(metadata.entry_points(group=provider_group))
        else:
            entry_points = list(entry_points)
            module_eps = [ep for ep in entry_points if ep.group == module_group]
            provider_eps = [ep for ep in entry_points if ep.group == provider_group]

        catalog = cls()
        for entry in sorted(module_eps, key=lambda ep: ep.name):
            logger.debug(f"Discovered module entry point {entry.name} = {entry.value}")
            catalog.register_module(entry.load())
        for entry in sorted(provider_eps, key=lambda ep: ep.name):
            logger.debug(f"Discovered provider entry point {entry.name} = {entry.value}")
            catalog.register_provider(entry.load())
        return catalog
