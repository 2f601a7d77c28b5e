"""
OAP Module Library - Module Manager

The public face of the bootstrap engine. ``init`` runs the whole boot:

    configuration ──▶ select modules ──▶ prepare (providers register services)
        ──▶ stage: preparing → running ──▶ BootstrapFlow.start ──▶ notify_after_completed

After ``init`` returns, ``find`` serves cross-module lookups:

    manager.find("storage").provider.get_service(STORAGE_DAO)
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from opentelemetry import trace

from module_library.booting import BootingParameters
from module_library.catalog import ModuleCatalog
from module_library.configuration import ApplicationConfiguration
from module_library.define import ModuleDefine
from module_library.errors import (
    ErrorContext,
    ModuleNotFoundAtRuntimeError,
    ProviderStateError,
    StillPreparingError,
    UnknownModuleError,
)
from module_library.flow import BootstrapFlow
from module_library.provider import ModuleProvider

logger = logging.getLogger("oap.module")
tracer = trace.get_tracer("oap.module")


class ManagerStage(Enum):
    """Stages of the module manager; the only transition is PREPARING → RUNNING."""
    PREPARING = "preparing"
    RUNNING = "running"


class ModuleManager:
    """
    Loads the selected modules, binds their providers and drives the boot.

    The loaded module map is written only while preparing and never after,
    so ``find`` and ``has`` are safe from any thread once ``init`` returned.
    """

    __slots__ = (
        "_description",
        "_catalog",
        "_catalog_source",
        "_stage",
        "_loaded_modules",
        "_booting_parameters",
        "_flow",
        "_initialized",
    )

    def __init__(
        self,
        description: str,
        catalog: Union[ModuleCatalog, Callable[[], ModuleCatalog], None] = None,
    ):
        self._description = description
        self._catalog: Optional[ModuleCatalog] = None
        self._catalog_source = catalog
        self._stage = ManagerStage.PREPARING
        self._loaded_modules: Dict[str, ModuleDefine] = {}
        self._booting_parameters = BootingParameters(
            f"The key booting parameters of {description} are listed as following."
        )
        self._flow: Optional[BootstrapFlow] = None
        self._initialized = False

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def description(self) -> str:
        return self._description

    @property
    def catalog(self) -> ModuleCatalog:
        """
        The module catalog, resolved on first access.

        A factory passed to the constructor runs here, so discovery failures
        surface from ``init`` like any other boot error.
        """
        if self._catalog is None:
            source = self._catalog_source
            if source is None:
                self._catalog = ModuleCatalog()
            elif isinstance(source, ModuleCatalog):
                self._catalog = source
            else:
                self._catalog = source()
        return self._catalog

    @property
    def stage(self) -> ManagerStage:
        return self._stage

    @property
    def is_in_prepare_stage(self) -> bool:
        return self._stage is ManagerStage.PREPARING

    @property
    def booting_parameters(self) -> BootingParameters:
        """Diagnostic ledger, writable until the prepare stage ends."""
        return self._booting_parameters

    @property
    def startup_sequence(self) -> Tuple[ModuleProvider, ...]:
        if self._flow is None:
            return ()
        return self._flow.startup_sequence

    def loaded_module_names(self) -> List[str]:
        return list(self._loaded_modules)

    # -------------------------------------------------------------------------
    # Boot
    # -------------------------------------------------------------------------

    def init(self, configuration: ApplicationConfiguration) -> None:
        """
        Boot every module selected by ``configuration``.

        Raises:
            UnknownModuleError: a selected or required module has no definition
            ProviderNotFoundError / AmbiguousProviderError: provider selection failed
            ModuleConfigError: provider settings are invalid
            CycleDependencyError: the required-modules graph has a cycle
            ServiceNotProvidedError: a module's capability was not registered
            ModuleStartError: a provider failed to start or complete
        """
        if self._initialized:
            raise ProviderStateError(f"{self._description} module manager is already initialized.")
        self._initialized = True

        total_start = time.time()
        with tracer.start_as_current_span("module_manager.init") as span:
            module_names = configuration.module_list()
            span.set_attribute("modules.selected", len(module_names))

            definitions = self.catalog.module_definitions()
            missing = [name for name in module_names if name not in definitions]
            if missing:
                raise UnknownModuleError(
                    f"{missing} missing.",
                    module_names=missing,
                    context=ErrorContext(operation="init"),
                )

            providers = self.catalog.providers()
            for module_name in module_names:
                module = definitions[module_name]
                module.prepare(
                    self,
                    configuration.get_module_configuration(module_name),
                    providers,
                    self._booting_parameters,
                )
                self._loaded_modules[module_name] = module

            self._finish_prepare_stage()

            self._flow = BootstrapFlow(self._loaded_modules)
            self._flow.start(self)
            self._flow.notify_after_completed()

            logger.info(
                f"{len(self._loaded_modules)} modules started "
                f"(duration={(time.time() - total_start) * 1000:.0f}ms)"
            )

    def _finish_prepare_stage(self) -> None:
        self._stage = ManagerStage.RUNNING
        self._booting_parameters.freeze()

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def has(self, module_name: str) -> bool:
        return module_name in self._loaded_modules

    def find(self, module_name: str) -> ModuleDefine:
        """Module by name; only after the prepare stage."""
        if self._stage is ManagerStage.PREPARING:
            raise StillPreparingError()
        module = self._loaded_modules.get(module_name)
        if module is None:
            raise ModuleNotFoundAtRuntimeError(module_name)
        return module
