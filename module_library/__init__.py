"""
OAP Module Library - Modular Bootstrap Engine

The spine of the server boot: it selects one provider per configured module,
prepares them (each provider registers its services), orders them so every
provider starts after the modules it requires, starts them, and finally
broadcasts completion. Once booted, ``ModuleManager.find`` lets one module
reach the services of another.

Usage:
    from module_library import (
        ApplicationConfiguration, ModuleCatalog, ModuleManager,
    )

    catalog = ModuleCatalog().register_module(CoreModule).register_provider(CoreProvider)
    configuration = ApplicationConfiguration.from_mapping({"core": {"default": {}}})

    manager = ModuleManager("Apache SkyWalking OAP", catalog)
    manager.init(configuration)
    core = manager.find("core").provider.get_service(CORE_SERVICE)
"""

from module_library.booting import BootingParameters, Row
from module_library.catalog import (
    MODULE_ENTRY_POINT_GROUP,
    PROVIDER_ENTRY_POINT_GROUP,
    ModuleCatalog,
)
from module_library.configuration import ApplicationConfiguration, ModuleConfiguration
from module_library.define import ModuleDefine
from module_library.errors import (
    AmbiguousProviderError,
    BootingParametersFrozenError,
    CycleDependencyError,
    DuplicateModuleError,
    ErrorContext,
    ErrorSeverity,
    ModuleConfigError,
    ModuleLibraryError,
    ModuleNotFoundAtRuntimeError,
    ModuleStartError,
    ProviderNotBoundError,
    ProviderNotFoundError,
    ProviderStateError,
    SealedRegistryError,
    ServiceConflictError,
    ServiceNotProvidedError,
    StillPreparingError,
    UnknownModuleError,
)
from module_library.flow import BootstrapFlow
from module_library.manager import ManagerStage, ModuleManager
from module_library.provider import ConfigCreator, ModuleConfig, ModuleProvider, ProviderState
from module_library.registry import CapabilityId, ServiceRegistry

__all__ = [
    # Engine
    "ModuleManager",
    "ManagerStage",
    "BootstrapFlow",
    "ModuleCatalog",
    "MODULE_ENTRY_POINT_GROUP",
    "PROVIDER_ENTRY_POINT_GROUP",
    # Contracts
    "ModuleDefine",
    "ModuleProvider",
    "ProviderState",
    "ModuleConfig",
    "ConfigCreator",
    "CapabilityId",
    "ServiceRegistry",
    # Configuration and diagnostics
    "ApplicationConfiguration",
    "ModuleConfiguration",
    "BootingParameters",
    "Row",
    # Errors
    "ModuleLibraryError",
    "ErrorContext",
    "ErrorSeverity",
    "UnknownModuleError",
    "ModuleNotFoundAtRuntimeError",
    "DuplicateModuleError",
    "ProviderNotFoundError",
    "AmbiguousProviderError",
    "ProviderNotBoundError",
    "ProviderStateError",
    "ModuleConfigError",
    "ServiceNotProvidedError",
    "ServiceConflictError",
    "SealedRegistryError",
    "CycleDependencyError",
    "ModuleStartError",
    "StillPreparingError",
    "BootingParametersFrozenError",
]
