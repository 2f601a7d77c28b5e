"""
OAP Module Library - Module Provider

A ``ModuleProvider`` is one concrete implementation of a module. The engine
drives it through a strictly monotonic lifecycle:

    CREATED ──prepare──▶ PREPARED ──start──▶ STARTED ──notify_after_completed──▶ COMPLETED
        │                    │                  │
        └──────────────▶ FAILED ◀───────────────┘          (terminal)

Concrete providers implement the hooks, never the lifecycle methods:

    class H2StorageProvider(ModuleProvider):
        name = "h2"
        module_name = "storage"
        required_modules = ("core",)
        config_model = H2StorageConfig

        def on_prepare(self) -> None:
            self.register_service(STORAGE_DAO, H2StorageDAO(self.config.url))

        def on_start(self) -> None:
            core = self.manager.find("core").provider.get_service(CORE_SERVICE)
            ...

``name``, ``module_name`` and ``required_modules`` may be overridden either as
properties or as plain class attributes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    ClassVar,
    Generic,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
)

from pydantic import BaseModel, ConfigDict, ValidationError

from module_library.errors import (
    ErrorContext,
    ModuleConfigError,
    ModuleLibraryError,
    ModuleStartError,
    ProviderStateError,
    ServiceNotProvidedError,
)
from module_library.registry import CapabilityId, ServiceRegistry

if TYPE_CHECKING:
    from module_library.booting import BootingParameters
    from module_library.define import ModuleDefine
    from module_library.manager import ModuleManager

T = TypeVar("T")
C = TypeVar("C", bound="ModuleConfig")


class ProviderState(Enum):
    """Lifecycle states of a provider, in the only order they may occur."""
    CREATED = "created"
    PREPARED = "prepared"
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# CONFIGURATION
# =============================================================================


class ModuleConfig(BaseModel):
    """
    Base class of provider settings schemas.

    Unknown keys are rejected so that a typo in the configuration file fails
    the boot instead of silently falling back to a default.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)


class ConfigCreator(Generic[C]):
    """Builds a typed settings object for one provider."""

    def __init__(
        self,
        model: Type[C],
        on_initialized: Optional[Callable[[C], None]] = None,
        owner: str = "unknown",
    ):
        self._model = model
        self._on_initialized = on_initialized
        self._owner = owner

    @property
    def type(self) -> Type[C]:
        return self._model

    def build(self, settings: Optional[Mapping[str, Any]]) -> C:
        """Validate ``settings`` against the schema."""
        try:
            config = self._model.model_validate(dict(settings or {}))
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            key = ".".join(str(part) for part in first.get("loc", ())) or None
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
                for err in e.errors()
            )
            raise ModuleConfigError(
                f"Invalid settings for {self._owner}: {problems}",
                config_key=key,
                cause=e,
            ) from e

        if self._on_initialized is not None:
            self._on_initialized(config)
        return config


# =============================================================================
# PROVIDER
# =============================================================================


class ModuleProvider(ABC):
    """Base class of every module implementation."""

    config_model: ClassVar[Type[ModuleConfig]] = ModuleConfig

    def __init__(self) -> None:
        self._state = ProviderState.CREATED
        self._registry: Optional[ServiceRegistry] = None
        self._module: Optional["ModuleDefine"] = None
        self._manager: Optional["ModuleManager"] = None
        self._booting_parameters: Optional["BootingParameters"] = None
        self._config: Optional[ModuleConfig] = None

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name, the value a configuration selector refers to."""
        ...

    @property
    @abstractmethod
    def module_name(self) -> str:
        """Name of the module this provider implements."""
        ...

    @property
    def required_modules(self) -> Sequence[str]:
        """Modules that must be started before this provider starts."""
        return ()

    @property
    def full_name(self) -> str:
        return f"{self.module_name}.{self.name}"

    def describe(self) -> str:
        cls = type(self)
        return f"{self.module_name}[provider={cls.__module__}.{cls.__qualname__}]"

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ProviderState:
        return self._state

    @property
    def registry(self) -> ServiceRegistry:
        if self._registry is None:
            self._registry = ServiceRegistry(owner=self.full_name)
        return self._registry

    @property
    def module(self) -> "ModuleDefine":
        if self._module is None:
            raise ProviderStateError(f"{self.full_name} is not bound to a module.")
        return self._module

    @property
    def manager(self) -> "ModuleManager":
        if self._manager is None:
            raise ProviderStateError(f"{self.full_name} has not been prepared.")
        return self._manager

    @property
    def booting_parameters(self) -> "BootingParameters":
        if self._booting_parameters is None:
            raise ProviderStateError(f"{self.full_name} has not been prepared.")
        return self._booting_parameters

    @property
    def config(self) -> ModuleConfig:
        if self._config is None:
            raise ProviderStateError(f"{self.full_name} has no configuration before prepare.")
        return self._config

    # -------------------------------------------------------------------------
    # Hooks (override in concrete providers)
    # -------------------------------------------------------------------------

    def new_config_creator(self) -> ConfigCreator[ModuleConfig]:
        """Builder for this provider's settings; override to post-process them."""
        return ConfigCreator(self.config_model, owner=self.full_name)

    @abstractmethod
    def on_prepare(self) -> None:
        """Create service instances and register them."""
        ...

    def on_start(self) -> None:
        """Consume peer services and become operational."""
        pass

    def on_completed(self) -> None:
        """Runs once every provider has started."""
        pass

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    def register_service(self, capability: CapabilityId[T], instance: T) -> None:
        self.registry.register(capability, instance)

    def get_service(self, capability: CapabilityId[T]) -> T:
        return self.registry.get(capability)

    def required_check(self, capabilities: Iterable[CapabilityId[Any]]) -> None:
        """Fail on the first capability this provider has not registered."""
        for capability in capabilities:
            if not self.registry.has(capability):
                raise ServiceNotProvidedError(
                    f"Service {capability} of module {self.module_name} "
                    f"is not provided by {self.full_name}.",
                    context=ErrorContext(
                        operation="required_check",
                        module_name=self.module_name,
                        provider_name=self.name,
                    ),
                )

    # -------------------------------------------------------------------------
    # Lifecycle (driven by the engine)
    # -------------------------------------------------------------------------

    def bind(self, module: "ModuleDefine") -> None:
        """Attach the owning module definition."""
        if self._state is not ProviderState.CREATED or self._module is not None:
            raise ProviderStateError(f"{self.full_name} is already bound.")
        self._module = module

    def prepare(
        self,
        manager: "ModuleManager",
        settings: Optional[Mapping[str, Any]],
        booting_parameters: "BootingParameters",
    ) -> None:
        """Parse settings, run ``on_prepare`` and seal the registry."""
        with self._transition("prepare", ProviderState.CREATED, ProviderState.PREPARED, wrap=False):
            self._manager = manager
            self._booting_parameters = booting_parameters
            self._config = self.new_config_creator().build(settings)
            self.on_prepare()
            self.registry.seal()

    def start(self) -> None:
        with self._transition("start", ProviderState.PREPARED, ProviderState.STARTED, wrap=True):
            self.on_start()

    def notify_after_completed(self) -> None:
        with self._transition(
            "notify_after_completed", ProviderState.STARTED, ProviderState.COMPLETED, wrap=True
        ):
            self.on_completed()

    @contextmanager
    def _transition(
        self,
        operation: str,
        expected: ProviderState,
        target: ProviderState,
        wrap: bool,
    ) -> Iterator[None]:
        if self._state is not expected:
            raise ProviderStateError(
                f"Cannot {operation} {self.full_name} in state {self._state.value}, "
                f"expected {expected.value}."
            )
        try:
            yield
        except ModuleLibraryError:
            self._state = ProviderState.FAILED
            raise
        except Exception as e:
            self._state = ProviderState.FAILED
            if not wrap:
                raise
            raise ModuleStartError(
                f"{self.full_name} failed during {operation}: {e}",
                context=ErrorContext.from_current_span(
                    operation=operation,
                    module_name=self.module_name,
                    provider_name=self.name,
                ),
                cause=e,
            ) from e
        self._state = target

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.full_name} ({self._state.value})>"
