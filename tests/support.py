"""
Test doubles for the module engine.

``RecordingProvider`` writes every lifecycle call into a shared journal so
tests can assert on the exact boot order.
"""
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from module_library import (
    ApplicationConfiguration,
    CapabilityId,
    ModuleCatalog,
    ModuleConfig,
    ModuleDefine,
    ModuleProvider,
)


class Journal:
    """Ordered record of lifecycle events."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, str]] = []

    def record(self, event: str, module_name: str) -> None:
        self.events.append((event, module_name))

    def modules(self, event: str) -> List[str]:
        return [module for name, module in self.events if name == event]


class RecordingProvider(ModuleProvider):
    """Provider whose identity, requirements and behaviour are set per instance."""

    def __init__(
        self,
        module_name: str,
        name: str = "default",
        required: Sequence[str] = (),
        services: Iterable[CapabilityId[Any]] = (),
        journal: Optional[Journal] = None,
        config_model: Optional[Type[ModuleConfig]] = None,
        on_start: Optional[Callable[["RecordingProvider"], None]] = None,
        on_completed: Optional[Callable[["RecordingProvider"], None]] = None,
    ):
        super().__init__()
        self._module_name = module_name
        self._name = name
        self._required = tuple(required)
        self._services = list(services)
        self._journal = journal or Journal()
        self._start_hook = on_start
        self._completed_hook = on_completed
        if config_model is not None:
            self.config_model = config_model

    @property
    def name(self) -> str:
        return self._name

    @property
    def module_name(self) -> str:
        return self._module_name

    @property
    def required_modules(self) -> Sequence[str]:
        return self._required

    @property
    def journal(self) -> Journal:
        return self._journal

    def on_prepare(self) -> None:
        self._journal.record("prepare", self._module_name)
        for capability in self._services:
            self.register_service(capability, ServiceImpl(capability.name, self.full_name))

    def on_start(self) -> None:
        self._journal.record("start", self._module_name)
        if self._start_hook is not None:
            self._start_hook(self)

    def on_completed(self) -> None:
        self._journal.record("completed", self._module_name)
        if self._completed_hook is not None:
            self._completed_hook(self)


class ServiceImpl:
    """Placeholder service instance."""

    def __init__(self, capability: str, owner: str):
        self.capability = capability
        self.owner = owner

    def __repr__(self) -> str:
        return f"ServiceImpl({self.capability!r}, owner={self.owner!r})"


def capability(name: str) -> CapabilityId[Any]:
    return CapabilityId(f"{name}.service")


def build_boot(
    graph: Dict[str, Sequence[str]],
    journal: Optional[Journal] = None,
) -> Tuple[ModuleCatalog, ApplicationConfiguration, Journal]:
    """
    Catalog and configuration for ``{module: required modules}``.

    Each module gets one provider named ``default`` and one capability
    ``<module>.service`` that the provider registers.
    """
    journal = journal or Journal()
    catalog = ModuleCatalog()
    configuration = ApplicationConfiguration()
    for module_name, required in graph.items():
        catalog.register_module(
            lambda m=module_name: ModuleDefine(m, services=[capability(m)])
        )
        catalog.register_provider(
            lambda m=module_name, r=tuple(required): RecordingProvider(
                m, required=r, services=[capability(m)], journal=journal
            )
        )
        configuration.add_module(module_name)
    return catalog, configuration, journal


class CoreSettings(ModuleConfig):
    rest_port: int = 12800


class H2Settings(ModuleConfig):
    url: str = "jdbc:h2:mem:oap"


def sample_catalog() -> ModuleCatalog:
    """Core plus two storage implementations, as a server distribution would ship."""
    return (
        ModuleCatalog()
        .register_module(lambda: ModuleDefine("core", services=[capability("core")]))
        .register_module(lambda: ModuleDefine("storage", services=[capability("storage")]))
        .register_module(lambda: ModuleDefine("alarm", services=[capability("alarm")]))
        .register_provider(lambda: RecordingProvider("core", services=[capability("core")], config_model=CoreSettings))
        .register_provider(
            lambda: RecordingProvider(
                "storage", name="h2", required=["core"], services=[capability("storage")],
                config_model=H2Settings,
            )
        )
        .register_provider(
            lambda: RecordingProvider(
                "storage", name="elasticsearch", required=["core"], services=[capability("storage")],
            )
        )
        .register_provider(lambda: RecordingProvider("alarm", required=["core"], services=[capability("alarm")]))
    )
