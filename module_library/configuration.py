"""
OAP Module Library - Application Configuration

The parsed configuration consumed by ``ModuleManager.init``. Module order is
meaningful: it is the order in which modules are prepared and the tie-break
order of the startup sequence.

Shape accepted by ``ApplicationConfiguration.from_mapping``:

    {
        "core": {"selector": "default", "default": {"rest_port": 12800}},
        "storage": {"selector": "h2", "h2": {...}, "elasticsearch": {...}},
        "receiver-trace": {"default": None},
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from module_library.errors import ModuleConfigError

SELECTOR_KEY = "selector"
DISABLED_SELECTOR = "-"


@dataclass
class ModuleConfiguration:
    """Provider selection and per-provider settings of one module."""

    selector: Optional[str] = None
    providers: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def effective_selector(self) -> Optional[str]:
        """
        The provider name this configuration selects.

        An explicit selector wins; otherwise a single provider section selects
        itself. Returns None when the choice is left to discovery.
        """
        if self.selector:
            return self.selector
        if len(self.providers) == 1:
            return next(iter(self.providers))
        return None

    @property
    def is_disabled(self) -> bool:
        return self.selector == DISABLED_SELECTOR

    def settings_for(self, provider_name: str) -> Dict[str, Any]:
        """Settings of ``provider_name``; empty when the section is absent."""
        return dict(self.providers.get(provider_name) or {})

    def has_provider_config(self, provider_name: str) -> bool:
        return provider_name in self.providers

    def add_provider(self, provider_name: str, settings: Optional[Mapping[str, Any]] = None) -> "ModuleConfiguration":
        self.providers[provider_name] = dict(settings or {})
        return self

    @classmethod
    def from_mapping(cls, module_name: str, data: Optional[Mapping[str, Any]]) -> "ModuleConfiguration":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ModuleConfigError(
                f"Configuration of module {module_name} must be a mapping, "
                f"got {type(data).__name__}.",
                config_key=module_name,
            )

        selector: Optional[str] = None
        providers: Dict[str, Dict[str, Any]] = {}
        for key, value in data.items():
            if key == SELECTOR_KEY:
                selector = None if value is None else str(value)
                continue
            if value is not None and not isinstance(value, Mapping):
                raise ModuleConfigError(
                    f"Provider section {module_name}.{key} must be a mapping, "
                    f"got {type(value).__name__}.",
                    config_key=f"{module_name}.{key}",
                )
            providers[str(key)] = dict(value or {})
        return cls(selector=selector, providers=providers)


class ApplicationConfiguration:
    """Ordered mapping of module name to ``ModuleConfiguration``."""

    def __init__(self) -> None:
        self._modules: Dict[str, ModuleConfiguration] = {}

    def add_module(self, module_name: str, configuration: Optional[ModuleConfiguration] = None) -> ModuleConfiguration:
        """Select a module; returns its configuration for fluent population."""
        configuration = configuration or ModuleConfiguration()
        self._modules[module_name] = configuration
        return configuration

    def has(self, module_name: str) -> bool:
        return module_name in self._modules

    def get_module_configuration(self, module_name: str) -> ModuleConfiguration:
        try:
            return self._modules[module_name]
        except KeyError:
            raise ModuleConfigError(
                f"Module {module_name} is not configured.",
                config_key=module_name,
            ) from None

    def module_list(self) -> List[str]:
        """Selected module names in configuration order."""
        return list(self._modules)

    def items(self) -> Iterator[tuple]:
        return iter(list(self._modules.items()))

    def __contains__(self, module_name: object) -> bool:
        return module_name in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ApplicationConfiguration":
        """Build from a parsed mapping; modules selected with ``-`` are skipped."""
        configuration = cls()
        for module_name, module_data in (data or {}).items():
            module_configuration = ModuleConfiguration.from_mapping(str(module_name), module_data)
            if module_configuration.is_disabled:
                continue
            configuration.add_module(str(module_name), module_configuration)
        return configuration
