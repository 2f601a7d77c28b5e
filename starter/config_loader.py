"""
OAP Bootstrap - Application Configuration Loader

Reads the YAML application configuration and records every setting of a
selected provider in the booting parameters:

    core:
      selector: default
      default:
        restHost: 0.0.0.0
        restPort: 12800
    storage:
      selector: h2
      h2:
        url: jdbc:h2:mem:skywalking-oap-db
      elasticsearch:
        clusterNodes: localhost:9200
    alarm:
      selector: "-"        # disabled
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Union

import yaml

from module_library.booting import BootingParameters
from module_library.configuration import ApplicationConfiguration
from module_library.errors import ModuleConfigError


class ApplicationConfigLoader:
    """Loads ``ApplicationConfiguration`` from a YAML file."""

    def __init__(self, booting_parameters: BootingParameters):
        self._booting_parameters = booting_parameters
        self._resolved: Dict[str, Any] = {}

    @property
    def resolved_configurations(self) -> Dict[str, Any]:
        """Flattened ``module.provider.key`` settings of the last load."""
        return dict(self._resolved)

    def load(self, path: Union[str, Path]) -> ApplicationConfiguration:
        config_path = Path(path)
        try:
            with config_path.open("r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except FileNotFoundError as e:
            raise ModuleConfigError(
                f"Application configuration {config_path} not found.",
                cause=e,
            ) from e
        except yaml.YAMLError as e:
            raise ModuleConfigError(
                f"Application configuration {config_path} is not valid YAML: {e}",
                cause=e,
            ) from e

        return self.load_mapping(data)

    def load_mapping(self, data: Any) -> ApplicationConfiguration:
        if data is not None and not isinstance(data, dict):
            raise ModuleConfigError(
                f"Application configuration must be a mapping, got {type(data).__name__}."
            )

        configuration = ApplicationConfiguration.from_mapping(data)
        self._resolved = {}
        for module_name, module_configuration in configuration.items():
            selector = module_configuration.effective_selector
            # Without a selector the provider is only known after discovery.
            if selector is None or not module_configuration.has_provider_config(selector):
                continue
            self._record(f"{module_name}.{selector}", module_configuration.settings_for(selector))
        return configuration

    def _record(self, prefix: str, settings: Dict[str, Any]) -> None:
        if not settings:
            self._booting_parameters.add_row(prefix, "")
            self._resolved[prefix] = ""
            return
        for key, value in settings.items():
            label = f"{prefix}.{key}"
            self._booting_parameters.add_row(label, value)
            self._resolved[label] = value
