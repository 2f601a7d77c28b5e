"""
OAP Bootstrap - Test Configuration

Pytest fixtures and configuration for all tests.
"""
from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from module_library import ApplicationConfiguration, ModuleCatalog, ModuleManager
from tests.support import Journal, build_boot


@pytest.fixture
def journal() -> Journal:
    """Shared lifecycle journal."""
    return Journal()


@pytest.fixture
def chain_graph() -> Dict[str, List[str]]:
    """A <- B <- C, declared in reverse order."""
    return {"C": ["B"], "B": ["A"], "A": []}


@pytest.fixture
def diamond_graph() -> Dict[str, List[str]]:
    """D requires B and C, both of which require A."""
    return {"D": ["B", "C"], "B": ["A"], "C": ["A"], "A": []}


@pytest.fixture
def boot(journal):
    """Build and init a manager for a ``{module: required}`` graph."""
    def _boot(graph: Dict[str, Sequence[str]]) -> ModuleManager:
        catalog, configuration, _ = build_boot(graph, journal)
        manager = ModuleManager("Test Server", catalog)
        manager.init(configuration)
        return manager
    return _boot


@pytest.fixture
def empty_catalog() -> ModuleCatalog:
    return ModuleCatalog()


@pytest.fixture
def empty_configuration() -> ApplicationConfiguration:
    return ApplicationConfiguration()


@pytest.fixture
def application_yaml(tmp_path) -> Path:
    """Application configuration with one disabled module."""
    path = tmp_path / "application.yml"
    path.write_text(
        "core:\n"
        "  selector: default\n"
        "  default:\n"
        "    rest_port: 12800\n"
        "storage:\n"
        "  selector: h2\n"
        "  h2:\n"
        "    url: jdbc:h2:mem:oap\n"
        "  elasticsearch:\n"
        "    cluster_nodes: localhost:9200\n"
        "alarm:\n"
        "  selector: \"-\"\n"
        "  default:\n"
        "    rules: alarm-settings.yml\n",
        encoding="utf-8",
    )
    return path


# Markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
    config.addinivalue_line("markers", "property: marks property-based tests using Hypothesis")
