"""
Tests for ModuleCatalog registration and entry point discovery.
"""
from unittest.mock import MagicMock

import pytest

from module_library import (
    MODULE_ENTRY_POINT_GROUP,
    PROVIDER_ENTRY_POINT_GROUP,
    DuplicateModuleError,
    ModuleCatalog,
    ModuleDefine,
)
from tests.support import RecordingProvider


class CoreModule(ModuleDefine):
    def __init__(self):
        super().__init__("core")


class CoreProvider(RecordingProvider):
    def __init__(self):
        super().__init__("core")


def entry_point(name, group, target):
    ep = MagicMock()
    ep.name = name
    ep.group = group
    ep.value = f"tests:{name}"
    ep.load.return_value = target
    return ep


class TestModuleCatalog:
    """Tests for explicit registration."""

    def test_factories_produce_fresh_instances(self):
        catalog = ModuleCatalog().register_module(CoreModule).register_provider(CoreProvider)

        first = catalog.module_definitions()["core"]
        second = catalog.module_definitions()["core"]
        assert first is not second
        assert catalog.providers()[0] is not catalog.providers()[0]

    def test_instances_returned_as_is(self):
        module = ModuleDefine("core")
        catalog = ModuleCatalog(modules=[module])
        assert catalog.module_definitions()["core"] is module

    def test_registration_order(self):
        catalog = (
            ModuleCatalog()
            .register_module(ModuleDefine("storage"))
            .register_module(CoreModule)
            .register_provider(RecordingProvider("storage", name="h2"))
            .register_provider(CoreProvider)
        )

        assert list(catalog.module_definitions()) == ["storage", "core"]
        assert [p.full_name for p in catalog.providers()] == ["storage.h2", "core.default"]
        assert len(catalog) == 4

    def test_duplicate_module_rejected(self):
        catalog = ModuleCatalog(modules=[CoreModule, ModuleDefine("core")])

        with pytest.raises(DuplicateModuleError) as exc_info:
            catalog.module_definitions()

        assert "core" in exc_info.value.message


class TestEntryPointDiscovery:
    """Tests for building a catalog from entry points."""

    def test_loads_groups_sorted_by_name(self):
        entry_points = [
            entry_point("storage", MODULE_ENTRY_POINT_GROUP, lambda: ModuleDefine("storage")),
            entry_point("core", MODULE_ENTRY_POINT_GROUP, CoreModule),
            entry_point("core-default", PROVIDER_ENTRY_POINT_GROUP, CoreProvider),
            entry_point("unrelated", "console_scripts", object),
        ]

        catalog = ModuleCatalog.from_entry_points(entry_points=entry_points)

        assert list(catalog.module_definitions()) == ["core", "storage"]
        assert [p.full_name for p in catalog.providers()] == ["core.default"]
        entry_points[3].load.assert_not_called()

    def test_custom_groups(self):
        entry_points = [
            entry_point("core", "custom.modules", CoreModule),
            entry_point("core", MODULE_ENTRY_POINT_GROUP, ModuleDefine),
        ]

        catalog = ModuleCatalog.from_entry_points(
            module_group="custom.modules",
            provider_group="custom.providers",
            entry_points=entry_points,
        )

        assert list(catalog.module_definitions()) == ["core"]
        assert catalog.providers() == []
        entry_points[1].load.assert_not_called()

    def test_installed_entry_points(self, monkeypatch):
        calls = []

        def fake_entry_points(group):
            calls.append(group)
            return [entry_point("core", group, CoreModule)] if group == MODULE_ENTRY_POINT_GROUP else []

        monkeypatch.setattr("module_library.catalog.metadata.entry_points", fake_entry_points)

        catalog = ModuleCatalog.from_entry_points()

        assert calls == [MODULE_ENTRY_POINT_GROUP, PROVIDER_ENTRY_POINT_GROUP]
        assert list(catalog.module_definitions()) == ["core"]
