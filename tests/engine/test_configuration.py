"""
Tests for application and module configuration.
"""
import pytest

from module_library import ApplicationConfiguration, ModuleConfigError, ModuleConfiguration


class TestModuleConfiguration:
    """Tests for per-module provider selection data."""

    def test_explicit_selector(self):
        configuration = ModuleConfiguration(selector="h2", providers={"h2": {}, "mysql": {}})
        assert configuration.effective_selector == "h2"

    def test_single_section_selects_itself(self):
        configuration = ModuleConfiguration(providers={"h2": {"url": "x"}})
        assert configuration.effective_selector == "h2"

    def test_no_selector_with_many_sections(self):
        configuration = ModuleConfiguration(providers={"h2": {}, "mysql": {}})
        assert configuration.effective_selector is None

    def test_settings_for_returns_copy(self):
        configuration = ModuleConfiguration().add_provider("h2", {"url": "x"})

        settings = configuration.settings_for("h2")
        settings["url"] = "changed"

        assert configuration.settings_for("h2") == {"url": "x"}
        assert configuration.settings_for("mysql") == {}
        assert configuration.has_provider_config("h2")
        assert not configuration.has_provider_config("mysql")

    def test_from_mapping(self):
        configuration = ModuleConfiguration.from_mapping(
            "storage",
            {"selector": "h2", "h2": {"url": "x"}, "elasticsearch": None},
        )

        assert configuration.selector == "h2"
        assert configuration.providers == {"h2": {"url": "x"}, "elasticsearch": {}}

    def test_from_mapping_none(self):
        configuration = ModuleConfiguration.from_mapping("core", None)
        assert configuration.providers == {}
        assert configuration.effective_selector is None

    def test_from_mapping_rejects_scalar_module(self):
        with pytest.raises(ModuleConfigError) as exc_info:
            ModuleConfiguration.from_mapping("core", "default")
        assert exc_info.value.config_key == "core"

    def test_from_mapping_rejects_scalar_provider(self):
        with pytest.raises(ModuleConfigError) as exc_info:
            ModuleConfiguration.from_mapping("core", {"default": 12800})
        assert exc_info.value.config_key == "core.default"

    def test_disabled_selector(self):
        assert ModuleConfiguration(selector="-").is_disabled


class TestApplicationConfiguration:
    """Tests for the ordered module map."""

    def test_module_order_preserved(self):
        configuration = ApplicationConfiguration()
        configuration.add_module("storage")
        configuration.add_module("core")

        assert configuration.module_list() == ["storage", "core"]
        assert len(configuration) == 2
        assert "core" in configuration

    def test_add_module_returns_configuration(self):
        configuration = ApplicationConfiguration()
        module = configuration.add_module("core")
        module.add_provider("default", {"port": 1})

        assert configuration.get_module_configuration("core").settings_for("default") == {"port": 1}

    def test_missing_module_configuration(self):
        with pytest.raises(ModuleConfigError):
            ApplicationConfiguration().get_module_configuration("core")

    def test_from_mapping_skips_disabled_modules(self):
        configuration = ApplicationConfiguration.from_mapping({
            "core": {"default": {}},
            "alarm": {"selector": "-", "default": {}},
            "storage": {"selector": "h2", "h2": {}},
        })

        assert configuration.module_list() == ["core", "storage"]
        assert not configuration.has("alarm")

    def test_from_mapping_empty(self):
        assert len(ApplicationConfiguration.from_mapping(None)) == 0
