"""Tests for the provider registry, plugin discovery, and provider resolution."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from aiq.exceptions import ConfigError, ProviderNotFoundError
from aiq.exit_codes import EXIT_PROVIDER_ERROR
from aiq.models import ProviderConfig
from aiq.providers.gemini import GEMINI_DEFAULT_CONFIG, GeminiProvider
from aiq.providers.registry import (
    ProviderRegistry,
    discover_providers,
    get_registry,
    register_builtin_providers,
    reset_registry,
    resolve_provider,
    set_registry,
)

from conftest import EchoProvider


@pytest.fixture
def registry() -> ProviderRegistry:
    reg = ProviderRegistry()
    reg.register("echo", EchoProvider, "Echo", {"model": "echo-1", "temperature": 0.2})
    return reg


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegister:
    def test_identifiers_are_lowercased(self) -> None:
        reg = ProviderRegistry()
        reg.register("Echo", EchoProvider)
        assert reg.list() == ["echo"]
        assert reg.has("ECHO")
        assert reg.get_class("eCHo") is EchoProvider

    def test_display_name_defaults_to_identifier(self) -> None:
        reg = ProviderRegistry()
        reg.register("echo", EchoProvider)
        metadata = reg.get_metadata("echo")
        assert metadata is not None
        assert metadata.display_name == "echo"

    def test_default_config_carries_name(self, registry: ProviderRegistry) -> None:
        metadata = registry.get_metadata("echo")
        assert metadata is not None
        assert metadata.default_config == {"model": "echo-1", "temperature": 0.2, "name": "echo"}

    def test_reregistration_overwrites_and_warns(
        self, registry: ProviderRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        class OtherProvider(EchoProvider):
            pass

        with caplog.at_level(logging.WARNING, logger="aiq.providers.registry"):
            registry.register("echo", OtherProvider, "Other")

        assert registry.get_class("echo") is OtherProvider
        assert registry.list() == ["echo"]
        assert "already registered. Overwriting." in caplog.text

    def test_list_keeps_registration_order(self) -> None:
        reg = ProviderRegistry()
        for name in ("zeta", "alpha", "mid"):
            reg.register(name, EchoProvider)
        assert reg.list() == ["zeta", "alpha", "mid"]

    def test_clear(self, registry: ProviderRegistry) -> None:
        registry.clear()
        assert registry.list() == []
        assert registry.get_metadata("echo") is None


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestGet:
    def test_defaults_apply_without_overrides(self, registry: ProviderRegistry) -> None:
        provider = registry.get("echo")
        assert isinstance(provider, EchoProvider)
        assert provider.display_name == "Echo"
        assert provider.config.model_extra == {"model": "echo-1", "temperature": 0.2}

    def test_user_config_overrides_defaults(self, registry: ProviderRegistry) -> None:
        provider = registry.get("echo", {"model": "echo-2"})
        assert provider.config.model_extra["model"] == "echo-2"
        assert provider.config.model_extra["temperature"] == 0.2

    def test_name_always_matches_identifier(self, registry: ProviderRegistry) -> None:
        provider = registry.get("ECHO", {"name": "something-else"})
        assert provider.config.name == "echo"
        assert provider.name == "echo"

    def test_accepts_provider_config_model(self, registry: ProviderRegistry) -> None:
        section = ProviderConfig.model_validate({"name": "echo", "model": "echo-3"})
        provider = registry.get("echo", section)
        assert provider.config.model_extra["model"] == "echo-3"

    def test_unknown_identifier_lists_available(self, registry: ProviderRegistry) -> None:
        registry.register("other", EchoProvider)
        with pytest.raises(ProviderNotFoundError) as exc_info:
            registry.get("openai")
        assert exc_info.value.message == (
            'Provider "openai" not found. Available providers: echo, other'
        )
        assert exc_info.value.exit_code == EXIT_PROVIDER_ERROR

    def test_unknown_identifier_on_empty_registry(self) -> None:
        with pytest.raises(ProviderNotFoundError, match="Available providers: none"):
            ProviderRegistry().get("gemini")


# ---------------------------------------------------------------------------
# Built-ins, discovery, and resolution
# ---------------------------------------------------------------------------


class TestBuiltins:
    def test_gemini_registered(self) -> None:
        reg = ProviderRegistry()
        register_builtin_providers(reg)
        assert reg.list() == ["gemini"]
        metadata = reg.get_metadata("gemini")
        assert metadata is not None
        assert metadata.display_name == "Gemini"
        assert metadata.default_config["model"] == GEMINI_DEFAULT_CONFIG["model"]
        assert reg.get_class("gemini") is GeminiProvider


class TestDiscover:
    @staticmethod
    def _entry_point(name: str, register: Any) -> MagicMock:
        ep = MagicMock()
        ep.name = name
        ep.load.return_value = register
        return ep

    def test_loads_entry_points(self, registry: ProviderRegistry) -> None:
        def _register(reg: ProviderRegistry) -> None:
            reg.register("local", EchoProvider, "Local")

        eps = [self._entry_point("local", _register)]
        with patch("aiq.providers.registry.importlib.metadata.entry_points", return_value=eps):
            loaded = discover_providers(registry)

        assert loaded == ["local"]
        assert registry.list() == ["echo", "local"]

    def test_disabled_entry_points_are_skipped(self, registry: ProviderRegistry) -> None:
        register = MagicMock()
        eps = [self._entry_point("local", register)]
        with patch("aiq.providers.registry.importlib.metadata.entry_points", return_value=eps):
            loaded = discover_providers(registry, disabled=["local"])

        assert loaded == []
        register.assert_not_called()

    def test_broken_plugin_is_logged_and_skipped(
        self, registry: ProviderRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        broken = self._entry_point("broken", None)
        broken.load.side_effect = ImportError("no module named aiq_broken")
        good = self._entry_point("good", lambda reg: reg.register("good", EchoProvider))

        with patch(
            "aiq.providers.registry.importlib.metadata.entry_points",
            return_value=[broken, good],
        ), caplog.at_level(logging.WARNING, logger="aiq.providers.registry"):
            loaded = discover_providers(registry)

        assert loaded == ["good"]
        assert "Failed to load provider plugin 'broken'" in caplog.text


class TestResolveProvider:
    def test_resolves_and_validates(self, registry: ProviderRegistry) -> None:
        provider = resolve_provider(ProviderConfig(name="echo"), registry)
        assert isinstance(provider, EchoProvider)

    def test_uses_process_registry_by_default(self, registry: ProviderRegistry) -> None:
        set_registry(registry)
        assert get_registry() is registry
        assert resolve_provider(ProviderConfig(name="echo")).name == "echo"

    def test_backend_config_errors_propagate(self) -> None:
        reg = ProviderRegistry()
        register_builtin_providers(reg)
        with pytest.raises(ConfigError, match="Gemini API key not configured"):
            resolve_provider(ProviderConfig(name="gemini"), reg)

    def test_reset_registry_creates_fresh_instance(self, registry: ProviderRegistry) -> None:
        set_registry(registry)
        reset_registry()
        assert get_registry() is not registry
        assert get_registry().list() == []
