"""Tests for the provider registry module."""

import tempfile
import threading
from pathlib import Path

import pytest
import yaml

from cinefeed.core.enums import ContentType, LanguageType, MatchType, ProviderStatus
from cinefeed.ingestion.providers.base import ContentDetails, ProviderDescriptor, ScrapedItem
from cinefeed.ingestion.providers.static import StaticProvider
from cinefeed.ingestion.registry import (
    GlobalConfig,
    PipelineConfig,
    ProviderConfig,
    ProviderRegistry,
    RateLimitConfig,
    RegistrationError,
    validate_provider,
)


class FakeProvider:
    """Minimal duck-typed provider."""

    def __init__(
        self,
        id: str,
        base_url: str = "",
        supports: frozenset = frozenset({ContentType.MOVIE}),
        languages: frozenset = frozenset({LanguageType.TAMIL}),
    ) -> None:
        self.id = id
        self.name = id.title()
        self.base_url = base_url
        self.supports = supports
        self.languages = languages

    async def search(self, query: str) -> list[ScrapedItem]:
        return []

    async def get_latest(self) -> list[ScrapedItem]:
        return []

    async def scrape_details(self, url: str) -> ContentDetails | None:
        return None


class NoSearchProvider:
    """Provider missing the search operation."""

    id = "nosearch"
    name = "No Search"
    supports = frozenset({ContentType.MOVIE})
    languages = frozenset({LanguageType.TAMIL})

    async def get_latest(self) -> list[ScrapedItem]:
        return []

    async def scrape_details(self, url: str) -> ContentDetails | None:
        return None


def _write_config(data: dict) -> Path:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(data, f)
        return Path(f.name)


class TestConfigDataclasses:
    """Tests for the configuration dataclasses."""

    def test_rate_limit_defaults(self) -> None:
        """Test default rate limit values."""
        config = RateLimitConfig.from_dict(None)
        assert config.requests_per_second == 1.0
        assert config.burst_limit == 5

    def test_global_defaults(self) -> None:
        """Test global defaults."""
        config = GlobalConfig.from_dict({})
        assert config.degraded_threshold == 5
        assert config.fanout_include_degraded is True
        assert config.url_hints == {}

    def test_pipeline_from_dict(self) -> None:
        """Test pipeline settings are parsed."""
        config = PipelineConfig.from_dict(
            {"concurrency": 3, "limit": 10, "gate_matches": True, "match_type": "year"}
        )
        assert config.concurrency == 3
        assert config.limit == 10
        assert config.gate_matches is True
        assert config.match_type == MatchType.YEAR
        assert config.primary_locale == "en-US"
        assert config.secondary_locale == "ta"
        assert config.placeholder_markers == ["folder"]

    def test_provider_config_descriptor(self) -> None:
        """Test a provider entry becomes a descriptor."""
        config = ProviderConfig.from_dict(
            {
                "id": "moviesda",
                "adapter": "static",
                "supports": ["movie", "webseries"],
                "languages": ["tamil"],
                "priority": 2,
            }
        )
        descriptor = config.to_descriptor()
        assert descriptor.name == "moviesda"
        assert descriptor.supports == frozenset({ContentType.MOVIE, ContentType.WEBSERIES})
        assert descriptor.languages == frozenset({LanguageType.TAMIL})
        assert descriptor.priority == 2
        assert descriptor.enabled is True


class TestValidateProvider:
    """Tests for validate_provider."""

    def test_valid(self) -> None:
        """Test a complete provider passes."""
        validate_provider(FakeProvider("a"))

    def test_missing_operation(self) -> None:
        """Test a missing operation is reported."""
        with pytest.raises(RegistrationError) as exc_info:
            validate_provider(NoSearchProvider())
        assert exc_info.value.missing == ["search"]

    def test_empty_capabilities(self) -> None:
        """Test empty kind and language sets are reported."""
        with pytest.raises(RegistrationError) as exc_info:
            validate_provider(FakeProvider("a", supports=frozenset(), languages=frozenset()))
        assert len(exc_info.value.missing) == 2


class TestRegistration:
    """Tests for provider registration."""

    def test_register_valid(self) -> None:
        """Test a valid provider starts Active with no errors."""
        registry = ProviderRegistry()
        assert registry.register(FakeProvider("a")) is True

        health = registry.get_health("a")
        assert health.status == ProviderStatus.ACTIVE
        assert health.error_count == 0
        assert registry.get_provider("a") is not None

    def test_register_invalid_does_not_raise(self) -> None:
        """Test an invalid provider is excluded and marked Disabled."""
        registry = ProviderRegistry()
        assert registry.register(NoSearchProvider()) is False
        assert registry.register(FakeProvider("b")) is True

        assert registry.get_provider("nosearch") is None
        health = registry.get_health("nosearch")
        assert health.status == ProviderStatus.DISABLED
        assert "search" in health.reason
        assert [p.id for p in registry.get_active_providers()] == ["b"]

    def test_duplicate_id_ignored(self) -> None:
        """Test a second provider with the same id is not registered."""
        registry = ProviderRegistry()
        first = FakeProvider("a")
        registry.register(first)
        assert registry.register(FakeProvider("a")) is False
        assert registry.get_provider("a") is first

    def test_from_config(self) -> None:
        """Test loading providers from YAML."""
        config_path = _write_config(
            {
                "global": {"degraded_threshold": 3},
                "pipeline": {"concurrency": 2},
                "providers": [
                    {
                        "id": "moviesda",
                        "adapter": "static",
                        "base_url": "https://moviesda.example",
                        "supports": ["movie"],
                        "languages": ["tamil"],
                    },
                    {
                        "id": "isaidub",
                        "adapter": "static",
                        "supports": ["movie"],
                        "languages": ["tamil_dubbed"],
                        "enabled": False,
                    },
                    {
                        "id": "mystery",
                        "adapter": "nonexistent",
                        "supports": ["movie"],
                        "languages": ["tamil"],
                    },
                    {
                        "id": "empty",
                        "adapter": "static",
                        "supports": [],
                        "languages": ["tamil"],
                    },
                ],
            }
        )

        try:
            registry = ProviderRegistry.from_config(config_path)

            assert registry.global_config.degraded_threshold == 3
            assert registry.pipeline_config.concurrency == 2
            assert [p.id for p in registry.get_providers()] == ["moviesda", "isaidub"]
            assert [p.id for p in registry.get_active_providers()] == ["moviesda"]
            assert registry.get_status("isaidub") == ProviderStatus.DISABLED
            assert registry.get_status("mystery") == ProviderStatus.DISABLED
            assert "nonexistent" in registry.get_health("mystery").reason
            assert registry.get_status("empty") == ProviderStatus.DISABLED
        finally:
            config_path.unlink()

    def test_from_config_missing_file(self) -> None:
        """Test a missing configuration file raises."""
        with pytest.raises(FileNotFoundError):
            ProviderRegistry.from_config("/nonexistent/providers.yaml")

    def test_registries_are_isolated(self) -> None:
        """Test two registries share no state."""
        first = ProviderRegistry()
        second = ProviderRegistry()
        first.register(FakeProvider("a"))
        assert second.get_providers() == []


class TestQueries:
    """Tests for provider queries."""

    @pytest.fixture
    def registry(self) -> ProviderRegistry:
        registry = ProviderRegistry()
        registry.register(FakeProvider("a", supports=frozenset({ContentType.MOVIE})))
        registry.register(
            FakeProvider(
                "b",
                supports=frozenset({ContentType.SERIES, ContentType.WEBSERIES}),
                languages=frozenset({LanguageType.TAMIL_DUBBED}),
            )
        )
        registry.register(FakeProvider("c"))
        return registry

    def test_active_in_registration_order(self, registry: ProviderRegistry) -> None:
        """Test active providers keep registration order."""
        assert [p.id for p in registry.get_active_providers()] == ["a", "b", "c"]

    def test_by_kind(self, registry: ProviderRegistry) -> None:
        """Test filtering by supported content kind."""
        assert [p.id for p in registry.get_providers_by_kind(ContentType.WEBSERIES)] == ["b"]

    def test_by_language(self, registry: ProviderRegistry) -> None:
        """Test filtering by supported language."""
        assert [p.id for p in registry.get_providers_by_language(LanguageType.TAMIL)] == ["a", "c"]

    def test_queryable_includes_degraded(self, registry: ProviderRegistry) -> None:
        """Test degraded providers stay queryable, disabled ones do not."""
        for _ in range(5):
            registry.record_provider_error("a", "boom")
        registry.disable_provider("c", "maintenance")

        assert [p.id for p in registry.get_active_providers()] == ["b"]
        assert [p.id for p in registry.get_queryable_providers()] == ["a", "b"]

    def test_queryable_without_degraded(self) -> None:
        """Test the fan-out can be limited to Active providers."""
        registry = ProviderRegistry(GlobalConfig(fanout_include_degraded=False))
        registry.register(FakeProvider("a"))
        for _ in range(5):
            registry.record_provider_error("a", "boom")
        assert registry.get_queryable_providers() == []

    def test_health_snapshot(self, registry: ProviderRegistry) -> None:
        """Test the health snapshot includes metadata and registration failures."""
        registry.register(NoSearchProvider())
        snapshot = registry.get_providers_health()

        assert snapshot["b"]["supports"] == ["series", "webseries"]
        assert snapshot["a"]["status"] == "active"
        assert snapshot["nosearch"]["status"] == "disabled"


class TestHealthTransitions:
    """Tests for error counting and status transitions."""

    def test_degrades_at_threshold(self) -> None:
        """Test Degraded is reached exactly on the fifth consecutive error."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))

        for expected in range(1, 5):
            registry.record_provider_error("a", RuntimeError("boom"))
            health = registry.get_health("a")
            assert health.error_count == expected
            assert health.status == ProviderStatus.ACTIVE

        registry.record_provider_error("a", RuntimeError("boom"))
        health = registry.get_health("a")
        assert health.error_count == 5
        assert health.status == ProviderStatus.DEGRADED
        assert health.last_error == "boom"

    def test_success_recovers(self) -> None:
        """Test a success clears the counter and recovers Degraded providers."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))
        for _ in range(6):
            registry.record_provider_error("a", "boom")

        registry.reset_provider_errors("a")
        health = registry.get_health("a")
        assert health.status == ProviderStatus.ACTIVE
        assert health.error_count == 0

    def test_errors_never_disable(self) -> None:
        """Test errors alone never move a provider to Disabled."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))
        for _ in range(50):
            registry.record_provider_error("a", "boom")
        assert registry.get_status("a") == ProviderStatus.DEGRADED

    def test_disabled_stays_disabled(self) -> None:
        """Test errors and successes do not re-enable a disabled provider."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))
        registry.disable_provider("a", "maintenance")

        registry.record_provider_error("a", "boom")
        registry.reset_provider_errors("a")

        health = registry.get_health("a")
        assert health.status == ProviderStatus.DISABLED
        assert health.reason == "maintenance"

    def test_enable_resets(self) -> None:
        """Test manual enable clears errors and reason."""
        registry = ProviderRegistry()
        registry.register(FakeProvider("a"))
        for _ in range(3):
            registry.record_provider_error("a", "boom")
        registry.disable_provider("a", "maintenance")

        assert registry.enable_provider("a") is True
        health = registry.get_health("a")
        assert health.status == ProviderStatus.ACTIVE
        assert health.error_count == 0
        assert health.reason is None

    def test_enable_unknown_or_invalid(self) -> None:
        """Test enabling unknown or invalid providers fails."""
        registry = ProviderRegistry()
        registry.register(NoSearchProvider())
        assert registry.enable_provider("missing") is False
        assert registry.enable_provider("nosearch") is False
        assert registry.get_status("nosearch") == ProviderStatus.DISABLED

    def test_enabled_flag_holds_until_enabled(self) -> None:
        """Test providers registered with enabled false are held until enabled."""
        descriptor = ProviderDescriptor(
            id="off",
            name="Off",
            supports=frozenset({ContentType.MOVIE}),
            languages=frozenset({LanguageType.TAMIL}),
            enabled=False,
        )
        registry = ProviderRegistry()
        registry.register(StaticProvider(descriptor))
        registry.register(FakeProvider("on"))

        assert registry.is_enabled_in_config("off") is False
        assert registry.is_enabled_in_config("on") is True
        assert registry.is_enabled_in_config("missing") is False

        registry.enable_provider("off")
        assert registry.is_enabled_in_config("off") is True

    def test_custom_threshold(self) -> None:
        """Test the threshold comes from the global config."""
        registry = ProviderRegistry(GlobalConfig(degraded_threshold=2))
        registry.register(FakeProvider("a"))
        registry.record_provider_error("a", "boom")
        registry.record_provider_error("a", "boom")
        assert registry.get_status("a") == ProviderStatus.DEGRADED

    def test_concurrent_errors_are_not_lost(self) -> None:
        """Test error increments from several threads all count."""
        registry = ProviderRegistry(GlobalConfig(degraded_threshold=10_000))
        registry.register(FakeProvider("a"))

        def worker() -> None:
            for _ in range(200):
                registry.record_provider_error("a", "boom")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert registry.get_health("a").error_count == 1600


class TestDetectProviderFromUrl:
    """Tests for URL to provider resolution."""

    @pytest.fixture
    def registry(self) -> ProviderRegistry:
        registry = ProviderRegistry(GlobalConfig(url_hints={"tamilyogi": "yogi"}))
        registry.register(FakeProvider("broken", base_url="http://[::1"))
        registry.register(FakeProvider("alpha", base_url="https://alpha-movies.example"))
        registry.register(FakeProvider("beta"))
        return registry

    def test_host_match(self, registry: ProviderRegistry) -> None:
        """Test the base URL host decides first."""
        assert registry.detect_provider_from_url("https://alpha-movies.example/leo") == "alpha"

    def test_id_substring(self, registry: ProviderRegistry) -> None:
        """Test the provider id as a URL substring."""
        assert registry.detect_provider_from_url("https://beta.example/leo") == "beta"

    def test_known_site_hints(self, registry: ProviderRegistry) -> None:
        """Test built-in and configured hints."""
        assert registry.detect_provider_from_url("https://www.moviesda12.com/x") == "moviesda"
        assert registry.detect_provider_from_url("https://tamilyogi.example/x") == "yogi"

    def test_unresolved(self, registry: ProviderRegistry) -> None:
        """Test unknown URLs give None."""
        assert registry.detect_provider_from_url("https://unknown.example/x") is None
