"""
Provider Registry Module
========================

Holds the fleet of content providers and their runtime health.
Providers are declared in a YAML file and built through the provider
class registry; each registered provider gets a health record that the
aggregator updates on every call outcome.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from cinefeed.core.enums import ContentType, LanguageType, MatchType, ProviderStatus
from cinefeed.ingestion.providers import create_provider
from cinefeed.ingestion.providers.base import ProviderDescriptor

logger = logging.getLogger(__name__)

DEFAULT_DEGRADED_THRESHOLD = 5

REQUIRED_ATTRIBUTES: tuple[str, ...] = ("id", "name", "supports", "languages")
REQUIRED_OPERATIONS: tuple[str, ...] = ("search", "get_latest", "scrape_details")

# URL substring -> provider id, used when neither host nor id resolve a URL
KNOWN_SITE_HINTS: dict[str, str] = {
    "moviesda": "moviesda",
    "isaidub": "isaidub",
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RegistrationError(Exception):
    """A provider is missing a required capability."""

    def __init__(self, provider_id: str, missing: list[str]) -> None:
        self.provider_id = provider_id
        self.missing = missing
        super().__init__(f"Provider '{provider_id}' is missing: {', '.join(missing)}")


@dataclass
class RateLimitConfig:
    """Rate limiting configuration for a provider."""

    requests_per_second: float = 1.0
    burst_limit: int = 5

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RateLimitConfig:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        return cls(
            requests_per_second=float(data.get("requests_per_second", 1.0)),
            burst_limit=int(data.get("burst_limit", 5)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "requests_per_second": self.requests_per_second,
            "burst_limit": self.burst_limit,
        }


@dataclass
class GlobalConfig:
    """Global configuration settings."""

    default_rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    user_agent: str = "Cinefeed/0.1"
    request_timeout: int = 10
    max_retries: int = 3
    degraded_threshold: int = DEFAULT_DEGRADED_THRESHOLD
    fanout_include_degraded: bool = True
    url_hints: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            default_rate_limit=RateLimitConfig.from_dict(data.get("default_rate_limit")),
            user_agent=data.get("user_agent", "Cinefeed/0.1"),
            request_timeout=int(data.get("request_timeout", 10)),
            max_retries=int(data.get("max_retries", 3)),
            degraded_threshold=int(data.get("degraded_threshold", DEFAULT_DEGRADED_THRESHOLD)),
            fanout_include_degraded=bool(data.get("fanout_include_degraded", True)),
            url_hints=dict(data.get("url_hints", {})),
        )


@dataclass
class PipelineConfig:
    """Content pipeline settings."""

    concurrency: int = 5
    limit: int = 100
    primary_locale: str = "en-US"
    secondary_locale: str = "ta"
    progress_every: int = 20
    gate_matches: bool = False
    match_type: MatchType = MatchType.FUZZY
    placeholder_markers: list[str] = field(default_factory=lambda: ["folder"])

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PipelineConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            concurrency=int(data.get("concurrency", 5)),
            limit=int(data.get("limit", 100)),
            primary_locale=data.get("primary_locale", "en-US"),
            secondary_locale=data.get("secondary_locale", "ta"),
            progress_every=int(data.get("progress_every", 20)),
            gate_matches=bool(data.get("gate_matches", False)),
            match_type=MatchType(data.get("match_type", MatchType.FUZZY.value)),
            placeholder_markers=list(data.get("placeholder_markers", ["folder"])),
        )


@dataclass
class ProviderConfig:
    """Configuration entry for a single provider."""

    id: str
    adapter: str
    name: str = ""
    base_url: str = ""
    supports: list[str] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)
    priority: int = 100
    enabled: bool = True
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    custom_config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], default_rate_limit: RateLimitConfig | None = None
    ) -> ProviderConfig:
        """Create from dictionary."""
        rate_limit_data = data.get("rate_limit")
        if rate_limit_data:
            rate_limit = RateLimitConfig.from_dict(rate_limit_data)
        elif default_rate_limit:
            rate_limit = default_rate_limit
        else:
            rate_limit = RateLimitConfig()

        return cls(
            id=data["id"],
            adapter=data["adapter"],
            name=data.get("name", data["id"]),
            base_url=data.get("base_url", ""),
            supports=list(data.get("supports", [])),
            languages=list(data.get("languages", [])),
            priority=int(data.get("priority", 100)),
            enabled=data.get("enabled", True),
            rate_limit=rate_limit,
            custom_config=data.get("custom_config", {}),
        )

    def to_descriptor(self) -> ProviderDescriptor:
        """Build the immutable descriptor for this entry."""
        return ProviderDescriptor(
            id=self.id,
            name=self.name or self.id,
            supports=frozenset(ContentType(s) for s in self.supports),
            languages=frozenset(LanguageType(lang) for lang in self.languages),
            base_url=self.base_url,
            priority=self.priority,
            enabled=self.enabled,
        )


@dataclass
class ProviderHealth:
    """Mutable runtime state of one provider."""

    status: ProviderStatus = ProviderStatus.ACTIVE
    error_count: int = 0
    last_error: str | None = None
    last_error_time: datetime | None = None
    last_checked: datetime = field(default_factory=_utc_now)
    reason: str | None = None

    # Serializes mutations when aggregate operations run on several threads
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value,
            "error_count": self.error_count,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "last_checked": self.last_checked.isoformat(),
            "reason": self.reason,
        }


def validate_provider(provider: Any) -> None:
    """
    Check that a provider exposes every required capability.

    Raises:
        RegistrationError: Listing each missing or empty capability
    """
    missing: list[str] = []

    for attr in REQUIRED_ATTRIBUTES:
        if not hasattr(provider, attr):
            missing.append(attr)

    for operation in REQUIRED_OPERATIONS:
        if not callable(getattr(provider, operation, None)):
            missing.append(operation)

    if "supports" not in missing and not getattr(provider, "supports"):
        missing.append("supports (at least one content type)")
    if "languages" not in missing and not getattr(provider, "languages"):
        missing.append("languages (at least one language)")

    if missing:
        raise RegistrationError(str(getattr(provider, "id", provider)), missing)


def default_config_path() -> Path:
    """
    Path of the providers configuration file.

    Uses CINEFEED_CONFIG_PATH, falling back to config/providers.yaml at
    the project root.
    """
    config_path = os.environ.get("CINEFEED_CONFIG_PATH")
    if config_path:
        return Path(config_path)
    return Path(__file__).parent.parent.parent / "config" / "providers.yaml"


class ProviderRegistry:
    """
    Registry of content providers and their health.

    Construct one per process (or per test) and pass it to whatever needs
    provider access. Registration of a bad provider never raises: the
    provider is kept as Disabled with the failure reason recorded.
    """

    def __init__(
        self,
        global_config: GlobalConfig | None = None,
        pipeline_config: PipelineConfig | None = None,
    ) -> None:
        self._global_config = global_config or GlobalConfig()
        self._pipeline_config = pipeline_config or PipelineConfig()
        self._providers: dict[str, Any] = {}
        self._invalid: set[str] = set()
        # Disabled by the enabled flag; only enable_provider lifts this
        self._held: set[str] = set()
        self._health: dict[str, ProviderHealth] = {}

    @property
    def global_config(self) -> GlobalConfig:
        """Get global configuration."""
        return self._global_config

    @property
    def pipeline_config(self) -> PipelineConfig:
        """Get pipeline configuration."""
        return self._pipeline_config

    @classmethod
    def from_config(cls, config_path: Path | str | None = None) -> ProviderRegistry:
        """
        Build a registry from a YAML configuration file.

        Args:
            config_path: Path to providers.yaml, or None for the default
        """
        registry = cls()
        registry.load_config(config_path or default_config_path())
        return registry

    def load_config(self, config_path: Path | str) -> int:
        """
        Load configuration and register every provider it declares.

        Args:
            config_path: Path to the providers.yaml file

        Returns:
            Number of providers registered successfully
        """
        config_path = Path(config_path).expanduser().resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        self._global_config = GlobalConfig.from_dict(data.get("global"))
        self._pipeline_config = PipelineConfig.from_dict(data.get("pipeline"))

        entries = data.get("providers", [])
        logger.info(f"Initializing {len(entries)} providers from {config_path}")

        registered = 0
        for entry in entries:
            if self._register_entry(entry):
                registered += 1

        logger.info(f"Initialized {registered}/{len(entries)} providers")
        return registered

    def _register_entry(self, entry: dict[str, Any]) -> bool:
        """Build and register one provider entry of the configuration file."""
        provider_id = str(entry.get("id", "<unnamed>"))
        try:
            config = ProviderConfig.from_dict(entry, self._global_config.default_rate_limit)
            descriptor = config.to_descriptor()
        except (KeyError, ValueError) as e:
            self._record_registration_failure(provider_id, f"invalid configuration: {e}")
            return False

        custom_config = {
            "user_agent": self._global_config.user_agent,
            "request_timeout": self._global_config.request_timeout,
            "max_retries": self._global_config.max_retries,
            "rate_limit": config.rate_limit.to_dict(),
            **config.custom_config,
        }

        try:
            provider = create_provider(config.adapter, descriptor, custom_config)
        except (TypeError, ValueError) as e:
            # Abstract provider classes and bad provider settings fail here
            self._record_registration_failure(descriptor.id, str(e))
            return False

        if provider is None:
            self._record_registration_failure(
                descriptor.id, f"unknown provider class '{config.adapter}'"
            )
            return False

        return self.register(provider)

    def _record_registration_failure(self, provider_id: str, reason: str) -> None:
        logger.warning(f"Provider {provider_id} failed registration: {reason}")
        self._invalid.add(provider_id)
        self._health[provider_id] = ProviderHealth(
            status=ProviderStatus.DISABLED,
            reason=reason,
        )

    def register(self, provider: Any) -> bool:
        """
        Register a provider after validating its capabilities.

        Args:
            provider: Object implementing the provider contract

        Returns:
            True if the provider was registered, False if it was excluded
        """
        provider_id = str(getattr(provider, "id", None) or repr(provider))

        if provider_id in self._providers:
            logger.warning(f"Provider {provider_id} already registered, ignoring duplicate")
            return False

        try:
            validate_provider(provider)
        except RegistrationError as e:
            self._record_registration_failure(provider_id, str(e))
            return False

        self._providers[provider_id] = provider
        self._invalid.discard(provider_id)

        descriptor = getattr(provider, "descriptor", None)
        if descriptor is not None and not descriptor.enabled:
            self._health[provider_id] = ProviderHealth(
                status=ProviderStatus.DISABLED,
                reason="disabled in configuration",
            )
            self._held.add(provider_id)
            logger.info(f"Provider {provider.name} ({provider_id}) registered but disabled")
        else:
            self._health[provider_id] = ProviderHealth()
            logger.info(f"Provider {provider.name} ({provider_id}) ready")

        return True

    # Provider access

    def get_providers(self) -> list[Any]:
        """Get all successfully registered providers in registration order."""
        return list(self._providers.values())

    def get_provider(self, provider_id: str) -> Any | None:
        """Get a registered provider by id."""
        return self._providers.get(provider_id)

    def get_status(self, provider_id: str) -> ProviderStatus | None:
        health = self._health.get(provider_id)
        return health.status if health else None

    def get_active_providers(self) -> list[Any]:
        """Get providers whose status is Active, in registration order."""
        return [
            p for pid, p in self._providers.items()
            if self._health[pid].status == ProviderStatus.ACTIVE
        ]

    def get_queryable_providers(self) -> list[Any]:
        """
        Get providers that aggregate operations fan out to.

        Disabled providers are always excluded. Degraded providers are
        included unless the fanout_include_degraded setting is off.
        """
        allowed = {ProviderStatus.ACTIVE}
        if self._global_config.fanout_include_degraded:
            allowed.add(ProviderStatus.DEGRADED)
        return [p for pid, p in self._providers.items() if self._health[pid].status in allowed]

    def get_providers_by_kind(self, content_type: ContentType) -> list[Any]:
        """Get active providers supporting a content kind."""
        return [p for p in self.get_active_providers() if content_type in p.supports]

    def get_providers_by_language(self, language: LanguageType) -> list[Any]:
        """Get active providers supporting a language variant."""
        return [p for p in self.get_active_providers() if language in p.languages]

    # Health control

    def get_health(self, provider_id: str) -> ProviderHealth | None:
        """Get the health record of a provider."""
        return self._health.get(provider_id)

    def enable_provider(self, provider_id: str) -> bool:
        """
        Enable a provider and clear its error counter.

        Returns:
            True if the provider was found and enabled
        """
        health = self._health.get(provider_id)
        if health is None or provider_id in self._invalid:
            return False
        with health.lock:
            health.status = ProviderStatus.ACTIVE
            health.error_count = 0
            health.reason = None
            health.last_checked = _utc_now()
        self._held.discard(provider_id)
        logger.info(f"Provider {provider_id} enabled")
        return True

    def is_enabled_in_config(self, provider_id: str) -> bool:
        """
        Check whether a provider may be switched on by health checks.

        False for providers registered with ``enabled: false`` until
        enable_provider is called for them.
        """
        return provider_id in self._providers and provider_id not in self._held

    def disable_provider(self, provider_id: str, reason: str = "manual") -> bool:
        """
        Disable a provider.

        Returns:
            True if the provider was found and disabled
        """
        health = self._health.get(provider_id)
        if health is None:
            return False
        with health.lock:
            health.status = ProviderStatus.DISABLED
            health.reason = reason
            health.last_checked = _utc_now()
        logger.warning(f"Provider {provider_id} disabled: {reason}")
        return True

    def record_provider_error(self, provider_id: str, error: BaseException | str) -> None:
        """
        Count a failed call against a provider.

        Reaching the degraded threshold moves an Active provider to
        Degraded. Disabled providers stay Disabled.
        """
        health = self._health.get(provider_id)
        if health is None:
            return
        with health.lock:
            health.error_count += 1
            health.last_error = str(error)
            health.last_error_time = _utc_now()
            health.last_checked = health.last_error_time
            degrade = (
                health.status == ProviderStatus.ACTIVE
                and health.error_count >= self._global_config.degraded_threshold
            )
            if degrade:
                health.status = ProviderStatus.DEGRADED
        if degrade:
            logger.warning(
                f"Provider {provider_id} degraded: too many errors ({health.error_count})"
            )

    def reset_provider_errors(self, provider_id: str) -> None:
        """Clear the error counter after a successful call; Degraded recovers to Active."""
        health = self._health.get(provider_id)
        if health is None:
            return
        with health.lock:
            health.error_count = 0
            health.last_checked = _utc_now()
            recovered = health.status == ProviderStatus.DEGRADED
            if recovered:
                health.status = ProviderStatus.ACTIVE
        if recovered:
            logger.info(f"Provider {provider_id} recovered")

    def get_providers_health(self) -> dict[str, dict[str, Any]]:
        """Snapshot of every provider's metadata and health."""
        snapshot: dict[str, dict[str, Any]] = {}
        for provider_id, health in self._health.items():
            provider = self._providers.get(provider_id)
            snapshot[provider_id] = {
                "name": getattr(provider, "name", provider_id),
                "supports": sorted(t.value for t in getattr(provider, "supports", ())),
                "languages": sorted(lang.value for lang in getattr(provider, "languages", ())),
                **health.to_dict(),
            }
        return snapshot

    # URL resolution

    def detect_provider_from_url(self, url: str) -> str | None:
        """
        Work out which provider a content URL belongs to.

        Tries, in order: the host of each provider's base URL, the
        provider id as a substring, then the known-site hints.

        Returns:
            Provider id, or None if nothing matches
        """
        url_lower = url.lower()

        for provider_id, provider in self._providers.items():
            base_url = getattr(provider, "base_url", "") or ""
            if not base_url:
                continue
            try:
                host = urlparse(base_url.lower()).hostname
            except ValueError:
                logger.debug(f"Unparseable base URL for {provider_id}: {base_url}")
                continue
            if host and host in url_lower:
                return provider_id

        for provider_id in self._providers:
            if provider_id.lower() in url_lower:
                return provider_id

        hints = {**KNOWN_SITE_HINTS, **self._global_config.url_hints}
        for needle, provider_id in hints.items():
            if needle in url_lower:
                return provider_id

        return None
