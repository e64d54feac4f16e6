"""Engine configuration via pydantic-settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from aclkit.cache import Cache, MemoryCache, NullCache


class EngineSettings(BaseSettings):
    """Engine settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="ACLKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Master switch for both caches
    cache_enabled: bool = True

    # Merged ACLs, keyed by secret (0 = no expiry)
    acl_cache_ttl_seconds: float = Field(default=60, ge=0)
    acl_cache_max_entries: int = Field(default=10000, ge=1)

    # Compiled policies, keyed by name + version + model fingerprint
    policy_cache_ttl_seconds: float = Field(default=3600, ge=0)
    policy_cache_max_entries: int = Field(default=10000, ge=1)

    def build_caches(self) -> tuple[Cache, Cache]:
        """Create fresh (policy_cache, acl_cache) instances."""
        if not self.cache_enabled:
            return NullCache(), NullCache()
        return (
            MemoryCache(
                default_ttl_seconds=self.policy_cache_ttl_seconds,
                max_entries=self.policy_cache_max_entries,
            ),
            MemoryCache(
                default_ttl_seconds=self.acl_cache_ttl_seconds,
                max_entries=self.acl_cache_max_entries,
            ),
        )
