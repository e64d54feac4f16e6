"""Resolver configuration and host collaborator protocols."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from aclkit.cache import Cache
from aclkit.config import EngineSettings
from aclkit.errors import ConfigurationError, ModelValidationError
from aclkit.model import Model
from aclkit.policy import PolicyLike, TokenLike
from aclkit.resolver.context import ResolveContext


@runtime_checkable
class SecretResolver(Protocol):
    """Looks up the token bound to a secret in the host's store.

    Must raise on an unknown secret as well as on storage failures.
    """

    def resolve_secret(self, ctx: ResolveContext, secret: str) -> TokenLike: ...


@runtime_checkable
class PolicyResolver(Protocol):
    """Looks up a policy by name in the host's store.

    Must raise on an unknown policy as well as on storage failures.
    """

    def resolve_policy(self, ctx: ResolveContext, name: str) -> PolicyLike: ...


class FunctionSecretResolver:
    """Adapts a plain `(ctx, secret) -> token` callable."""

    def __init__(self, fn: Callable[[ResolveContext, str], TokenLike]):
        self._fn = fn

    def resolve_secret(self, ctx: ResolveContext, secret: str) -> TokenLike:
        return self._fn(ctx, secret)


class FunctionPolicyResolver:
    """Adapts a plain `(ctx, name) -> policy` callable."""

    def __init__(self, fn: Callable[[ResolveContext, str], PolicyLike]):
        self._fn = fn

    def resolve_policy(self, ctx: ResolveContext, name: str) -> PolicyLike:
        return self._fn(ctx, name)


class ResolverConfig(BaseModel):
    """Construction-time configuration of a Resolver.

    `model`, `secret_resolver` and `policy_resolver` are required; caches
    and TTLs fall back to EngineSettings when left unset.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: Model | None = Field(default=None, description="Validated resource/capability Model")
    secret_resolver: SecretResolver | Callable[[ResolveContext, str], Any] | None = Field(
        default=None,
        description="SecretResolver or callable (ctx, secret) -> token",
    )
    policy_resolver: PolicyResolver | Callable[[ResolveContext, str], Any] | None = Field(
        default=None,
        description="PolicyResolver or callable (ctx, name) -> policy",
    )
    policy_cache: Cache | None = Field(default=None, description="Cache for compiled policies")
    acl_cache: Cache | None = Field(default=None, description="Cache for merged ACLs")
    acl_ttl_seconds: float | None = Field(default=None, ge=0)
    policy_ttl_seconds: float | None = Field(default=None, ge=0)

    @model_validator(mode="wrap")
    @classmethod
    def raise_configuration_error(cls, data: Any, handler):
        """Report the first invalid field as a ConfigurationError."""
        try:
            return handler(data)
        except ValidationError as exc:
            error = exc.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "config"
            raise ConfigurationError(field, f"is invalid: {error['msg']}") from exc

    @classmethod
    def from_settings(
        cls,
        model: Model,
        secret_resolver: SecretResolver | Callable[[ResolveContext, str], Any],
        policy_resolver: PolicyResolver | Callable[[ResolveContext, str], Any],
        settings: EngineSettings | None = None,
    ) -> "ResolverConfig":
        """Create configuration with caches built from settings."""
        settings = settings or EngineSettings()
        policy_cache, acl_cache = settings.build_caches()
        return cls(
            model=model,
            secret_resolver=secret_resolver,
            policy_resolver=policy_resolver,
            policy_cache=policy_cache,
            acl_cache=acl_cache,
            acl_ttl_seconds=settings.acl_cache_ttl_seconds,
            policy_ttl_seconds=settings.policy_cache_ttl_seconds,
        )

    def require_complete(self) -> None:
        """Check required fields and validate the model.

        Raises:
            ConfigurationError: Naming the first missing or invalid field
        """
        for name in ("model", "secret_resolver", "policy_resolver"):
            if getattr(self, name) is None:
                raise ConfigurationError(name)

        try:
            self.model.validate()
        except ModelValidationError as exc:
            raise ConfigurationError("model", f"is invalid: {exc.message}") from exc

    def secret_resolver_instance(self) -> SecretResolver:
        if isinstance(self.secret_resolver, SecretResolver):
            return self.secret_resolver
        return FunctionSecretResolver(self.secret_resolver)

    def policy_resolver_instance(self) -> PolicyResolver:
        if isinstance(self.policy_resolver, PolicyResolver):
            return self.policy_resolver
        return FunctionPolicyResolver(self.policy_resolver)
