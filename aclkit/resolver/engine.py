"""Secret resolution: secret -> token -> policies -> compiled -> merged ACL.

The resolver is the only component with mutable shared state (its caches).
Everything it hands out is immutable.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable

from aclkit.acl import ACL, merge
from aclkit.cache import CacheStats
from aclkit.config import EngineSettings
from aclkit.errors import (
    CancellationError,
    EngineError,
    PolicyResolutionError,
    SecretResolutionError,
)
from aclkit.policy import CompiledPolicy, PolicyCompiler, PolicyLike, TokenLike, policy_digest
from aclkit.resolver.config import ResolverConfig
from aclkit.resolver.context import ResolveContext

logger = logging.getLogger(__name__)

_ACL_KEY = "acl"
_POLICY_KEY = "policy"


def secret_digest(secret: str) -> str:
    """Digest used in place of a raw secret for cache keys and logs."""
    return hashlib.sha256(secret.encode()).hexdigest()


class Resolver:
    """Resolves secrets into ACLs using the host's token and policy stores.

    Usage:
        resolver = Resolver(ResolverConfig(
            model=model,
            secret_resolver=token_store,
            policy_resolver=policy_store,
        ))

        acl = resolver.resolve_secret(secret, ResolveContext(timeout=1.0))
        acl.check_authorized("book", "lotr", "read")
    """

    def __init__(self, config: ResolverConfig, settings: EngineSettings | None = None):
        """Initialize resolver.

        Raises:
            ConfigurationError: If a required field is missing or the model is invalid
        """
        config.require_complete()

        settings = settings or EngineSettings()

        self.model = config.model
        self._fingerprint = self.model.fingerprint
        self._compiler = PolicyCompiler(self.model)
        self._secret_resolver = config.secret_resolver_instance()
        self._policy_resolver = config.policy_resolver_instance()

        policy_cache, acl_cache = config.policy_cache, config.acl_cache
        if policy_cache is None or acl_cache is None:
            default_policy_cache, default_acl_cache = settings.build_caches()
            policy_cache = policy_cache if policy_cache is not None else default_policy_cache
            acl_cache = acl_cache if acl_cache is not None else default_acl_cache
        self._policy_cache = policy_cache
        self._acl_cache = acl_cache

        self._acl_ttl = (
            config.acl_ttl_seconds
            if config.acl_ttl_seconds is not None
            else settings.acl_cache_ttl_seconds
        )
        self._policy_ttl = (
            config.policy_ttl_seconds
            if config.policy_ttl_seconds is not None
            else settings.policy_cache_ttl_seconds
        )

        logger.info(
            "Resolver initialized: model=%s resources=%d policy_cache=%s acl_cache=%s",
            self._fingerprint[:12], len(self.model.resources),
            type(self._policy_cache).__name__, type(self._acl_cache).__name__,
        )

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve_secret(self, secret: str, ctx: ResolveContext | None = None) -> ACL:
        """Resolve the ACL for a secret.

        Raises:
            SecretResolutionError: If the token lookup fails
            PolicyResolutionError: If a policy lookup fails
            PolicyCompilationError: If a policy does not match the model
            CancellationError: If ctx is cancelled before the ACL is complete
        """
        ctx = ctx or ResolveContext.background()
        ctx.raise_if_cancelled()
        if not isinstance(secret, str) or not secret:
            raise SecretResolutionError("secret must be a non-empty string")

        digest = secret_digest(secret)
        key = (_ACL_KEY, self._fingerprint, digest)

        cached = self._acl_cache.get(key)
        if cached is not None:
            logger.debug("ACL cache hit: secret=%s", digest[:12])
            return cached

        token = self._fetch_token(secret, digest, ctx)
        acl = self._resolve_names(token.policies, ctx)

        # Only a complete resolution reaches the cache
        self._acl_cache.put(key, acl, self._acl_ttl)
        logger.debug(
            "Resolved secret=%s policies=%s",
            digest[:12], list(acl.policies),
        )
        return acl

    def resolve_policies(self, names: Iterable[str], ctx: ResolveContext | None = None) -> ACL:
        """Resolve a set of policy names straight into an ACL."""
        ctx = ctx or ResolveContext.background()
        ctx.raise_if_cancelled()
        return self._resolve_names(names, ctx)

    def resolve_policy(self, name: str, ctx: ResolveContext | None = None) -> CompiledPolicy:
        """Fetch and compile one policy (compiled form is cached)."""
        ctx = ctx or ResolveContext.background()
        ctx.raise_if_cancelled()
        pending: list[tuple[tuple, CompiledPolicy]] = []
        compiled = self._compile_named(name, ctx, pending)
        ctx.raise_if_cancelled()
        self._commit(pending)
        return compiled

    def _resolve_names(self, names: Iterable[str], ctx: ResolveContext) -> ACL:
        pending: list[tuple[tuple, CompiledPolicy]] = []
        compiled = [
            self._compile_named(name, ctx, pending) for name in dict.fromkeys(names)
        ]
        ctx.raise_if_cancelled()
        acl = merge(compiled)

        # Newly compiled policies reach the cache only once every lookup succeeded
        self._commit(pending)
        return acl

    def _fetch_token(self, secret: str, digest: str, ctx: ResolveContext) -> TokenLike:
        ctx.raise_if_cancelled()
        try:
            token = self._secret_resolver.resolve_secret(ctx, secret)
        except CancellationError:
            logger.warning("Secret resolution cancelled: secret=%s", digest[:12])
            raise
        except EngineError:
            raise
        except Exception as exc:
            logger.warning("Secret resolution failed: secret=%s error=%s", digest[:12], exc)
            raise SecretResolutionError(str(exc) or type(exc).__name__) from exc

        # A late answer is discarded once the caller gave up
        ctx.raise_if_cancelled()

        if token is None:
            raise SecretResolutionError("secret not found")
        if not isinstance(token, TokenLike):
            raise SecretResolutionError(
                f"resolver returned {type(token).__name__}, expected a token"
            )
        return token

    def _fetch_policy(self, name: str, ctx: ResolveContext) -> PolicyLike:
        ctx.raise_if_cancelled()
        try:
            policy = self._policy_resolver.resolve_policy(ctx, name)
        except CancellationError:
            logger.warning("Policy resolution cancelled: policy=%s", name)
            raise
        except EngineError:
            raise
        except Exception as exc:
            logger.warning("Policy resolution failed: policy=%s error=%s", name, exc)
            raise PolicyResolutionError(name, str(exc) or type(exc).__name__) from exc

        ctx.raise_if_cancelled()

        if policy is None:
            raise PolicyResolutionError(name, "policy not found")
        if not isinstance(policy, PolicyLike):
            raise PolicyResolutionError(
                name, f"resolver returned {type(policy).__name__}, expected a policy"
            )
        return policy

    def _compile_named(
        self,
        name: str,
        ctx: ResolveContext,
        pending: list[tuple[tuple, CompiledPolicy]],
    ) -> CompiledPolicy:
        policy = self._fetch_policy(name, ctx)
        version = getattr(policy, "version", None) or policy_digest(policy)
        key = (_POLICY_KEY, name, version, self._fingerprint)

        cached = self._policy_cache.get(key)
        if cached is not None:
            return cached

        ctx.raise_if_cancelled()
        compiled = self._compile(policy)
        pending.append((key, compiled))
        return compiled

    def _compile(self, policy: PolicyLike) -> CompiledPolicy:
        logger.debug("Compiling policy %s", policy.name)
        return self._compiler.compile(policy)

    def _commit(self, pending: list[tuple[tuple, CompiledPolicy]]) -> None:
        for key, compiled in pending:
            self._policy_cache.put(key, compiled, self._policy_ttl)

    # =========================================================================
    # Cache Management
    # =========================================================================

    def invalidate_secret(self, secret: str) -> bool:
        """Drop the cached ACL of one secret."""
        return self._acl_cache.invalidate((_ACL_KEY, self._fingerprint, secret_digest(secret)))

    def invalidate_policy(self, name: str) -> int:
        """Drop every compiled version of a policy, and every cached ACL.

        Cached ACLs are keyed by secret, so any of them may include the policy.
        """
        count = self._policy_cache.invalidate_where(
            lambda key: key[0] == _POLICY_KEY and key[1] == name
        )
        count += self._acl_cache.invalidate_where(
            lambda key: key[0] == _ACL_KEY and key[1] == self._fingerprint
        )
        logger.info("Invalidated policy %s (%d cache entries)", name, count)
        return count

    def clear_caches(self) -> int:
        """Clear both caches."""
        return self._policy_cache.clear() + self._acl_cache.clear()

    def stats(self) -> dict[str, CacheStats]:
        return {
            "policy_cache": self._policy_cache.stats(),
            "acl_cache": self._acl_cache.stats(),
        }
