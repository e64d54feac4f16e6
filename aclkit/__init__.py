"""aclkit: embeddable authorization engine.

Compiles named policies against a resource/capability model and answers
"can the holder of this secret perform capability C on instance I of
resource R?".

Usage:
    from aclkit import Model, Resolver, ResolverConfig, ResolveContext

    model = Model()
    model.define_resource("book") \\
        .capabilities("read", "write", "list") \\
        .alias("read", "read", "list")
    model.validate()

    resolver = Resolver(ResolverConfig(
        model=model,
        secret_resolver=token_store,
        policy_resolver=policy_store,
    ))

    acl = resolver.resolve_secret(secret, ResolveContext(timeout=1.0))
    acl.check_authorized("book", "lotr", "read")
"""

from aclkit.acl import ACL, Decision, merge
from aclkit.cache import Cache, CacheStats, MemoryCache, NullCache
from aclkit.config import EngineSettings
from aclkit.errors import (
    AclKitError,
    AliasCycleError,
    CancellationError,
    ConfigurationError,
    DuplicateAliasError,
    DuplicateCapabilityError,
    DuplicateResourceError,
    EngineError,
    ModelValidationError,
    NotAuthorizedError,
    PolicyCompilationError,
    PolicyResolutionError,
    ResolutionError,
    SecretResolutionError,
    UndefinedAliasTargetError,
    ShadowedCapabilityError,
    UnknownCapabilityError,
    UnknownResourceError,
)
from aclkit.model import Model, ResourceBuilder, ResourceDefinition
from aclkit.policy import (
    WILDCARD,
    CompiledPolicy,
    Policy,
    PolicyCompiler,
    Rule,
    Token,
    compile_policy,
)
from aclkit.resolver import (
    PolicyResolver,
    ResolveContext,
    Resolver,
    ResolverConfig,
    SecretResolver,
)

__version__ = "1.0.0"

__all__ = [
    # Model
    "Model",
    "ResourceBuilder",
    "ResourceDefinition",
    # Policies
    "WILDCARD",
    "Rule",
    "Policy",
    "Token",
    "CompiledPolicy",
    "PolicyCompiler",
    "compile_policy",
    # Decisions
    "ACL",
    "Decision",
    "merge",
    # Resolution
    "Resolver",
    "ResolverConfig",
    "ResolveContext",
    "SecretResolver",
    "PolicyResolver",
    # Caching & config
    "Cache",
    "CacheStats",
    "MemoryCache",
    "NullCache",
    "EngineSettings",
    # Errors
    "AclKitError",
    "NotAuthorizedError",
    "EngineError",
    "ConfigurationError",
    "CancellationError",
    "ModelValidationError",
    "DuplicateResourceError",
    "DuplicateCapabilityError",
    "DuplicateAliasError",
    "AliasCycleError",
    "UndefinedAliasTargetError",
    "ShadowedCapabilityError",
    "PolicyCompilationError",
    "UnknownResourceError",
    "UnknownCapabilityError",
    "ResolutionError",
    "SecretResolutionError",
    "PolicyResolutionError",
]
