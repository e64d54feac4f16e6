"""Secret resolution and host collaborator contracts."""

from aclkit.resolver.config import (
    FunctionPolicyResolver,
    FunctionSecretResolver,
    PolicyResolver,
    ResolverConfig,
    SecretResolver,
)
from aclkit.resolver.context import ResolveContext
from aclkit.resolver.engine import Resolver, secret_digest

__all__ = [
    "Resolver",
    "ResolverConfig",
    "ResolveContext",
    "SecretResolver",
    "PolicyResolver",
    "FunctionSecretResolver",
    "FunctionPolicyResolver",
    "secret_digest",
]
