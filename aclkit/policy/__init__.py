"""Policies, tokens and the policy compiler."""

from aclkit.policy.compiler import (
    CompiledPolicy,
    CompiledRule,
    PolicyCompiler,
    compile_policy,
    policy_digest,
)
from aclkit.policy.models import (
    WILDCARD,
    Policy,
    PolicyLike,
    Rule,
    RuleLike,
    Token,
    TokenLike,
)

__all__ = [
    "WILDCARD",
    "Rule",
    "Policy",
    "Token",
    "RuleLike",
    "PolicyLike",
    "TokenLike",
    "CompiledRule",
    "CompiledPolicy",
    "PolicyCompiler",
    "compile_policy",
    "policy_digest",
]
