"""Policy compiler.

Turns an authored policy into a per-resource index of
(instance filter, expanded capability set) pairs, validated against a
model. Compilation is a pure function of (policy content, model).
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from aclkit.errors import UnknownCapabilityError, UnknownResourceError
from aclkit.model import Model
from aclkit.policy.models import WILDCARD, PolicyLike

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledRule:
    """One rule after alias expansion."""

    instance: str
    capabilities: frozenset[str]

    @property
    def is_wildcard(self) -> bool:
        return self.instance == WILDCARD

    def matches(self, instance: str) -> bool:
        return self.is_wildcard or self.instance == instance


class CompiledPolicy:
    """Immutable compiled form of one policy.

    Safe for concurrent reads; the same compiled policy may back many
    secrets at once. `fingerprint` digests the compiled rules index, so two
    compilations of the same content against the same model share it.
    """

    __slots__ = ("name", "model_fingerprint", "fingerprint", "_rules")

    def __init__(
        self,
        name: str,
        rules: Mapping[str, tuple[CompiledRule, ...]],
        model_fingerprint: str,
    ):
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "model_fingerprint", model_fingerprint)
        object.__setattr__(self, "_rules", MappingProxyType(dict(rules)))
        object.__setattr__(self, "fingerprint", self._compute_fingerprint())

    def __setattr__(self, key, value):
        raise AttributeError("CompiledPolicy is immutable")

    def _compute_fingerprint(self) -> str:
        index = {
            resource: [[rule.instance, sorted(rule.capabilities)] for rule in rules]
            for resource, rules in self._rules.items()
        }
        key_str = json.dumps([self.name, self.model_fingerprint, index], sort_keys=True)
        return hashlib.sha256(key_str.encode()).hexdigest()

    @property
    def resources(self) -> frozenset[str]:
        return frozenset(self._rules)

    @property
    def rules(self) -> Mapping[str, tuple[CompiledRule, ...]]:
        return self._rules

    def rules_for(self, resource: str) -> tuple[CompiledRule, ...]:
        return self._rules.get(resource, ())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompiledPolicy):
            return NotImplemented
        return (
            self.name == other.name
            and self.model_fingerprint == other.model_fingerprint
            and dict(self._rules) == dict(other._rules)
        )

    def __hash__(self) -> int:
        return hash(self.fingerprint)

    def __repr__(self) -> str:
        count = sum(len(r) for r in self._rules.values())
        return f"CompiledPolicy({self.name!r}, resources={sorted(self._rules)}, rules={count})"


def policy_digest(policy: PolicyLike) -> str:
    """Content digest of an authored policy.

    Used as the cache version of a policy whose store supplies no version.
    """
    content = [
        [rule.resource, rule.instance, sorted(rule.capabilities)]
        for rule in policy.rules
    ]
    key_str = json.dumps([policy.name, content], sort_keys=True)
    return hashlib.sha256(key_str.encode()).hexdigest()


class PolicyCompiler:
    """Compiles policies against one validated model.

    Usage:
        compiler = PolicyCompiler(model)
        compiled = compiler.compile(policy)
    """

    def __init__(self, model: Model):
        self.model = model.validate()

    def compile(self, policy: PolicyLike) -> CompiledPolicy:
        """Compile a policy.

        Rules for the same resource are kept side by side; overlapping
        instance filters are resolved at decision time.

        Raises:
            UnknownResourceError: If a rule names a resource missing from the model
            UnknownCapabilityError: If a requested name is neither capability nor alias
        """
        grouped: dict[str, list[CompiledRule]] = {}

        for rule in policy.rules:
            if not self.model.has_resource(rule.resource):
                raise UnknownResourceError(rule.resource, policy=policy.name)
            definition = self.model.resource(rule.resource)

            effective: set[str] = set()
            for requested in sorted(rule.capabilities):
                try:
                    effective |= definition.expand(requested)
                except UnknownCapabilityError:
                    raise UnknownCapabilityError(
                        rule.resource, requested, policy=policy.name
                    ) from None

            grouped.setdefault(rule.resource, []).append(
                CompiledRule(instance=rule.instance, capabilities=frozenset(effective))
            )

        compiled = CompiledPolicy(
            name=policy.name,
            rules={resource: tuple(rules) for resource, rules in grouped.items()},
            model_fingerprint=self.model.fingerprint,
        )
        logger.debug("Compiled policy %s: %r", policy.name, compiled)
        return compiled


def compile_policy(policy: PolicyLike, model: Model) -> CompiledPolicy:
    """Compile one policy against a model."""
    return PolicyCompiler(model).compile(policy)
