"""ACL merge and decision engine.

Rules only ever enable capabilities, so merging is a plain union: it is
associative and commutative, and merging nothing yields an ACL that
denies everything.

For every resource the merged structure keeps:
- the union of all wildcard grants
- an index from exact instance id to the union of its grants

A check is then two set lookups, independent of the number of rules.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from aclkit.acl.models import Decision
from aclkit.errors import ModelMismatchError, NotAuthorizedError
from aclkit.policy import WILDCARD, CompiledPolicy

logger = logging.getLogger(__name__)

_EMPTY: frozenset[str] = frozenset()


@dataclass(frozen=True)
class ResourceGrants:
    """Merged grants for one resource."""

    wildcard: frozenset[str]
    exact: Mapping[str, frozenset[str]]

    def capabilities_for(self, instance: str) -> frozenset[str]:
        """Union of wildcard grants and grants for this exact instance."""
        return self.wildcard | self.exact.get(instance, _EMPTY)

    def allows(self, instance: str, capability: str) -> bool:
        return capability in self.wildcard or capability in self.exact.get(instance, _EMPTY)

    def matched_filters(self, instance: str, capability: str) -> list[str]:
        matched = []
        if capability in self.wildcard:
            matched.append(WILDCARD)
        if capability in self.exact.get(instance, _EMPTY):
            matched.append(instance)
        return matched

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceGrants):
            return NotImplemented
        return self.wildcard == other.wildcard and dict(self.exact) == dict(other.exact)

    def __hash__(self) -> int:
        return hash((self.wildcard, frozenset(self.exact)))


class ACL:
    """Compiled, immutable authorization decision object.

    Usage:
        acl = merge([compiled_a, compiled_b])
        acl.check_authorized("book", "lotr", "read")  # raises NotAuthorizedError
        if acl.is_authorized("book", "lotr", "write"):
            ...
    """

    __slots__ = ("_grants", "_policies", "_model_fingerprint")

    def __init__(
        self,
        grants: Mapping[str, ResourceGrants],
        policies: tuple[str, ...] = (),
        model_fingerprint: str | None = None,
    ):
        object.__setattr__(self, "_grants", MappingProxyType(dict(grants)))
        object.__setattr__(self, "_policies", tuple(policies))
        object.__setattr__(self, "_model_fingerprint", model_fingerprint)

    def __setattr__(self, key, value):
        raise AttributeError("ACL is immutable")

    @property
    def policies(self) -> tuple[str, ...]:
        """Names of the policies merged into this ACL."""
        return self._policies

    @property
    def model_fingerprint(self) -> str | None:
        return self._model_fingerprint

    @property
    def resources(self) -> frozenset[str]:
        return frozenset(self._grants)

    def grants_for(self, resource: str) -> ResourceGrants | None:
        return self._grants.get(resource)

    # =========================================================================
    # Decisions
    # =========================================================================

    def is_authorized(self, resource: str, instance: str, capability: str) -> bool:
        """Check a capability without raising.

        The capability is taken literally; aliases were expanded at compile time.
        """
        grants = self._grants.get(resource)
        return grants is not None and grants.allows(instance, capability)

    def check_authorized(self, resource: str, instance: str, capability: str) -> None:
        """Check a capability.

        Raises:
            NotAuthorizedError: If no matching rule grants the capability
        """
        if not self.is_authorized(resource, instance, capability):
            logger.debug(
                "Denied: resource=%s instance=%s capability=%s",
                resource, instance, capability,
            )
            raise NotAuthorizedError(resource, instance, capability)

    def decide(self, resource: str, instance: str, capability: str) -> Decision:
        """Check a capability and explain the result."""
        grants = self._grants.get(resource)
        if grants is None:
            return Decision(
                allowed=False,
                resource=resource,
                instance=instance,
                capability=capability,
                reason=f"No rule covers resource {resource!r}",
            )

        matched = grants.matched_filters(instance, capability)
        if matched:
            return Decision(
                allowed=True,
                resource=resource,
                instance=instance,
                capability=capability,
                reason=f"Granted by filter(s): {', '.join(matched)}",
                matched_filters=matched,
            )

        return Decision(
            allowed=False,
            resource=resource,
            instance=instance,
            capability=capability,
            reason=f"No rule matching instance {instance!r} grants {capability!r}",
        )

    def capabilities(self, resource: str, instance: str) -> frozenset[str]:
        """All capabilities granted on one instance."""
        grants = self._grants.get(resource)
        if grants is None:
            return _EMPTY
        return grants.capabilities_for(instance)

    # =========================================================================
    # Combination
    # =========================================================================

    def union(self, other: "ACL") -> "ACL":
        """ACL granting everything either ACL grants.

        Raises:
            ModelMismatchError: If the ACLs come from different models
        """
        fingerprint = self._model_fingerprint
        if fingerprint is None:
            fingerprint = other._model_fingerprint
        elif other._model_fingerprint not in (None, fingerprint):
            raise ModelMismatchError(",".join(other._policies) or "<acl>")

        grants = dict(self._grants)
        for resource, theirs in other._grants.items():
            ours = grants.get(resource)
            if ours is None:
                grants[resource] = theirs
                continue
            exact = dict(ours.exact)
            for instance, caps in theirs.exact.items():
                exact[instance] = exact.get(instance, _EMPTY) | caps
            grants[resource] = ResourceGrants(
                wildcard=ours.wildcard | theirs.wildcard,
                exact=MappingProxyType(exact),
            )

        policies = tuple(dict.fromkeys(self._policies + other._policies))
        return ACL(grants, policies=policies, model_fingerprint=fingerprint)

    __or__ = union

    # =========================================================================
    # Comparison
    # =========================================================================

    def __eq__(self, other: object) -> bool:
        """Structural equality of the merged grants."""
        if not isinstance(other, ACL):
            return NotImplemented
        return dict(self._grants) == dict(other._grants)

    def __hash__(self) -> int:
        return hash(frozenset(self._grants.items()))

    def __repr__(self) -> str:
        return f"ACL(resources={sorted(self._grants)}, policies={list(self._policies)})"


def merge(compiled_policies: Iterable[CompiledPolicy]) -> ACL:
    """Combine compiled policies into one ACL.

    Raises:
        ModelMismatchError: If the policies were compiled against different models
    """
    wildcard: dict[str, set[str]] = {}
    exact: dict[str, dict[str, set[str]]] = {}
    names: list[str] = []
    fingerprint: str | None = None

    for compiled in compiled_policies:
        if fingerprint is None:
            fingerprint = compiled.model_fingerprint
        elif compiled.model_fingerprint != fingerprint:
            raise ModelMismatchError(compiled.name)
        names.append(compiled.name)

        for resource, rules in compiled.rules.items():
            resource_wildcard = wildcard.setdefault(resource, set())
            resource_exact = exact.setdefault(resource, {})
            for rule in rules:
                if rule.is_wildcard:
                    resource_wildcard |= rule.capabilities
                else:
                    resource_exact.setdefault(rule.instance, set()).update(rule.capabilities)

    grants = {
        resource: ResourceGrants(
            wildcard=frozenset(wildcard[resource]),
            exact=MappingProxyType({
                instance: frozenset(caps) for instance, caps in exact[resource].items()
            }),
        )
        for resource in wildcard
    }
    return ACL(grants, policies=tuple(dict.fromkeys(names)), model_fingerprint=fingerprint)
