"""Resource/capability model.

The model is built once at process start, validated once, and then shared
read-only by every compilation and resolution.

Usage:
    model = Model()
    model.define_resource("book") \\
        .capabilities("read", "write", "list") \\
        .alias("read", "read", "list") \\
        .alias("write", "write", "read", "list")
    model.validate()
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from aclkit.errors import (
    DuplicateAliasError,
    DuplicateCapabilityError,
    DuplicateResourceError,
    InvalidNameError,
    ModelFrozenError,
    UnknownCapabilityError,
    UnknownResourceError,
)
from aclkit.model.aliases import expand_aliases

logger = logging.getLogger(__name__)


def _check_name(kind: str, name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidNameError(kind, name)
    return name


class ResourceDefinition:
    """A protected resource kind: its capabilities and aliases."""

    def __init__(self, name: str):
        self.name = name
        self._capabilities: dict[str, None] = {}
        self._aliases: dict[str, tuple[str, ...]] = {}
        self._expansions: Mapping[str, frozenset[str]] = MappingProxyType({})

    @property
    def capabilities(self) -> frozenset[str]:
        return frozenset(self._capabilities)

    @property
    def aliases(self) -> Mapping[str, tuple[str, ...]]:
        """Alias name -> targets, as authored."""
        return MappingProxyType(self._aliases)

    def has_capability(self, name: str) -> bool:
        return name in self._capabilities

    def has_alias(self, name: str) -> bool:
        return name in self._aliases

    def expand(self, name: str) -> frozenset[str]:
        """Expand one requested name into capability names.

        Aliases take precedence over a capability of the same name.
        """
        expanded = self._expansions.get(name)
        if expanded is not None:
            return expanded
        if name in self._capabilities:
            return frozenset((name,))
        raise UnknownCapabilityError(self.name, name)

    def to_dict(self) -> dict:
        return {
            "capabilities": sorted(self._capabilities),
            "aliases": {alias: list(targets) for alias, targets in self._aliases.items()},
        }

    def __repr__(self) -> str:
        return (
            f"ResourceDefinition({self.name!r}, capabilities={sorted(self._capabilities)}, "
            f"aliases={sorted(self._aliases)})"
        )


class ResourceBuilder:
    """Chainable registration of capabilities and aliases for one resource."""

    def __init__(self, model: "Model", definition: ResourceDefinition):
        self._model = model
        self._definition = definition

    @property
    def definition(self) -> ResourceDefinition:
        return self._definition

    def capabilities(self, *names: str) -> "ResourceBuilder":
        """Register capability names.

        Raises:
            DuplicateCapabilityError: If a name is already a capability of this resource
        """
        self._model._ensure_mutable()
        for name in names:
            _check_name("capability", name)
            if name in self._definition._capabilities:
                raise DuplicateCapabilityError(self._definition.name, name)
            self._definition._capabilities[name] = None
        return self

    def alias(self, name: str, *targets: str) -> "ResourceBuilder":
        """Register an alias.

        Targets may name capabilities or other aliases of this resource,
        including aliases declared later; they are checked by validate().
        """
        self._model._ensure_mutable()
        _check_name("alias", name)
        if name in self._definition._aliases:
            raise DuplicateAliasError(self._definition.name, name)
        for target in targets:
            _check_name("alias target", target)
        self._definition._aliases[name] = tuple(dict.fromkeys(targets))
        return self


class Model:
    """Registry of resource kinds, their capabilities and aliases.

    Mutable until validate() succeeds, immutable afterwards.
    """

    def __init__(self):
        self._resources: dict[str, ResourceDefinition] = {}
        self._validated = False
        self._fingerprint: str | None = None
        self._lock = threading.Lock()

    # =========================================================================
    # Definition
    # =========================================================================

    def define_resource(self, name: str) -> ResourceBuilder:
        """Register a resource and return its builder.

        Raises:
            DuplicateResourceError: If the name is already defined
        """
        self._ensure_mutable()
        _check_name("resource", name)
        if name in self._resources:
            raise DuplicateResourceError(name)
        definition = ResourceDefinition(name)
        self._resources[name] = definition
        return ResourceBuilder(self, definition)

    def _ensure_mutable(self) -> None:
        if self._validated:
            raise ModelFrozenError()

    # =========================================================================
    # Validation
    # =========================================================================

    @property
    def validated(self) -> bool:
        return self._validated

    def validate(self) -> "Model":
        """Check every resource's alias graph and freeze the model.

        Idempotent; a model that failed validation stays mutable so it can
        be fixed and validated again.

        Raises:
            AliasCycleError: If aliases of a resource form a cycle
            UndefinedAliasTargetError: If an alias references an unknown name
        """
        with self._lock:
            if self._validated:
                return self

            expansions = {
                name: expand_aliases(name, definition.capabilities, definition._aliases)
                for name, definition in self._resources.items()
            }

            for name, definition in self._resources.items():
                definition._expansions = MappingProxyType(expansions[name])
            self._fingerprint = self._compute_fingerprint()
            self._validated = True

        logger.info(
            "Model validated: %d resources, fingerprint=%s",
            len(self._resources), self._fingerprint[:12],
        )
        return self

    def _compute_fingerprint(self) -> str:
        data = {name: d.to_dict() for name, d in self._resources.items()}
        key_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(key_str.encode()).hexdigest()

    @property
    def fingerprint(self) -> str:
        """Stable digest of the model definition (validates the model if needed)."""
        self.validate()
        return self._fingerprint

    # =========================================================================
    # Lookup
    # =========================================================================

    @property
    def resources(self) -> Mapping[str, ResourceDefinition]:
        return MappingProxyType(self._resources)

    def has_resource(self, name: str) -> bool:
        return name in self._resources

    def resource(self, name: str) -> ResourceDefinition:
        """Get a resource definition.

        Raises:
            UnknownResourceError: If the resource is not defined
        """
        definition = self._resources.get(name)
        if definition is None:
            raise UnknownResourceError(name)
        return definition

    def expand(self, resource: str, names: Iterable[str]) -> frozenset[str]:
        """Expand requested names of a resource into capability names.

        Raises:
            UnknownResourceError: If the resource is not defined
            UnknownCapabilityError: If a name is neither capability nor alias
        """
        self.validate()
        definition = self.resource(resource)
        expanded: set[str] = set()
        for name in names:
            expanded |= definition.expand(name)
        return frozenset(expanded)

    def __repr__(self) -> str:
        state = "validated" if self._validated else "draft"
        return f"Model({sorted(self._resources)}, {state})"
