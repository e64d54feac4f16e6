"""Policy, rule and token data models.

Policies and tokens are owned by the host's stores. The pydantic models here
are ready-made value types; hosts may pass any object satisfying the
matching protocol instead.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

# Instance filter matching every instance of a resource
WILDCARD = "*"


class Rule(BaseModel):
    """Grant of capabilities on one resource.

    The instance filter is either the wildcard marker or an exact
    instance identifier. Capabilities are kept as authored; aliases are
    expanded at compile time.
    """

    model_config = ConfigDict(frozen=True)

    resource: str = Field(min_length=1, description="Resource name in the model")
    instance: str = Field(
        default=WILDCARD,
        min_length=1,
        description="Exact instance identifier, or '*' for every instance",
    )
    capabilities: frozenset[str] = Field(
        default_factory=frozenset,
        description="Requested capability or alias names",
    )

    @property
    def is_wildcard(self) -> bool:
        return self.instance == WILDCARD


class Policy(BaseModel):
    """A named, reusable bundle of rules."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Policy name in the host's store")
    rules: tuple[Rule, ...] = Field(default_factory=tuple)
    version: str | None = Field(
        default=None,
        description="Version/etag from the policy store, used to detect stale cache entries",
    )


class Token(BaseModel):
    """The record naming which policies a secret is bound to."""

    model_config = ConfigDict(frozen=True)

    policies: tuple[str, ...] = Field(default_factory=tuple, description="Bound policy names")
    accessor: str | None = Field(default=None, description="Non-secret token identifier")
    description: str = Field(default="")


# =============================================================================
# Protocols for host-supplied values
# =============================================================================


@runtime_checkable
class RuleLike(Protocol):
    @property
    def resource(self) -> str: ...

    @property
    def instance(self) -> str: ...

    @property
    def capabilities(self) -> Iterable[str]: ...


@runtime_checkable
class PolicyLike(Protocol):
    """Anything that can enumerate its rules under a name."""

    @property
    def name(self) -> str: ...

    @property
    def rules(self) -> Iterable[RuleLike]: ...


@runtime_checkable
class TokenLike(Protocol):
    """Anything that exposes the policy names bound to a secret."""

    @property
    def policies(self) -> Iterable[str]: ...
