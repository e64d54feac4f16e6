"""Exception hierarchy for the authorization engine.

Two roots matter to callers:
- NotAuthorizedError: the normal negative decision of a check.
- EngineError: anything that broke (bad config, bad model, bad policy,
  failing collaborators, cancellation).

Every exception carries a human-readable `message` and a stable `code`.
"""

from __future__ import annotations


class AclKitError(Exception):
    """Base class for every error raised by aclkit."""

    def __init__(self, message: str, code: str = "aclkit_error"):
        self.message = message
        self.code = code
        super().__init__(message)


# =============================================================================
# Decisions
# =============================================================================


class NotAuthorizedError(AclKitError):
    """Raised when an ACL does not grant a capability."""

    def __init__(self, resource: str, instance: str, capability: str):
        self.resource = resource
        self.instance = instance
        self.capability = capability
        super().__init__(
            f"Not authorized: {capability!r} on {resource}/{instance}",
            "not_authorized",
        )


# =============================================================================
# Faults
# =============================================================================


class EngineError(AclKitError):
    """Base class for failures that are not authorization decisions."""


class ConfigurationError(EngineError):
    """Raised when a Resolver is constructed with missing or invalid config."""

    def __init__(self, field: str, reason: str = "is required"):
        self.field = field
        super().__init__(f"Configuration field {field!r} {reason}", "configuration_error")


class ModelMismatchError(EngineError):
    """Raised when policies compiled against different models are merged."""

    def __init__(self, policy: str):
        self.policy = policy
        super().__init__(
            f"Policy {policy!r} was compiled against a different model",
            "model_mismatch",
        )


class CancellationError(EngineError):
    """Raised when a resolution is aborted by its caller's context."""

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Resolution aborted: {reason}", "cancelled")


# -----------------------------------------------------------------------------
# Model validation
# -----------------------------------------------------------------------------


class ModelValidationError(EngineError):
    """Base class for errors in the resource/capability model."""


class InvalidNameError(ModelValidationError):
    def __init__(self, kind: str, name: object):
        self.kind = kind
        self.name = name
        super().__init__(f"Invalid {kind} name: {name!r}", "invalid_name")


class ModelFrozenError(ModelValidationError):
    def __init__(self):
        super().__init__("Model is validated and can no longer be modified", "model_frozen")


class DuplicateResourceError(ModelValidationError):
    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"Resource {resource!r} is already defined", "duplicate_resource")


class DuplicateCapabilityError(ModelValidationError):
    def __init__(self, resource: str, capability: str):
        self.resource = resource
        self.capability = capability
        super().__init__(
            f"Capability {capability!r} is already defined on {resource!r}",
            "duplicate_capability",
        )


class DuplicateAliasError(ModelValidationError):
    def __init__(self, resource: str, alias: str):
        self.resource = resource
        self.alias = alias
        super().__init__(
            f"Alias {alias!r} is already defined on {resource!r}",
            "duplicate_alias",
        )


class AliasCycleError(ModelValidationError):
    """Raised when aliases of one resource reference each other in a loop."""

    def __init__(self, resource: str, cycle: list[str]):
        self.resource = resource
        self.cycle = list(cycle)
        super().__init__(
            f"Alias cycle on {resource!r}: {' -> '.join(self.cycle)}",
            "alias_cycle",
        )


class UndefinedAliasTargetError(ModelValidationError):
    def __init__(self, resource: str, alias: str, target: str):
        self.resource = resource
        self.alias = alias
        self.target = target
        super().__init__(
            f"Alias {alias!r} on {resource!r} references unknown name {target!r}",
            "undefined_alias_target",
        )


class ShadowedCapabilityError(ModelValidationError):
    """Raised when an alias hides a capability of the same name without granting it."""

    def __init__(self, resource: str, name: str):
        self.resource = resource
        self.name = name
        super().__init__(
            f"Alias {name!r} on {resource!r} shadows the capability {name!r}; "
            f"list {name!r} among its targets to keep it grantable",
            "shadowed_capability",
        )


# -----------------------------------------------------------------------------
# Policy compilation
# -----------------------------------------------------------------------------


class PolicyCompilationError(EngineError):
    """Base class for policies that reference the model incorrectly."""

    def __init__(self, message: str, code: str, policy: str | None = None):
        self.policy = policy
        if policy is not None:
            message = f"Policy {policy!r}: {message}"
        super().__init__(message, code)


class UnknownResourceError(PolicyCompilationError):
    def __init__(self, resource: str, policy: str | None = None):
        self.resource = resource
        super().__init__(f"unknown resource {resource!r}", "unknown_resource", policy)


class UnknownCapabilityError(PolicyCompilationError):
    def __init__(self, resource: str, name: str, policy: str | None = None):
        self.resource = resource
        self.name = name
        super().__init__(
            f"{name!r} is neither a capability nor an alias of {resource!r}",
            "unknown_capability",
            policy,
        )


# -----------------------------------------------------------------------------
# Collaborator failures
# -----------------------------------------------------------------------------


class ResolutionError(EngineError):
    """Base class for failures of the host's secret/policy lookups."""


class SecretResolutionError(ResolutionError):
    def __init__(self, reason: str = "secret could not be resolved"):
        super().__init__(f"Secret resolution failed: {reason}", "secret_resolution_failed")


class PolicyResolutionError(ResolutionError):
    def __init__(self, name: str, reason: str = "policy could not be resolved"):
        self.name = name
        super().__init__(
            f"Policy {name!r} resolution failed: {reason}",
            "policy_resolution_failed",
        )


__all__ = [
    "AclKitError",
    "NotAuthorizedError",
    "EngineError",
    "ConfigurationError",
    "CancellationError",
    "ModelMismatchError",
    "ModelValidationError",
    "InvalidNameError",
    "ModelFrozenError",
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
