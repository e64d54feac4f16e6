"""FastAPI dependency helpers for hosts that expose HTTP endpoints.

Usage:
    resolver = Resolver(config)

    @app.get("/books/{book_id}")
    def read_book(
        book_id: str,
        acl: ACL = Depends(require_capability(resolver, "book", "read", instance_param="book_id")),
    ):
        ...
"""

import logging

from aclkit.acl import ACL
from aclkit.errors import CancellationError, EngineError, NotAuthorizedError, ResolutionError
from aclkit.policy import WILDCARD
from aclkit.resolver import ResolveContext, Resolver

logger = logging.getLogger(__name__)


def bearer_secret(authorization: str) -> str | None:
    """Extract the secret from an `Authorization: Bearer ...` header value."""
    if not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None  # Remove "Bearer " prefix


def require_capability(
    resolver: Resolver,
    resource: str,
    capability: str,
    instance_param: str | None = None,
    timeout_seconds: float | None = None,
):
    """FastAPI dependency to require a capability on a resource instance.

    The instance is read from the path parameter named `instance_param`;
    without one the check runs against the wildcard instance.

    Failures map to:
    - 401: missing/malformed credentials, or the secret/policies cannot be resolved
    - 403: the ACL does not grant the capability
    - 500: a policy does not compile against the model
    - 503: resolution was cancelled or timed out
    """
    from fastapi import HTTPException, Request, status

    def dependency(request: Request) -> ACL:
        secret = bearer_secret(request.headers.get("Authorization", ""))
        if secret is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={
                    "error": "authentication_required",
                    "message": "No bearer secret provided",
                    "code": "missing_token",
                },
                headers={"WWW-Authenticate": "Bearer"},
            )

        instance = request.path_params.get(instance_param, WILDCARD) if instance_param else WILDCARD
        ctx = ResolveContext(timeout=timeout_seconds)

        try:
            acl = resolver.resolve_secret(secret, ctx)
            acl.check_authorized(resource, instance, capability)
        except NotAuthorizedError as e:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "forbidden",
                    "message": e.message,
                    "code": e.code,
                    "resource": resource,
                    "capability": capability,
                },
            )
        except CancellationError as e:
            logger.warning("Authorization aborted for %s: %s", request.url.path, e.reason)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"error": "unavailable", "message": e.message, "code": e.code},
            )
        except ResolutionError as e:
            logger.warning("Authorization failed for %s: %s", request.url.path, e.message)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"error": "authentication_failed", "message": e.message, "code": e.code},
                headers={"WWW-Authenticate": "Bearer"},
            )
        except EngineError as e:
            logger.error("Authorization error for %s: %s", request.url.path, e.message)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": "internal_error", "message": e.message, "code": e.code},
            )

        return acl

    return dependency
