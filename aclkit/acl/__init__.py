"""Merged ACLs and the authorization decision."""

from aclkit.acl.engine import ACL, ResourceGrants, merge
from aclkit.acl.models import Decision

__all__ = [
    "ACL",
    "Decision",
    "ResourceGrants",
    "merge",
]
