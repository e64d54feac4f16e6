"""Resource/capability/alias model.

Usage:
    from aclkit.model import Model

    model = Model()
    model.define_resource("book").capabilities("read", "write")
    model.validate()
"""

from aclkit.model.aliases import expand_aliases
from aclkit.model.registry import Model, ResourceBuilder, ResourceDefinition

__all__ = [
    "Model",
    "ResourceBuilder",
    "ResourceDefinition",
    "expand_aliases",
]
