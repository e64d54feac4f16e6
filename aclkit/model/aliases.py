"""Alias graph expansion.

Aliases are expanded depth-first into the set of leaf capabilities they
stand for. Results are memoized per alias for the whole validation pass;
the current traversal path is tracked separately so that a cycle can be
told apart from an alias that was already expanded through another route.
"""

from __future__ import annotations

from collections.abc import Mapping, Set

from aclkit.errors import AliasCycleError, ShadowedCapabilityError, UndefinedAliasTargetError


def expand_aliases(
    resource: str,
    capabilities: Set[str],
    aliases: Mapping[str, tuple[str, ...]],
) -> dict[str, frozenset[str]]:
    """Expand every alias of one resource.

    Args:
        resource: Resource name (used in error reports)
        capabilities: Declared capability names
        aliases: Alias name -> ordered target names

    Returns:
        Alias name -> frozenset of capability names

    Raises:
        AliasCycleError: If aliases reference each other in a loop
        UndefinedAliasTargetError: If a target is neither an alias nor a capability
        ShadowedCapabilityError: If an alias named like a capability omits its own name
    """
    for alias, targets in aliases.items():
        if alias in capabilities and alias not in targets:
            raise ShadowedCapabilityError(resource, alias)

    memo: dict[str, frozenset[str]] = {}
    for alias in aliases:
        _expand(alias, resource, capabilities, aliases, memo, [])
    return memo


def _expand(
    name: str,
    resource: str,
    capabilities: Set[str],
    aliases: Mapping[str, tuple[str, ...]],
    memo: dict[str, frozenset[str]],
    path: list[str],
) -> frozenset[str]:
    if name in memo:
        return memo[name]
    if name in path:
        raise AliasCycleError(resource, path[path.index(name):] + [name])

    path.append(name)
    collected: set[str] = set()

    for target in aliases[name]:
        if target == name:
            # An alias listing its own name means the capability it shadows
            if target in capabilities:
                collected.add(target)
                continue
            raise AliasCycleError(resource, [name, name])

        if target in aliases:
            collected |= _expand(target, resource, capabilities, aliases, memo, path)
        elif target in capabilities:
            collected.add(target)
        else:
            raise UndefinedAliasTargetError(resource, name, target)

    path.pop()
    memo[name] = frozenset(collected)
    return memo[name]
