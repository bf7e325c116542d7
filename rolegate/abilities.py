"""
Ability values and ability-map composition.

An ability map is a two-level mapping ``{entity: {action: value}}`` holding
the values exactly as they were defined. At evaluation time each value is
dispatched through one of two variants, built by ``to_ability``:

- ``Boolean``: a static grant or denial
- ``Predicate``: a callable evaluated against the subject arguments given to
  ``can()``
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

AbilityMap = Dict[str, Dict[str, Any]]


# ============================================================================
# Ability Variants
# ============================================================================

class Ability:
    """Grant rule for a single (entity, action) pair."""

    def evaluate(self, *subject_args: Any) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Boolean(Ability):
    """Static ability, granted or not regardless of the subject."""
    granted: bool

    def evaluate(self, *subject_args: Any) -> bool:
        return self.granted


@dataclass(frozen=True)
class Predicate(Ability):
    """Dynamic ability decided by calling ``fn(*subject_args)``."""
    fn: Callable[..., Any]

    def evaluate(self, *subject_args: Any) -> bool:
        return bool(self.fn(*subject_args))


ALLOW = Boolean(True)
DENY = Boolean(False)


def to_ability(value: Any) -> Ability:
    """
    Convert a raw ability value into an Ability variant.

    Args:
        value: An Ability, a callable predicate, or any other value whose
            truthiness is the static grant

    Returns:
        Ability instance

    Examples:
        >>> to_ability(True)
        Boolean(granted=True)
        >>> to_ability(None)
        Boolean(granted=False)
    """
    if isinstance(value, Ability):
        return value
    if callable(value):
        return Predicate(value)
    return ALLOW if value else DENY


# ============================================================================
# Merge
# ============================================================================

def _flatten(maps: tuple) -> Iterator[Optional[Mapping]]:
    # One level only: merge(a, [b, c]) == merge(a, b, c)
    for item in maps:
        if isinstance(item, (list, tuple)):
            yield from item
        else:
            yield item


def merge(*maps: Any) -> AbilityMap:
    """
    Merge ability maps two levels deep.

    Maps are folded left to right. For every entity, the action map is
    shallow-merged onto what has been accumulated so far, so later actions
    override earlier ones and unmentioned actions survive. An entity whose
    value is ``False`` or ``None`` is removed entirely, which lets a child
    role revoke everything it inherited for that entity.

    Args:
        *maps: Ability maps, or lists/tuples of ability maps. ``None`` entries
            are ignored.

    Returns:
        New ability map; the inputs are not modified

    Raises:
        TypeError: If an argument or an entity value is not a mapping

    Examples:
        >>> merge({"books": {"read": True}}, {"books": {"update": True}})
        {'books': {'read': True, 'update': True}}
        >>> merge({"books": {"read": True}, "users": {"read": True}}, {"books": False})
        {'users': {'read': True}}
    """
    result: AbilityMap = {}

    for role_map in _flatten(maps):
        if role_map is None:
            continue
        if not isinstance(role_map, Mapping):
            raise TypeError(
                f"Ability map must be a mapping, got {type(role_map).__name__}"
            )

        for entity, abilities in role_map.items():
            if abilities is False or abilities is None:
                result.pop(entity, None)
                continue
            if not isinstance(abilities, Mapping):
                raise TypeError(
                    f"Abilities for entity '{entity}' must be a mapping, "
                    f"False or None, got {type(abilities).__name__}"
                )
            merged = dict(result.get(entity, {}))
            merged.update(abilities)
            result[entity] = merged

    return result
