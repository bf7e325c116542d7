"""
Current role selector.

The selector tells the registry which role(s) apply to the acting principal
when ``can()`` runs. It is either a fixed list of role names or a callable
that is re-evaluated on every check, e.g. one reading roles from the session.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Tuple

logger = logging.getLogger(__name__)

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def role_names(value: Any) -> Tuple[str, ...]:
    """
    Normalize a selector value into a tuple of role names.

    A single string becomes a one-element tuple; sequences keep their string
    members in order. Anything else yields no roles.

    Examples:
        >>> role_names("admin")
        ('admin',)
        >>> role_names(["user", "moderator"])
        ('user', 'moderator')
        >>> role_names(None)
        ()
    """
    if isinstance(value, str):
        return (value,)
    if isinstance(value, _SEQUENCE_TYPES):
        names = tuple(name for name in value if isinstance(name, str))
        if len(names) != len(value):
            logger.debug(f"Ignoring non-string role names in selector value: {value!r}")
        return names
    if value is not None:
        logger.debug(f"Selector value {value!r} does not name any roles")
    return ()


class CurrentRoleSelector:
    """Resolves the role names in effect for a permission check."""

    def resolve(self) -> Tuple[str, ...]:
        raise NotImplementedError


@dataclass(frozen=True)
class Fixed(CurrentRoleSelector):
    """Selector holding a fixed, ordered set of role names."""
    names: Tuple[str, ...]

    def resolve(self) -> Tuple[str, ...]:
        return self.names


@dataclass(frozen=True)
class Dynamic(CurrentRoleSelector):
    """Selector calling ``fn()`` on every resolve, without caching."""
    fn: Callable[[], Any]

    def resolve(self) -> Tuple[str, ...]:
        return role_names(self.fn())


def to_selector(value: Any) -> CurrentRoleSelector:
    """
    Build a selector from a role name, a sequence of role names or a callable.

    Args:
        value: Selector instance, str, sequence of str, or zero-argument callable

    Returns:
        CurrentRoleSelector
    """
    if isinstance(value, CurrentRoleSelector):
        return value
    if callable(value):
        return Dynamic(value)
    return Fixed(role_names(value))
