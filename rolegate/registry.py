"""
Role registry and permission evaluation.

A RoleRegistry maps role names to resolved ability maps and answers
"can the current role(s) perform ACTION on ENTITY?". Roles are defined once,
optionally inheriting from roles defined earlier:

    registry = RoleRegistry()
    registry.define("guest", {"books": {"read": True}})
    registry.define("user", "guest", {
        "books": {"update": lambda book: book.author_id == current_user.id},
    })
    registry.define("admin", "user", {"books": {"update": True}})

    registry.current = ["user", "moderator"]   # or "admin", or a callable
    if registry.can("update", "books", book):
        ...

A process-wide registry is available through get_registry() and the
module-level define/reset/can/authorize helpers.
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from .abilities import AbilityMap, merge, to_ability
from .config import load_config, registry_options
from .config_loader import apply_role_definitions, load_role_definitions
from .errors import AccessDeniedError, DuplicateRoleError, UnknownRoleError
from .metrics import audit_access_denial, record_ability_check, record_role_defined
from .selector import CurrentRoleSelector, to_selector

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "guest"


# ============================================================================
# Role Registry
# ============================================================================

class RoleRegistry:
    """
    Registry of roles and their abilities.

    Writers (define, reset, dispose) are serialized by a lock; can() only
    reads and takes no lock.
    """

    def __init__(
        self,
        default_role: str = DEFAULT_ROLE,
        strict_inheritance: bool = False,
        metrics_enabled: bool = True,
        audit_denials: bool = True,
    ):
        """
        Initialize an empty registry.

        Args:
            default_role: Current role selector value after construction and reset
            strict_inheritance: Raise UnknownRoleError when define() names an
                undefined parent role instead of ignoring it
            metrics_enabled: Record allowed/denied counters for each check
            audit_denials: Emit audit log entries when authorize() denies
        """
        self.default_role = default_role
        self.strict_inheritance = strict_inheritance
        self.metrics_enabled = metrics_enabled
        self.audit_denials = audit_denials

        self._lock = threading.RLock()
        self._roles: dict = {}
        self._current: Any = default_role
        self._selector: CurrentRoleSelector = to_selector(default_role)
        self._disposed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def roles(self) -> Mapping[str, AbilityMap]:
        """Read-only view of role name -> resolved ability map."""
        return MappingProxyType(self._roles)

    @property
    def current(self) -> Any:
        """The current role selector value, as it was assigned."""
        return self._current

    @current.setter
    def current(self, value: Any) -> None:
        self._selector = to_selector(value)
        self._current = value

    @property
    def selector(self) -> CurrentRoleSelector:
        return self._selector

    @property
    def disposed(self) -> bool:
        return self._disposed

    def current_roles(self) -> Tuple[str, ...]:
        """Resolve the selector into the role names currently in effect."""
        return self._selector.resolve()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def define(self, name: str, *sources: Any) -> None:
        """
        Define a role from ability maps and/or existing role names.

        Sources are merged left to right (see abilities.merge), so
        ``define("admin", "user", {"books": {"update": True}})`` starts from
        the abilities of "user" and layers the override on top.

        Args:
            name: New role name
            *sources: Ability maps, or names of roles defined earlier

        Raises:
            DuplicateRoleError: If a role with this name already exists
            UnknownRoleError: If strict_inheritance is on and a source names
                an undefined role
            RuntimeError: If the registry has been disposed
        """
        with self._lock:
            if self._disposed:
                raise RuntimeError("RoleRegistry has been disposed")
            if name in self._roles:
                raise DuplicateRoleError(name)

            maps = []
            for source in sources:
                if not isinstance(source, str):
                    maps.append(source)
                    continue
                parent = self._roles.get(source)
                if parent is None:
                    if self.strict_inheritance:
                        raise UnknownRoleError(name, source)
                    logger.warning(
                        f"Role '{name}' inherits from undefined role '{source}', ignoring it"
                    )
                maps.append(parent)

            abilities = merge(maps)
            self._roles[name] = abilities

        logger.debug(f"Defined role '{name}' with entities {sorted(abilities)}")
        if self.metrics_enabled:
            record_role_defined(name)

    def reset(self) -> None:
        """Drop every role and restore the default current role."""
        with self._lock:
            self._roles = {}
            self.current = self.default_role
        logger.debug(f"Registry reset, current role is '{self.default_role}'")

    def dispose(self) -> None:
        """Reset the registry and refuse further definitions."""
        with self._lock:
            self.reset()
            self._disposed = True

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _check(self, action: str, entity: str, subject_args: tuple) -> Tuple[bool, Tuple[str, ...]]:
        names = self._selector.resolve()
        roles = self._roles

        allowed = False
        for role_name in names:
            value = roles.get(role_name, {}).get(entity, {}).get(action)
            if to_ability(value).evaluate(*subject_args):
                allowed = True
                break

        logger.debug(
            f"can({action!r}, {entity!r}) for roles={list(names)} -> {allowed}"
        )
        if self.metrics_enabled:
            record_ability_check(allowed, action, entity)
        return allowed, names

    def can(self, action: str, entity: str, *subject_args: Any) -> bool:
        """
        Check whether any current role may perform an action on an entity.

        Unknown roles, entities and actions deny. Predicate abilities are
        called with ``subject_args``.

        Args:
            action: Action name, e.g. "read" or "update"
            entity: Entity name, e.g. "books"
            *subject_args: Passed to predicate abilities, typically the object
                being acted on

        Returns:
            True if at least one current role grants the ability
        """
        allowed, _ = self._check(action, entity, subject_args)
        return allowed

    def authorize(self, action: str, entity: str, *subject_args: Any) -> None:
        """
        Like can(), but raise instead of returning False.

        Raises:
            AccessDeniedError: If no current role grants the ability
        """
        allowed, names = self._check(action, entity, subject_args)
        if allowed:
            return

        if self.audit_denials:
            audit_access_denial(action=action, entity=entity, roles=names)
        raise AccessDeniedError(action, entity, names)


# ============================================================================
# Global Registry Instance
# ============================================================================

_global_registry: Optional[RoleRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> RoleRegistry:
    """
    Get the process-wide registry, creating it from the environment if needed.

    When ROLEGATE_ROLES_FILE is set, its role definitions are applied to the
    new registry.
    """
    global _global_registry

    with _registry_lock:
        if _global_registry is None:
            cfg = load_config()
            registry = RoleRegistry(**registry_options(cfg))

            roles_file = cfg["ROLEGATE_ROLES_FILE"]
            if roles_file:
                definitions = load_role_definitions(roles_file, known_roles=registry.roles)
                apply_role_definitions(registry, definitions)
                logger.info(f"Loaded {len(definitions)} roles from {roles_file}")

            _global_registry = registry

        return _global_registry


def configure_registry(**kwargs: Any) -> RoleRegistry:
    """
    Replace the process-wide registry with a new one.

    Args:
        **kwargs: RoleRegistry constructor arguments

    Returns:
        Configured RoleRegistry instance
    """
    global _global_registry

    with _registry_lock:
        if _global_registry is not None:
            _global_registry.dispose()
        _global_registry = RoleRegistry(**kwargs)

    logger.info("Configured global role registry")
    return _global_registry


def reset_registry() -> None:
    """Drop the process-wide registry (useful for testing)."""
    global _global_registry

    with _registry_lock:
        if _global_registry is not None:
            _global_registry.dispose()
        _global_registry = None


def define(name: str, *sources: Any) -> None:
    """Define a role on the process-wide registry."""
    get_registry().define(name, *sources)


def reset() -> None:
    """Reset the process-wide registry."""
    get_registry().reset()


def can(action: str, entity: str, *subject_args: Any) -> bool:
    """Check an ability against the process-wide registry."""
    return get_registry().can(action, entity, *subject_args)


def authorize(action: str, entity: str, *subject_args: Any) -> None:
    """Authorize an ability against the process-wide registry."""
    get_registry().authorize(action, entity, *subject_args)
