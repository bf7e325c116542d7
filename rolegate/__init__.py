"""
Role-based access control for in-process permission checks.

Provides ability maps and their merge, the role registry with inheritance,
current role selectors, guards, and role definition loading.
"""

from .abilities import (
    # Ability variants
    Ability,
    Boolean,
    Predicate,
    ALLOW,
    DENY,
    # Functions
    to_ability,
    merge,
)

from .selector import (
    CurrentRoleSelector,
    Fixed,
    Dynamic,
    to_selector,
)

from .errors import (
    RoleGateError,
    DuplicateRoleError,
    UnknownRoleError,
    AccessDeniedError,
    RoleConfigError,
)

from .registry import (
    # Registry
    RoleRegistry,
    DEFAULT_ROLE,
    # Global registry functions
    get_registry,
    configure_registry,
    reset_registry,
    define,
    reset,
    can,
    authorize,
)

from .guards import require

from .config import load_config

from .config_loader import (
    RoleDefinition,
    load_role_definitions,
    apply_role_definitions,
)

__all__ = [
    # Abilities
    "Ability",
    "Boolean",
    "Predicate",
    "ALLOW",
    "DENY",
    "to_ability",
    "merge",
    # Selectors
    "CurrentRoleSelector",
    "Fixed",
    "Dynamic",
    "to_selector",
    # Errors
    "RoleGateError",
    "DuplicateRoleError",
    "UnknownRoleError",
    "AccessDeniedError",
    "RoleConfigError",
    # Registry
    "RoleRegistry",
    "DEFAULT_ROLE",
    "get_registry",
    "configure_registry",
    "reset_registry",
    "define",
    "reset",
    "can",
    "authorize",
    # Guards
    "require",
    # Configuration
    "load_config",
    "RoleDefinition",
    "load_role_definitions",
    "apply_role_definitions",
]
