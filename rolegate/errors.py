"""
Exceptions raised by the role registry and its helpers.
"""

from typing import Optional, Sequence


class RoleGateError(Exception):
    """Base class for all rolegate errors."""
    pass


class DuplicateRoleError(RoleGateError):
    """Raised when defining a role whose name is already registered."""

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role '{role_name}' already exists")


class UnknownRoleError(RoleGateError):
    """Raised under strict inheritance when a parent role is not defined."""

    def __init__(self, role_name: str, parent_name: str):
        self.role_name = role_name
        self.parent_name = parent_name
        super().__init__(
            f"Role '{role_name}' inherits from undefined role '{parent_name}'"
        )


class AccessDeniedError(RoleGateError):
    """Raised by authorize() when none of the current roles grant an ability."""

    def __init__(self, action: str, entity: str, roles: Sequence[str]):
        self.action = action
        self.entity = entity
        self.roles = list(roles)
        roles_str = ",".join(self.roles) or "<none>"
        super().__init__(
            f"Action '{action}' on '{entity}' is not allowed for roles: {roles_str}"
        )


class RoleConfigError(RoleGateError):
    """Raised when a role definition file cannot be loaded."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
