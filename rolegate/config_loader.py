"""
Role definition loader.

Loads static role definitions from a YAML file:

    roles:
      guest:
        abilities:
          books: {read: true, update: false}
      user:
        inherits: [guest]
        description: Signed-in reader
        abilities:
          books: {update: true}
          drafts: false

Only boolean abilities can be expressed in a file; predicates are defined in
code. Definitions are returned parents-first so they can be applied to a
registry in order.
"""

import yaml
import logging
from pathlib import Path
from typing import Any, Collection, Dict, List, Optional, Union
from dataclasses import dataclass, field, asdict

from .errors import RoleConfigError

logger = logging.getLogger(__name__)

ROLE_KEYS = frozenset({"inherits", "abilities", "description"})


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class RoleDefinition:
    """A role as written in a definition file."""
    name: str
    inherits: List[str] = field(default_factory=list)
    abilities: Dict[str, Any] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self):
        """Validate field values."""
        if not self.name or not isinstance(self.name, str):
            raise ValueError("role name must be a non-empty string")

        if isinstance(self.inherits, str):
            self.inherits = [self.inherits]
        if not isinstance(self.inherits, list) or not all(isinstance(p, str) for p in self.inherits):
            raise ValueError(f"inherits must be a role name or a list of role names, got {self.inherits!r}")
        if self.name in self.inherits:
            raise ValueError("a role cannot inherit from itself")

        if not isinstance(self.abilities, dict):
            raise ValueError(f"abilities must be a mapping, got {type(self.abilities).__name__}")
        for entity, actions in self.abilities.items():
            if actions is False or actions is None:
                continue
            if not isinstance(actions, dict):
                raise ValueError(
                    f"abilities for '{entity}' must be a mapping, false or null, "
                    f"got {type(actions).__name__}"
                )
            for action, value in actions.items():
                if not isinstance(value, bool):
                    raise ValueError(
                        f"ability '{entity}.{action}' must be true or false, got {value!r}"
                    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


# ============================================================================
# Loading
# ============================================================================

def _parse_roles(data: Any, path: str) -> List[RoleDefinition]:
    if data is None:
        logger.warning(f"Role definition file {path} is empty")
        return []
    if not isinstance(data, dict):
        raise RoleConfigError(f"document must be a mapping, got {type(data).__name__}", path)

    roles = data.get("roles") or {}
    if not isinstance(roles, dict):
        raise RoleConfigError(f"'roles' must be a mapping, got {type(roles).__name__}", path)

    definitions = []
    for name, body in roles.items():
        body = body or {}
        if not isinstance(body, dict):
            raise RoleConfigError(f"role '{name}' must be a mapping", path)

        unknown = set(body) - ROLE_KEYS
        if unknown:
            raise RoleConfigError(f"role '{name}' has unknown keys {sorted(unknown)}", path)

        try:
            definitions.append(RoleDefinition(
                name=name,
                inherits=body.get("inherits") or [],
                abilities=body.get("abilities") or {},
                description=body.get("description") or "",
            ))
        except ValueError as e:
            raise RoleConfigError(f"invalid role '{name}': {e}", path) from e

    return definitions


def _order_parents_first(
    definitions: List[RoleDefinition],
    known_roles: Collection[str],
    path: str,
) -> List[RoleDefinition]:
    by_name = {d.name: d for d in definitions}
    ordered: List[RoleDefinition] = []
    state: Dict[str, str] = {}  # name -> "visiting" | "done"

    def visit(definition: RoleDefinition, chain: List[str]):
        if state.get(definition.name) == "done":
            return
        if state.get(definition.name) == "visiting":
            cycle = " -> ".join(chain + [definition.name])
            raise RoleConfigError(f"inheritance cycle: {cycle}", path)

        state[definition.name] = "visiting"
        for parent in definition.inherits:
            if parent in by_name:
                visit(by_name[parent], chain + [definition.name])
            elif parent not in known_roles:
                raise RoleConfigError(
                    f"role '{definition.name}' inherits from undefined role '{parent}'", path
                )
        state[definition.name] = "done"
        ordered.append(definition)

    for definition in definitions:
        visit(definition, [])

    return ordered


def load_role_definitions(
    path: Union[str, Path],
    known_roles: Optional[Collection[str]] = None,
) -> List[RoleDefinition]:
    """
    Load role definitions from a YAML file.

    Args:
        path: Definition file path
        known_roles: Role names already defined in the target registry; they
            may be used as parents without appearing in the file

    Returns:
        Definitions ordered so that every parent precedes its children

    Raises:
        RoleConfigError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    known_roles = known_roles or ()

    if not path.exists():
        raise RoleConfigError("role definition file not found", str(path))

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise RoleConfigError(f"failed to parse YAML: {e}", str(path)) from e

    definitions = _parse_roles(data, str(path))
    ordered = _order_parents_first(definitions, known_roles, str(path))
    logger.debug(f"Parsed {len(ordered)} role definitions from {path}")
    return ordered


def apply_role_definitions(registry, definitions: List[RoleDefinition]) -> None:
    """
    Define each role on a registry, in order.

    Args:
        registry: RoleRegistry to populate
        definitions: Output of load_role_definitions

    Raises:
        DuplicateRoleError: If a role is already defined in the registry
    """
    for definition in definitions:
        registry.define(definition.name, *definition.inherits, definition.abilities)
