# rolegate/config.py — environment settings for the default registry

import os

# Optional knobs with defaults; nothing here is required.
DEFAULTS = {
    "ROLEGATE_DEFAULT_ROLE": "guest",
    "ROLEGATE_STRICT_INHERITANCE": False,
    "ROLEGATE_METRICS_ENABLED": True,
    "ROLEGATE_AUDIT_DENIALS": True,
    "ROLEGATE_ROLES_FILE": None,  # YAML role definitions applied on startup
}

BOOLEAN_KEYS = (
    "ROLEGATE_STRICT_INHERITANCE",
    "ROLEGATE_METRICS_ENABLED",
    "ROLEGATE_AUDIT_DENIALS",
)

_TRUE_VALUES = ('true', '1', 'yes', 'on')
_FALSE_VALUES = ('false', '0', 'no', 'off', '')


def _parse_bool(key, val):
    if not isinstance(val, str):
        return bool(val)
    lowered = val.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise RuntimeError(f"{key} must be a boolean (true/false/1/0/yes/no/on/off), got: {val}")


def load_config():
    """
    Load rolegate settings from the environment.
    Returns a dict of DEFAULTS keys with types normalized; raises RuntimeError
    on values that cannot be interpreted.
    """
    cfg = {}

    for k, v in DEFAULTS.items():
        val = os.getenv(k, v)

        if k in BOOLEAN_KEYS:
            val = _parse_bool(k, val)
        elif k == "ROLEGATE_DEFAULT_ROLE":
            val = (val or "").strip()
            if not val:
                raise RuntimeError("ROLEGATE_DEFAULT_ROLE must be a non-empty role name")
        elif k == "ROLEGATE_ROLES_FILE":
            val = val.strip() if isinstance(val, str) and val.strip() else None

        cfg[k] = val

    return cfg


def registry_options(cfg=None):
    """Translate a config dict into RoleRegistry keyword arguments."""
    cfg = cfg if cfg is not None else load_config()
    return {
        "default_role": cfg["ROLEGATE_DEFAULT_ROLE"],
        "strict_inheritance": cfg["ROLEGATE_STRICT_INHERITANCE"],
        "metrics_enabled": cfg["ROLEGATE_METRICS_ENABLED"],
        "audit_denials": cfg["ROLEGATE_AUDIT_DENIALS"],
    }
