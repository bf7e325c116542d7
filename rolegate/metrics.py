# rolegate/metrics.py — permission check counters and denial auditing

import time
import threading
import logging
from typing import Dict, Any, Optional, Sequence
from dataclasses import dataclass, field


@dataclass
class MetricCounter:
    """A counter metric that can only increase."""
    name: str
    value: int = 0
    labels: Dict[str, str] = field(default_factory=dict)
    last_updated: float = field(default_factory=time.time)


class MetricsCollector:
    """Thread-safe metrics collector."""

    def __init__(self):
        self._lock = threading.RLock()
        self._counters: Dict[str, MetricCounter] = {}
        self._start_time = time.time()

    def _get_metric_key(self, name: str, labels: Dict[str, str] = None) -> str:
        """Generate a unique key for a metric with labels."""
        if not labels:
            return name
        sorted_labels = sorted(labels.items())
        label_str = ",".join(f"{k}={v}" for k, v in sorted_labels)
        return f"{name}{{{label_str}}}"

    def increment_counter(self, name: str, value: int = 1, labels: Dict[str, str] = None):
        """Increment a counter metric."""
        with self._lock:
            key = self._get_metric_key(name, labels)
            if key not in self._counters:
                self._counters[key] = MetricCounter(name=name, labels=labels or {})
            self._counters[key].value += value
            self._counters[key].last_updated = time.time()

    def get_counter(self, name: str, labels: Dict[str, str] = None) -> int:
        """Get the current value of a counter."""
        with self._lock:
            key = self._get_metric_key(name, labels)
            counter = self._counters.get(key)
            return counter.value if counter else 0

    def get_all_metrics(self) -> Dict[str, Any]:
        """Get all metrics in a structured format."""
        with self._lock:
            metrics = {
                "counters": {},
                "uptime_seconds": time.time() - self._start_time,
                "timestamp": time.time()
            }

            for counter in self._counters.values():
                metrics["counters"].setdefault(counter.name, []).append({
                    "value": counter.value,
                    "labels": counter.labels,
                    "last_updated": counter.last_updated
                })

            return metrics

    def reset_metrics(self):
        """Reset all metrics to zero."""
        with self._lock:
            self._counters.clear()
            self._start_time = time.time()


# Global metrics collector instance
_metrics = MetricsCollector()

audit_logger = logging.getLogger("rolegate.audit")


def increment_counter(name: str, value: int = 1, labels: Dict[str, str] = None):
    """Increment a counter metric."""
    _metrics.increment_counter(name, value, labels)


def get_counter(name: str, labels: Dict[str, str] = None) -> int:
    """Get the current value of a counter."""
    return _metrics.get_counter(name, labels)


def get_all_metrics() -> Dict[str, Any]:
    """Get all metrics in a structured format."""
    return _metrics.get_all_metrics()


def reset_metrics():
    """Reset all metrics."""
    _metrics.reset_metrics()


# ============================================================================
# Registry Metrics and Auditing
# ============================================================================

def record_ability_check(allowed: bool, action: str, entity: str):
    """
    Record a permission check.

    Args:
        allowed: Whether any current role granted the ability
        action: Action being checked
        entity: Entity being checked
    """
    labels = {"entity": entity, "action": action}
    if allowed:
        increment_counter("rolegate.checks.allowed")
        increment_counter("rolegate.checks.allowed.by_ability", labels=labels)
    else:
        increment_counter("rolegate.checks.denied")
        increment_counter("rolegate.checks.denied.by_ability", labels=labels)


def record_role_defined(role: str):
    """
    Record a role definition.

    Args:
        role: Name of the defined role
    """
    increment_counter("rolegate.roles.defined")
    increment_counter("rolegate.roles.defined.by_role", labels={"role": role})


def audit_access_denial(
    action: str,
    entity: str,
    roles: Sequence[str],
    metadata: Optional[Dict[str, Any]] = None
):
    """
    Emit audit log entry for a denied authorization.

    Args:
        action: Action that was denied
        entity: Entity the action targeted
        roles: Roles in effect at check time
        metadata: Additional context
    """
    audit_entry = {
        "event": "access_denial",
        "action": action,
        "entity": entity,
        "roles": list(roles),
        "timestamp": time.time(),
    }

    if metadata:
        audit_entry["metadata"] = metadata

    audit_logger.warning(
        f"ACCESS_DENIAL action={action} entity={entity} roles={','.join(roles)}",
        extra={"audit": audit_entry}
    )

    increment_counter("rolegate.audit.denials")
    increment_counter("rolegate.audit.denials.by_entity", labels={"entity": entity})


def get_rbac_metrics() -> Dict[str, Any]:
    """
    Get all rolegate metrics grouped by category.

    Returns:
        Dictionary with "checks", "roles" and "audit" sections
    """
    all_metrics = _metrics.get_all_metrics()
    grouped: Dict[str, Dict[str, Any]] = {"checks": {}, "roles": {}, "audit": {}}

    for metric_name, metric_data in all_metrics.get("counters", {}).items():
        if not metric_name.startswith("rolegate."):
            continue
        category = metric_name.split(".")[1]
        grouped.setdefault(category, {})[metric_name] = metric_data

    return grouped
