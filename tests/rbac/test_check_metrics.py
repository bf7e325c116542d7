"""
Tests for permission check metrics and denial audit logging.
"""

import logging

import pytest
from unittest.mock import patch

from rolegate import RoleRegistry, AccessDeniedError
from rolegate.metrics import (
    record_ability_check,
    record_role_defined,
    audit_access_denial,
    get_counter,
    get_rbac_metrics,
    increment_counter,
    reset_metrics,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def clean_metrics():
    """Reset metrics before each test."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def registry():
    registry = RoleRegistry()
    registry.define("guest", {"books": {"read": True, "update": False}})
    return registry


# ============================================================================
# Counters
# ============================================================================

class TestCheckMetrics:
    """Test that checks are counted."""

    def test_allowed_check_increments_counter(self):
        record_ability_check(allowed=True, action="read", entity="books")

        assert get_counter("rolegate.checks.allowed") == 1
        assert get_counter(
            "rolegate.checks.allowed.by_ability",
            labels={"entity": "books", "action": "read"},
        ) == 1
        assert get_counter("rolegate.checks.denied") == 0

    def test_denied_check_increments_counter(self):
        record_ability_check(allowed=False, action="update", entity="books")

        assert get_counter("rolegate.checks.denied") == 1
        assert get_counter(
            "rolegate.checks.denied.by_ability",
            labels={"action": "update", "entity": "books"},
        ) == 1

    def test_registry_records_checks(self, registry):
        registry.can("read", "books")
        registry.can("read", "books")
        registry.can("update", "books")

        assert get_counter("rolegate.checks.allowed") == 2
        assert get_counter("rolegate.checks.denied") == 1

    def test_registry_records_definitions(self, registry):
        registry.define("user", "guest", {"books": {"update": True}})

        assert get_counter("rolegate.roles.defined") == 2
        assert get_counter("rolegate.roles.defined.by_role", labels={"role": "user"}) == 1

    def test_disabled_metrics_record_nothing(self):
        registry = RoleRegistry(metrics_enabled=False)
        registry.define("guest", {"books": {"read": True}})
        registry.can("read", "books")

        assert get_counter("rolegate.checks.allowed") == 0
        assert get_counter("rolegate.roles.defined") == 0

    def test_role_defined_is_labelled_by_role(self):
        """Definitions in separate registries are counted per role name."""
        record_role_defined("guest")
        RoleRegistry().define("guest", {})
        RoleRegistry().define("admin", {})

        assert get_counter("rolegate.roles.defined") == 3
        assert get_counter("rolegate.roles.defined.by_role", labels={"role": "guest"}) == 2
        assert get_counter("rolegate.roles.defined.by_role", labels={"role": "admin"}) == 1

    def test_grouped_metrics(self, registry):
        registry.can("read", "books")
        increment_counter("unrelated.counter")

        grouped = get_rbac_metrics()
        assert "rolegate.checks.allowed" in grouped["checks"]
        assert "rolegate.roles.defined" in grouped["roles"]
        assert "rolegate.roles.defined.by_role" in grouped["roles"]
        assert all("unrelated.counter" not in section for section in grouped.values())


# ============================================================================
# Audit
# ============================================================================

class TestAudit:
    """Test denial audit entries."""

    def test_audit_entry_is_logged(self):
        with patch("rolegate.metrics.audit_logger") as mock_log:
            audit_access_denial(action="update", entity="books", roles=["guest"])

        mock_log.warning.assert_called_once()
        message = mock_log.warning.call_args[0][0]
        audit = mock_log.warning.call_args[1]["extra"]["audit"]
        assert "ACCESS_DENIAL" in message
        assert audit["event"] == "access_denial"
        assert audit["action"] == "update"
        assert audit["roles"] == ["guest"]

    def test_audit_metadata_included(self):
        with patch("rolegate.metrics.audit_logger") as mock_log:
            audit_access_denial("update", "books", ["guest"], metadata={"book_id": 7})

        audit = mock_log.warning.call_args[1]["extra"]["audit"]
        assert audit["metadata"] == {"book_id": 7}

    def test_audit_increments_counters(self):
        audit_access_denial("update", "books", ["guest"])

        assert get_counter("rolegate.audit.denials") == 1
        assert get_counter("rolegate.audit.denials.by_entity", labels={"entity": "books"}) == 1

    def test_authorize_denial_is_audited(self, registry, caplog):
        with caplog.at_level(logging.WARNING, logger="rolegate.audit"):
            with pytest.raises(AccessDeniedError):
                registry.authorize("update", "books")

        assert get_counter("rolegate.audit.denials") == 1
        assert "entity=books" in caplog.text
