"""
Tests for the @require guard decorator.
"""

import asyncio

import pytest

from rolegate import (
    RoleRegistry,
    AccessDeniedError,
    configure_registry,
    reset_registry,
    require,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_global_registry():
    """Reset global registry before each test."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def registry():
    registry = RoleRegistry(metrics_enabled=False, audit_denials=False)
    registry.define("guest", {"books": {"read": True}})
    registry.define("user", "guest", {
        "books": {"update": lambda book: book["author_id"] == 1},
    })
    registry.current = "user"
    return registry


# ============================================================================
# Tests
# ============================================================================

class TestRequire:
    """Test guarded sync and async functions."""

    def test_allows_static_ability(self, registry):
        @require("read", "books", registry=registry)
        def list_books():
            return ["dune"]

        assert list_books() == ["dune"]

    def test_denies_missing_ability(self, registry):
        calls = []

        @require("delete", "books", registry=registry)
        def delete_book(book_id):
            calls.append(book_id)

        with pytest.raises(AccessDeniedError):
            delete_book(1)
        assert calls == []

    def test_subject_passed_positionally(self, registry):
        @require("update", "books", subject="book", registry=registry)
        def save_book(book, changes):
            return {**book, **changes}

        assert save_book({"author_id": 1}, {"title": "x"})["title"] == "x"
        with pytest.raises(AccessDeniedError):
            save_book({"author_id": 2}, {"title": "x"})

    def test_subject_passed_by_keyword(self, registry):
        @require("update", "books", subject="book", registry=registry)
        def save_book(changes, book=None):
            return True

        assert save_book({}, book={"author_id": 1}) is True
        with pytest.raises(AccessDeniedError):
            save_book({}, book={"author_id": 2})

    def test_subject_default_is_used(self, registry):
        @require("update", "books", subject="book", registry=registry)
        def save_book(book={"author_id": 1}):
            return True

        assert save_book() is True

    def test_unknown_subject_parameter_raises(self, registry):
        with pytest.raises(TypeError, match="not a parameter"):
            @require("update", "books", subject="missing", registry=registry)
            def save_book(book):
                return True

    def test_variadic_positional_subject_raises(self, registry):
        with pytest.raises(TypeError, match="variadic"):
            @require("update", "books", subject="args", registry=registry)
            def save_book(*args):
                return True

    def test_variadic_keyword_subject_raises(self, registry):
        with pytest.raises(TypeError, match="variadic"):
            @require("update", "books", subject="kwargs", registry=registry)
            def save_book(**kwargs):
                return True

    def test_preserves_function_metadata(self, registry):
        @require("read", "books", registry=registry)
        def list_books():
            """List every book."""

        assert list_books.__name__ == "list_books"
        assert list_books.__doc__ == "List every book."

    def test_async_function(self, registry):
        @require("update", "books", subject="book", registry=registry)
        async def save_book(book):
            return "saved"

        assert asyncio.run(save_book({"author_id": 1})) == "saved"
        with pytest.raises(AccessDeniedError):
            asyncio.run(save_book({"author_id": 2}))

    def test_uses_global_registry_at_call_time(self):
        @require("read", "books")
        def list_books():
            return "ok"

        registry = configure_registry(metrics_enabled=False, audit_denials=False)
        with pytest.raises(AccessDeniedError):
            list_books()

        registry.define("guest", {"books": {"read": True}})
        assert list_books() == "ok"
