"""
Guards for ability-based authorization of plain callables.

Provides a decorator that runs RoleRegistry.authorize() before the wrapped
function, for both sync and async functions.
"""

import inspect
import logging
from functools import wraps
from typing import Any, Callable, Optional

from .registry import RoleRegistry, get_registry

logger = logging.getLogger(__name__)


# ============================================================================
# Guard Decorator
# ============================================================================

def require(
    action: str,
    entity: str,
    subject: Optional[str] = None,
    registry: Optional[RoleRegistry] = None,
) -> Callable:
    """
    Decorator to require an ability before calling a function.

    Args:
        action: Action name, e.g. "update"
        entity: Entity name, e.g. "books"
        subject: Name of the wrapped function's parameter whose value is
            passed to predicate abilities
        registry: Registry to check against; defaults to the process-wide
            registry, looked up on each call

    Returns:
        Decorator function

    Raises:
        AccessDeniedError: When called and no current role grants the ability
        TypeError: At decoration time, if ``subject`` is not a parameter of
            the wrapped function

    Examples:
        >>> @require("update", "books", subject="book")
        >>> def save_book(book, changes):
        >>>     # Only runs if a current role may update this book
        >>>     ...
    """
    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)
        if subject is not None and subject not in signature.parameters:
            raise TypeError(
                f"@require({action!r}, {entity!r}) names subject '{subject}', "
                f"which is not a parameter of {func.__qualname__}"
            )
        if subject is not None and signature.parameters[subject].kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            raise TypeError(
                f"@require({action!r}, {entity!r}) names subject '{subject}', "
                f"which is a variadic parameter of {func.__qualname__}"
            )

        def _authorize(args, kwargs):
            subject_args = ()
            if subject is not None:
                bound = signature.bind_partial(*args, **kwargs)
                if subject in bound.arguments:
                    subject_args = (bound.arguments[subject],)
                else:
                    default = signature.parameters[subject].default
                    if default is not inspect.Parameter.empty:
                        subject_args = (default,)

            target = registry if registry is not None else get_registry()
            target.authorize(action, entity, *subject_args)
            logger.debug(f"Access granted: {func.__qualname__} requires {action} on {entity}")

        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            _authorize(args, kwargs)
            return await func(*args, **kwargs)

        @wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            _authorize(args, kwargs)
            return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
