"""
Read-cache invalidation hook

Whatever caches the read side keeps (stock views, order lists, production
boards) lives outside this service. Mutating endpoints call ``invalidate``
after their transaction commits with the scopes they touched, and every
registered hook is told which scopes went stale.

Hook failures are logged and swallowed: a stale cache must not turn a
committed write into an error response.
"""
from typing import Callable, List

from stockflow.logging_config import get_logger

logger = get_logger(__name__)

STOCK = "stock"
ORDERS = "orders"
PRODUCTION = "production"

InvalidationHook = Callable[[List[str]], None]

_hooks: List[InvalidationHook] = []


def register_hook(hook: InvalidationHook) -> None:
    if hook not in _hooks:
        _hooks.append(hook)


def unregister_hook(hook: InvalidationHook) -> None:
    if hook in _hooks:
        _hooks.remove(hook)


def clear_hooks() -> None:
    _hooks.clear()


def invalidate(*scopes: str) -> None:
    """Tell every registered hook that ``scopes`` are stale."""
    unique_scopes: List[str] = list(dict.fromkeys(scopes))
    if not unique_scopes:
        return
    for hook in list(_hooks):
        try:
            hook(unique_scopes)
        except Exception as e:
            logger.warning(
                "Cache invalidation hook failed",
                extra={"scopes": unique_scopes, "hook": getattr(hook, "__name__", repr(hook)), "error": str(e)},
            )
