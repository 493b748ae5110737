"""Helpers for collaborators that may be sync or async"""

from typing import Any, Callable, Optional


async def notify(callback: Optional[Callable[..., Any]], *args) -> Any:
    """Call a progress/tracker hook, awaiting it when it returns an awaitable"""
    if callback is None:
        return None
    result = callback(*args)
    if hasattr(result, '__await__'):
        result = await result
    return result
