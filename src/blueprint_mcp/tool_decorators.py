"""Markers telling the tool runner whether a failed request may be resent."""

from typing import Callable, Optional

READ_ONLY_ATTR = "__tool_read_only__"


def _mark(func: Callable, read_only_flag: bool) -> Callable:
    setattr(func, READ_ONLY_ATTR, read_only_flag)
    return func


def read_only(func: Callable) -> Callable:
    """Mark a tool as read-only.

    Such tools only inspect Blueprints, so a request lost to a dropped
    connection or a timeout can be sent again.

    Usage:
        @mcp.tool()
        @read_only
        async def list_event_dispatchers(blueprint: str) -> str:
            ...
    """
    return _mark(func, True)


def write_operation(func: Callable) -> Callable:
    """Mark a tool as modifying (and saving) Blueprint assets.

    A timed-out write may already have been applied inside the engine, so it
    is never resent.
    """
    return _mark(func, False)


def get_tool_read_only_flag(func: Callable) -> Optional[bool]:
    """True/False for marked tools, None when the tool carries no marker."""
    return getattr(func, READ_ONLY_ATTR, None)
