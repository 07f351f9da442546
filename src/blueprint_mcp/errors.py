"""Error handling utilities for blueprint-mcp."""

from typing import Any, Dict


class EngineStartupError(RuntimeError):
    """Raised when the Unreal Engine commandlet cannot be located or started."""


def error_text(error_message: str) -> str:
    """Format an error message as tool output text."""
    return f"Error: {error_message}"


def engine_error(data: Dict[str, Any]) -> str | None:
    """Return the engine-reported error string of a response, if any."""
    error = data.get("error")
    if not error:
        return None
    return str(error)
