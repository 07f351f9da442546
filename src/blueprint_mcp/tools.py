"""Tool execution logic for blueprint-mcp.

Every tool follows the same path: make sure an engine is serving the API,
POST the request body to the tool's endpoint, then turn the JSON answer (or
its ``error`` field) into text for the MCP client.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from .client.engine_client import UnrealEngineClient
from .config import ServerSettings
from .errors import engine_error, error_text
from .process import EngineProcessManager
from .tool_decorators import get_tool_read_only_flag

logger = logging.getLogger(__name__)

Formatter = Callable[[Dict[str, Any], Dict[str, Any]], str]


def is_read_only_tool(tool_name: str, tool_function: Optional[Any] = None) -> bool:
    """Check if a tool is read-only and safe to retry.

    Registered tools may be wrapped by the MCP framework; the decorated
    function is then found on the wrapper's ``fn`` attribute.

    Unmarked tools default to False (not safe to retry).
    """
    if tool_function is not None:
        read_only_flag = get_tool_read_only_flag(getattr(tool_function, "fn", tool_function))
        if read_only_flag is not None:
            return read_only_flag

    logger.warning(
        f"Tool '{tool_name}' has no read-only decorator. "
        f"Defaulting to no retry for safety. Add @read_only or @write_operation decorator to the tool function."
    )
    return False


def is_transient_error(error: Exception) -> bool:
    """Check if an error is transient and worth retrying."""
    return isinstance(error, (ConnectionError, TimeoutError))


async def post_with_retry(
    tool_name: str,
    endpoint: str,
    body: Dict[str, Any],
    client: UnrealEngineClient,
    settings: ServerSettings,
    read_only: bool,
    method: str = "POST"
) -> Dict[str, Any]:
    """Send a tool request, retrying read-only tools on transient errors.

    Write tools are sent exactly once. GET requests carry ``body`` as query
    parameters.

    Raises:
        ConnectionError: If the engine cannot be reached (after retries)
        TimeoutError: If the request times out (after retries)
    """
    if not read_only:
        logger.debug(f"Tool '{tool_name}' is a write operation - no retry on errors")
        return await _send(client, method, endpoint, body)

    max_retries = settings.retry_max_attempts
    delay = settings.retry_initial_delay

    for attempt in range(max_retries + 1):  # +1 for initial attempt
        try:
            response = await _send(client, method, endpoint, body)
            if attempt > 0:
                logger.info(f"Tool '{tool_name}' succeeded on retry attempt {attempt + 1}")
            return response
        except (ConnectionError, TimeoutError) as e:
            if attempt >= max_retries:
                logger.error(f"Tool '{tool_name}' failed after {max_retries + 1} attempts: {str(e)}")
                raise
            wait_time = min(delay, settings.retry_max_delay)
            logger.warning(
                f"Transient error calling tool '{tool_name}' (attempt {attempt + 1}/{max_retries + 1}): {str(e)}. "
                f"Retrying in {wait_time:.2f}s..."
            )
            await asyncio.sleep(wait_time)
            delay *= settings.retry_backoff_factor

    raise RuntimeError(f"Unexpected retry loop exit for tool '{tool_name}'")


async def _send(client: UnrealEngineClient, method: str, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
    if method == "GET":
        return await client.get(endpoint, body)
    return await client.post(endpoint, body)


def format_engine_error(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    """Default rendering of an engine-reported failure."""
    return error_text(engine_error(data))


async def run_tool(
    tool_name: str,
    endpoint: str,
    body: Dict[str, Any],
    formatter: Formatter,
    client: UnrealEngineClient,
    process_manager: EngineProcessManager,
    settings: ServerSettings,
    read_only: bool = False,
    error_formatter: Formatter = format_engine_error,
    method: str = "POST"
) -> str:
    """Execute one tool call against the engine and return its text output.

    Args:
        tool_name: Name of the tool (for logging)
        endpoint: Engine API endpoint, e.g. "/api/create-graph"
        body: JSON request body
        formatter: Renders a successful response; receives (response, body)
        client: UnrealEngineClient instance
        process_manager: EngineProcessManager instance
        settings: ServerSettings instance
        read_only: Whether the request may be retried on transient errors
        error_formatter: Renders a response that carries an ``error`` field
        method: "POST" (JSON body) or "GET" (body sent as query parameters)

    Returns:
        Human-readable result text. Engine-side and transport failures are
        reported as text, never raised.
    """
    logger.info(f"Tool call requested: {tool_name}")

    unavailable = await process_manager.ensure_engine()
    if unavailable:
        logger.warning(f"Engine unavailable for tool call '{tool_name}': {unavailable}")
        return unavailable

    try:
        data = await post_with_retry(tool_name, endpoint, body, client, settings, read_only, method)
    except ConnectionError as e:
        logger.error(f"Connection error calling tool '{tool_name}': {str(e)}")
        return error_text(str(e))
    except TimeoutError as e:
        logger.warning(f"Timeout calling tool '{tool_name}'")
        return error_text(str(e))

    if not isinstance(data, dict):
        logger.error(f"Unexpected response type for tool '{tool_name}': {type(data).__name__}")
        return error_text(f"Unexpected response from Unreal Engine: {data!r}")

    if engine_error(data):
        logger.info(f"Tool call '{tool_name}' rejected by engine: {data['error']}")
        return error_formatter(data, body)

    logger.info(f"Tool call '{tool_name}' succeeded")
    return formatter(data, body)
