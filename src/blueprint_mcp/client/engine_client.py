"""UnrealEngineClient - Client for the HTTP server embedded in the BlueprintMCP plugin."""

import logging
import os
import time
from enum import Enum
from typing import Optional, Dict, Any
import httpx
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import (
    DEFAULT_ENGINE_PORT, DEFAULT_REQUEST_TIMEOUT, DEFAULT_HEALTH_TIMEOUT,
    DEFAULT_SHUTDOWN_REQUEST_TIMEOUT, DEFAULT_STARTUP_TIMEOUT
)

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Connection state to the engine."""
    UNKNOWN = "unknown"
    ONLINE = "online"
    OFFLINE = "offline"


class EngineSettings(BaseSettings):
    """Settings for the Unreal Engine connection and commandlet process.

    Reads the same environment variables as the editor plugin tooling:
    UE_PORT, UE_PROJECT_DIR, UE_EDITOR_CMD.
    """
    model_config = SettingsConfigDict(
        env_prefix="ue_",
        env_file=".env",
        extra='ignore',
        case_sensitive=False
    )

    host: str = "localhost"
    port: int = DEFAULT_ENGINE_PORT
    project_dir: str = Field(default_factory=os.getcwd)
    editor_cmd: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    health_timeout: float = DEFAULT_HEALTH_TIMEOUT
    startup_timeout: int = DEFAULT_STARTUP_TIMEOUT
    auto_start: bool = True  # spawn a commandlet when no engine answers

    @field_validator('port')
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v

    @field_validator('request_timeout', 'health_timeout', 'startup_timeout')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


class UnrealEngineClient:
    """Client for the engine's JSON-over-HTTP Blueprint API."""

    def __init__(self, settings: Optional[EngineSettings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the engine client.

        Args:
            settings: Optional settings. If not provided, loads from environment.
            transport: Optional httpx transport (used by tests).
        """
        self.settings = settings or EngineSettings()
        self.base_url = self.settings.base_url
        self.state = ConnectionState.UNKNOWN
        self.last_known_good_connection: Optional[float] = None

        self._transport = transport
        self._client = self._new_client()

        logger.info(f"UnrealEngineClient initialized: {self.base_url}")

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.request_timeout),
            base_url=self.base_url,
            transport=self._transport
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """The HTTP client, reopened if an earlier MCP session closed it."""
        if self._client.is_closed:
            self._client = self._new_client()
        return self._client

    def _mark_online(self):
        if self.state != ConnectionState.ONLINE:
            logger.info("Engine connection established")
        self.state = ConnectionState.ONLINE
        self.last_known_good_connection = time.time()

    def _mark_offline(self):
        if self.state == ConnectionState.ONLINE:
            logger.warning("Engine connection lost")
        self.state = ConnectionState.OFFLINE

    async def get_health(self) -> Optional[Dict[str, Any]]:
        """Return the health payload if the engine is reachable, or None.

        The payload carries ``status``, ``mode`` ("editor" or "commandlet"),
        ``blueprintCount`` and ``mapCount``.
        """
        try:
            response = await self.client.get("/api/health", timeout=self.settings.health_timeout)
            if not response.is_success:
                logger.debug(f"Health check returned HTTP {response.status_code}")
                self._mark_offline()
                return None
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Health check failed: {str(e)}")
            self._mark_offline()
            return None

        self._mark_online()
        return payload

    async def is_healthy(self) -> bool:
        return await self.get_health() is not None

    async def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        logger.debug(f"{method} {endpoint}")
        try:
            response = await self.client.request(method, endpoint, **kwargs)
        except httpx.ConnectError as e:
            logger.error(f"Connection error calling {method} {endpoint}: {str(e)}")
            self._mark_offline()
            raise ConnectionError(f"Failed to reach Unreal Engine at {self.base_url}: {str(e)}")
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout calling {method} {endpoint} (timeout={self.settings.request_timeout}s)")
            self._mark_offline()
            raise TimeoutError(f"Request to Unreal Engine timed out after {self.settings.request_timeout}s: {str(e)}")
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling {method} {endpoint}: {str(e)}", exc_info=True)
            self._mark_offline()
            raise ConnectionError(f"HTTP error talking to Unreal Engine: {str(e)}")

        try:
            data = response.json()
        except ValueError as e:
            # Engine answered, but not with JSON
            logger.error(f"Invalid JSON from {method} {endpoint} (HTTP {response.status_code})")
            raise ConnectionError(f"Unreal Engine returned a non-JSON response (HTTP {response.status_code})") from e

        self._mark_online()
        if isinstance(data, dict) and data.get("error"):
            logger.info(f"Engine reported error for {endpoint}: {data['error']}")
        return data

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Issue a GET request. Empty parameter values are dropped.

        Raises:
            ConnectionError: If the engine cannot be reached.
            TimeoutError: If the request times out.
        """
        query = {k: v for k, v in (params or {}).items() if v}
        return await self._request("GET", endpoint, params=query)

    async def post(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body and return the parsed JSON response.

        HTTP error statuses are not raised: the engine reports failures
        through the ``error`` field of the response body.

        Raises:
            ConnectionError: If the engine cannot be reached.
            TimeoutError: If the request times out.
        """
        return await self._request("POST", endpoint, json=body)

    async def request_shutdown(self) -> bool:
        """Ask the engine commandlet to exit via /api/shutdown."""
        try:
            await self.client.post("/api/shutdown", json={}, timeout=DEFAULT_SHUTDOWN_REQUEST_TIMEOUT)
            return True
        except httpx.HTTPError as e:
            # the server may already be gone
            logger.debug(f"Shutdown request failed: {str(e)}")
            return False

    async def close(self):
        """Close the HTTP client connection."""
        await self._client.aclose()
        logger.info("UnrealEngineClient closed")
