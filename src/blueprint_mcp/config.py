"""Configuration and settings for blueprint-mcp."""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_MCP_PORT, DEFAULT_RETRY_MAX_ATTEMPTS, DEFAULT_RETRY_INITIAL_DELAY,
    DEFAULT_RETRY_MAX_DELAY, DEFAULT_RETRY_BACKOFF_FACTOR
)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

# Third-party loggers that are noisy below WARNING unless debugging
QUIET_LOGGERS = ("httpx", "httpcore")


class MCPTransport(str, Enum):
    """MCP transport types."""
    stdio = "stdio"
    sse = "sse"
    http = "http"


class ServerSettings(BaseSettings):
    """MCP-facing settings, read from ``BLUEPRINT_MCP_*`` variables or ``.env``.

    Engine connection settings (UE_PORT, UE_PROJECT_DIR, UE_EDITOR_CMD) are
    read separately by ``EngineSettings``.
    """
    model_config = SettingsConfigDict(env_prefix="blueprint_mcp_", env_file=".env", extra='ignore')

    transport: MCPTransport = MCPTransport.stdio
    # Listen address for the sse/http transports
    host: str = "127.0.0.1"
    port: int = Field(default=DEFAULT_MCP_PORT, ge=1, le=65535)

    # Backoff for read-only tools; write tools are never resent
    retry_max_attempts: int = Field(default=DEFAULT_RETRY_MAX_ATTEMPTS, ge=0)
    retry_initial_delay: float = Field(default=DEFAULT_RETRY_INITIAL_DELAY, gt=0)
    retry_max_delay: float = Field(default=DEFAULT_RETRY_MAX_DELAY, gt=0)
    retry_backoff_factor: float = Field(default=DEFAULT_RETRY_BACKOFF_FACTOR, gt=0)

    debug: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator('transport', mode='before')
    @classmethod
    def parse_transport(cls, v):
        """Accept transport names in any case."""
        if isinstance(v, MCPTransport):
            return v
        name = str(v).lower()
        if name not in MCPTransport.__members__:
            raise ValueError(f"Invalid transport type: {v}. Must be one of: {', '.join(MCPTransport.__members__)}")
        return MCPTransport(name)

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(LOG_LEVELS)}")
        return level

    @property
    def effective_log_level(self) -> int:
        """Numeric level; debug mode always logs at DEBUG."""
        if self.debug:
            return logging.DEBUG
        return getattr(logging, self.log_level)


def _log_handlers(settings: ServerSettings) -> List[logging.Handler]:
    # stdout carries the MCP stream under the stdio transport
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))
    return handlers


def setup_logging(settings: ServerSettings):
    """Configure the root logger from settings, replacing any existing handlers."""
    level = settings.effective_log_level
    formatter = logging.Formatter(settings.log_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in _log_handlers(settings):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.getLogger("blueprint_mcp").setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level == logging.DEBUG else logging.WARNING)

    if settings.debug and settings.log_level != "DEBUG":
        logging.getLogger(__name__).debug("Debug mode enabled - logging at DEBUG")
