"""Tests for server settings and logging setup."""

import logging

import pytest

from blueprint_mcp.config import ServerSettings, MCPTransport, setup_logging


def test_server_settings_defaults():
    settings = ServerSettings()
    assert settings.transport == MCPTransport.stdio
    assert settings.retry_max_attempts == 2
    assert settings.log_level == "INFO"


def test_server_settings_from_environment(monkeypatch):
    monkeypatch.setenv("BLUEPRINT_MCP_TRANSPORT", "HTTP")
    monkeypatch.setenv("BLUEPRINT_MCP_PORT", "8123")
    monkeypatch.setenv("BLUEPRINT_MCP_LOG_LEVEL", "debug")

    settings = ServerSettings()

    assert settings.transport == MCPTransport.http
    assert settings.port == 8123
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("field, value", [
    ("port", 0),
    ("retry_max_attempts", -1),
    ("retry_initial_delay", 0),
    ("transport", "websocket"),
    ("log_level", "VERBOSE"),
])
def test_server_settings_rejects_invalid_values(field, value):
    with pytest.raises(ValueError):
        ServerSettings(**{field: value})


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "logs" / "blueprint_mcp.log"
    settings = ServerSettings(log_file=str(log_file), log_level="WARNING")

    setup_logging(settings)
    logging.getLogger("blueprint_mcp.test").warning("engine offline")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "engine offline" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("blueprint_mcp").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_debug_mode():
    setup_logging(ServerSettings(debug=True))

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG
