"""Constants for blueprint-mcp."""

# Default port of the HTTP server embedded in the BlueprintMCP plugin
DEFAULT_ENGINE_PORT = 9847
DEFAULT_MCP_PORT = 9848

# Default timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 300.0  # compile + save can take minutes
DEFAULT_HEALTH_TIMEOUT = 2.0
DEFAULT_SHUTDOWN_REQUEST_TIMEOUT = 3.0
DEFAULT_STARTUP_TIMEOUT = 180
DEFAULT_EXIT_WAIT_TIMEOUT = 15.0
HEALTH_POLL_INTERVAL = 2.0

# Default retry settings (read-only tools only)
DEFAULT_RETRY_MAX_ATTEMPTS = 2
DEFAULT_RETRY_INITIAL_DELAY = 0.5
DEFAULT_RETRY_MAX_DELAY = 5.0
DEFAULT_RETRY_BACKOFF_FACTOR = 2.0

# Plugin / commandlet
PLUGIN_MODULE_NAME = "BlueprintMCP"
PLUGIN_DLL_NAME = f"UnrealEditor-{PLUGIN_MODULE_NAME}.dll"
EDITOR_CMD_EXE = "UnrealEditor-Cmd.exe"
EPIC_GAMES_DIRS = (
    r"C:\Program Files\Epic Games",
    r"C:\Program Files (x86)\Epic Games",
)
SERVER_LOG_NAME = "BlueprintMCP_server.log"

# Health payload mode reported by an interactive editor
EDITOR_MODE = "editor"
COMMANDLET_MODE = "commandlet"

# Graph that can never be renamed or deleted
EVENT_GRAPH = "EventGraph"

# Commandlet output is drained in chunks; longer lines are logged truncated
OUTPUT_CHUNK_SIZE = 64 * 1024
MAX_LOGGED_LINE = 4096
