"""Unreal Engine commandlet process management.

When no engine answers on the configured port, the BlueprintMCP commandlet is
started headless (``UnrealEditor-Cmd <project>.uproject -run=BlueprintMCP``)
and tool calls wait until its HTTP server reports healthy. An interactive
editor that already serves the API is used as-is and never shut down.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from .client.engine_client import UnrealEngineClient
from .constants import (
    PLUGIN_MODULE_NAME, PLUGIN_DLL_NAME, EDITOR_CMD_EXE, EPIC_GAMES_DIRS,
    SERVER_LOG_NAME, EDITOR_MODE, HEALTH_POLL_INTERVAL, DEFAULT_EXIT_WAIT_TIMEOUT,
    OUTPUT_CHUNK_SIZE, MAX_LOGGED_LINE
)
from .errors import EngineStartupError

logger = logging.getLogger(__name__)


class EngineProcessManager:
    """Owns the commandlet process and answers "is the engine usable?"."""

    def __init__(self, client: UnrealEngineClient, epic_games_dirs=EPIC_GAMES_DIRS):
        self.client = client
        self.settings = client.settings
        self.project_dir = Path(self.settings.project_dir)
        self.epic_games_dirs = [Path(d) for d in epic_games_dirs]
        self.process: Optional[asyncio.subprocess.Process] = None
        self.editor_mode = False
        self._startup_task: Optional[asyncio.Task] = None
        self._pump_tasks: list[asyncio.Task] = []

    # --- Discovery ---

    def find_uproject(self) -> Optional[Path]:
        """Find the .uproject file in the project directory."""
        try:
            for entry in sorted(self.project_dir.iterdir()):
                if entry.suffix == ".uproject" and entry.is_file():
                    return entry
        except OSError:
            pass
        return None

    def read_engine_version(self) -> Optional[str]:
        """Read EngineAssociation (e.g. "5.4") from the .uproject file."""
        uproject = self.find_uproject()
        if uproject is None:
            return None
        try:
            data = json.loads(uproject.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug(f"Could not parse {uproject}: {e}")
            return None
        association = data.get("EngineAssociation") if isinstance(data, dict) else None
        if isinstance(association, str) and association:
            return association
        return None

    def _editor_cmd_in(self, engine_dir: Path) -> Path:
        return engine_dir / "Engine" / "Binaries" / "Win64" / EDITOR_CMD_EXE

    def find_editor_cmd(self) -> Optional[Path]:
        """Locate UnrealEditor-Cmd.

        Priority: explicit UE_EDITOR_CMD, then the engine version named by the
        .uproject, then the newest installed engine.
        """
        if self.settings.editor_cmd and Path(self.settings.editor_cmd).exists():
            return Path(self.settings.editor_cmd)

        engine_version = self.read_engine_version()
        if engine_version:
            for base in self.epic_games_dirs:
                candidate = self._editor_cmd_in(base / f"UE_{engine_version}")
                if candidate.exists():
                    logger.info(f"Auto-detected engine {engine_version} from .uproject")
                    return candidate

        for base in self.epic_games_dirs:
            try:
                entries = sorted((e for e in base.iterdir() if e.name.startswith("UE_")), key=lambda e: e.name, reverse=True)
            except OSError:
                continue
            for entry in entries:
                candidate = self._editor_cmd_in(entry)
                if candidate.exists():
                    detected = entry.name[len("UE_"):]
                    suffix = f" {engine_version}" if engine_version else ""
                    logger.info(f"Found engine {detected} (no match for .uproject version{suffix})")
                    return candidate
        return None

    def ensure_modules_file(self) -> bool:
        """Make sure Binaries/Win64/UnrealEditor.modules lists the plugin module.

        Building only the Game target rewrites this file without the editor
        module, and the commandlet then fails with "module could not be found".

        Returns:
            True if the file was modified
        """
        binaries = self.project_dir / "Binaries" / "Win64"
        modules_path = binaries / "UnrealEditor.modules"
        if not modules_path.exists():
            return False
        try:
            data = json.loads(modules_path.read_text(encoding="utf-8"))
            modules = data.get("Modules")
            if not isinstance(modules, dict) or PLUGIN_MODULE_NAME in modules:
                return False
            if not (binaries / PLUGIN_DLL_NAME).exists():
                logger.warning(f"{PLUGIN_DLL_NAME} not found - editor module may not be compiled.")
                return False
            modules[PLUGIN_MODULE_NAME] = PLUGIN_DLL_NAME
            modules_path.write_text(json.dumps(data, indent="\t") + "\n", encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.warning(f"Could not check/fix .modules file: {e}")
            return False
        logger.info(f"Fixed .modules file - added {PLUGIN_MODULE_NAME} entry.")
        return True

    # --- Lifecycle ---

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    @property
    def is_starting(self) -> bool:
        return self._startup_task is not None and not self._startup_task.done()

    async def ensure_engine(self) -> Optional[str]:
        """Make sure an engine is serving the Blueprint API.

        Returns:
            None when the engine is usable, otherwise a message explaining why not
        """
        health = await self.client.get_health()
        if health is not None:
            self.editor_mode = health.get("mode") == EDITOR_MODE
            return None

        self.editor_mode = False

        if not self.settings.auto_start:
            return (
                f"Unreal Engine is not reachable at {self.client.base_url}. "
                f"Open the project in the editor with the {PLUGIN_MODULE_NAME} plugin enabled."
            )

        # Concurrent callers wait on the same startup so only one commandlet is spawned
        if self._startup_task is None or self._startup_task.done():
            self._startup_task = asyncio.create_task(self._start())
        startup = self._startup_task
        try:
            await asyncio.shield(startup)
        except EngineStartupError as e:
            return str(e)
        except asyncio.CancelledError:
            if not startup.cancelled():
                raise
            return "UE5 Blueprint server startup was cancelled by shutdown_server."
        return None

    async def _start(self):
        if self.is_running:
            logger.warning("Engine process exists but is not healthy. Killing and respawning...")
            await self._kill()
        self.ensure_modules_file()
        await self.spawn_and_wait()

    async def spawn_and_wait(self):
        """Spawn the commandlet and block until it reports healthy.

        Raises:
            EngineStartupError: If the editor binary or project is missing, or the
                server does not become healthy within the startup timeout
        """
        editor_cmd = self.find_editor_cmd()
        if editor_cmd is None:
            raise EngineStartupError(f"Could not find {EDITOR_CMD_EXE}. Set UE_EDITOR_CMD environment variable.")

        uproject = self.find_uproject()
        if uproject is None:
            raise EngineStartupError(f"No .uproject file found in {self.project_dir}")

        log_path = self.project_dir / "Saved" / "Logs" / SERVER_LOG_NAME
        args = [
            str(uproject),
            f"-run={PLUGIN_MODULE_NAME}",
            f"-port={self.settings.port}",
            "-unattended",
            "-nopause",
            "-nullrhi",
            f"-LOG={log_path}",
        ]

        logger.info("Spawning UE5 commandlet...")
        try:
            self.process = await asyncio.create_subprocess_exec(
                str(editor_cmd), *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineStartupError(f"Failed to launch {editor_cmd}: {e}") from e

        self._pump_tasks = [
            asyncio.create_task(self._pump(self.process.stdout, "UE5:out")),
            asyncio.create_task(self._pump(self.process.stderr, "UE5:err")),
        ]

        logger.info(f"Waiting for health check (up to {self.settings.startup_timeout}s)...")
        if await self.wait_for_healthy(self.settings.startup_timeout):
            logger.info("UE5 Blueprint server is ready.")
            return

        await self._kill()
        raise EngineStartupError(
            f"UE5 Blueprint server failed to start within {self.settings.startup_timeout} seconds. "
            f"Check Saved/Logs/{SERVER_LOG_NAME}."
        )

    async def wait_for_healthy(self, timeout: float, poll_interval: float = HEALTH_POLL_INTERVAL) -> bool:
        """Poll /api/health until it answers, the process dies, or the timeout passes."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if await self.client.is_healthy():
                return True
            if not self.is_running:
                logger.error("UE5 commandlet exited before becoming healthy")
                return False
            await asyncio.sleep(poll_interval)
        return False

    async def _pump(self, stream: Optional[asyncio.StreamReader], tag: str):
        """Log commandlet output line by line until EOF.

        Reads fixed-size chunks so an overlong line can never stop the pipe
        from being drained.
        """
        if stream is None:
            return
        pending = b""
        while True:
            chunk = await stream.read(OUTPUT_CHUNK_SIZE)
            if not chunk:
                break
            *lines, pending = (pending + chunk).split(b"\n")
            for raw in lines:
                self._log_output(tag, raw)
            if len(pending) > MAX_LOGGED_LINE:
                self._log_output(tag, pending)
                pending = b""
        if pending:
            self._log_output(tag, pending)

    def _log_output(self, tag: str, raw: bytes):
        line = raw[:MAX_LOGGED_LINE].decode("utf-8", errors="replace").rstrip()
        if len(raw) > MAX_LOGGED_LINE:
            line += f" ... ({len(raw)} bytes)"
        if line:
            logger.debug(f"[{tag}] {line}")

    async def _kill(self):
        if self.process is not None and self.process.returncode is None:
            self.process.kill()
            await self.process.wait()
        self.process = None

    async def graceful_shutdown(self, exit_timeout: float = DEFAULT_EXIT_WAIT_TIMEOUT):
        """Ask the commandlet to exit via /api/shutdown, force-kill on timeout.

        A startup still in progress is cancelled first, so no commandlet is
        spawned after the shutdown.
        """
        if self.is_starting:
            logger.info("Cancelling UE5 commandlet startup in progress.")
            self._startup_task.cancel()
            await asyncio.gather(self._startup_task, return_exceptions=True)

        await self.client.request_shutdown()

        if self.process is None:
            return
        try:
            await asyncio.wait_for(self.process.wait(), timeout=exit_timeout)
            logger.info(f"UE5 server exited with code {self.process.returncode}")
        except asyncio.TimeoutError:
            logger.warning("Graceful shutdown timed out, force-killing.")
            await self._kill()
        self.process = None

    async def close(self):
        """Stop a commandlet this process spawned; an interactive editor is left alone."""
        if not self.editor_mode and (self.is_running or self.is_starting):
            await self.graceful_shutdown()
        for task in self._pump_tasks:
            task.cancel()
        await asyncio.gather(*self._pump_tasks, return_exceptions=True)
        self._pump_tasks = []
