"""Serve process launcher — owns one `atlas serve` subprocess per session.

The process runs in its own session/process group so stop and Ctrl-C
reach the whole tree. Output (stdout and stderr merged) is streamed line
by line to an optional callback. A watcher task reports the exit code to
the registry unless the stop was requested through the handle.
"""
from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Callable, Sequence
from pathlib import Path

from atlasctl.engine.errors import LaunchFailedError
from atlasctl.engine.models import ProjectFile

logger = logging.getLogger(__name__)

# Signature: output_callback(project_key, line) -> None
OutputCallback = Callable[[str, str], None]
ExitCallback = Callable[[int | None], None]

CTRL_C = "\x03"

READ_CHUNK_SIZE = 8192
MAX_LINE_BYTES = 16384


class ServeHandle:
    """Running serve process for one project."""

    def __init__(
        self,
        project_file: ProjectFile,
        process: asyncio.subprocess.Process,
        on_exit: ExitCallback,
        output_callback: OutputCallback | None = None,
        stop_timeout: float = 5.0,
    ) -> None:
        self.project_file = project_file
        self.process = process
        self._on_exit = on_exit
        self._output_callback = output_callback
        self._stop_timeout = stop_timeout
        self._stop_requested = False
        self._watcher: asyncio.Task | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    def _emit(self, text: str) -> None:
        if self._output_callback is None:
            return
        try:
            self._output_callback(self.project_file.key, text)
        except Exception:
            logger.exception("Serve output callback failed")

    def start_watching(self) -> None:
        """Schedule the output/exit watcher. It runs once the caller yields."""
        if self._watcher is None:
            self._watcher = asyncio.get_running_loop().create_task(self._watch())

    def _emit_line(self, raw: bytes) -> None:
        self._emit(raw.decode("utf-8", errors="replace").rstrip("\r"))

    async def _pump_output(self) -> None:
        """Forward output line by line; over-long lines are split."""
        stdout = self.process.stdout
        if stdout is None:
            return
        pending = b""
        while True:
            chunk = await stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            pending += chunk
            *lines, pending = pending.split(b"\n")
            for line in lines:
                self._emit_line(line)
            while len(pending) >= MAX_LINE_BYTES:
                self._emit_line(pending[:MAX_LINE_BYTES])
                pending = pending[MAX_LINE_BYTES:]
        if pending:
            self._emit_line(pending)

    async def _watch(self) -> None:
        try:
            await self._pump_output()
        except (OSError, ValueError):
            logger.warning(
                "Lost output stream for %s; waiting for exit",
                self.project_file.path, exc_info=True,
            )

        code = await self.process.wait()
        self._emit(f"Process exited with code {code}")
        logger.info(
            "Serve process for %s exited (pid=%d, code=%s, requested=%s)",
            self.project_file.path, self.process.pid, code, self._stop_requested,
        )
        if self._stop_requested:
            return
        self._on_exit(code)

    def _signal_group(self, sig: int) -> None:
        try:
            if hasattr(os, "killpg"):
                os.killpg(self.process.pid, sig)
            else:
                self.process.send_signal(sig)
        except ProcessLookupError:
            pass

    def send_input(self, data: str) -> None:
        """Forward terminal input; Ctrl-C interrupts the process group."""
        if self.process.returncode is not None:
            return
        if data == CTRL_C:
            self._signal_group(signal.SIGINT)
            return
        if self.process.stdin is not None:
            self.process.stdin.write(data.encode("utf-8"))

    async def stop(self) -> None:
        """Terminate the process group; kill it if it outlives the timeout.

        Safe to call more than once and after the process has exited.
        """
        self._stop_requested = True
        if self.process.returncode is None:
            self._signal_group(signal.SIGTERM)
            try:
                await asyncio.wait_for(self.process.wait(), timeout=self._stop_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Serve process for %s ignored SIGTERM after %.1fs; killing (pid=%d)",
                    self.project_file.path, self._stop_timeout, self.process.pid,
                )
                try:
                    if hasattr(os, "killpg"):
                        os.killpg(self.process.pid, signal.SIGKILL)
                    else:
                        self.process.kill()
                except ProcessLookupError:
                    pass
                await self.process.wait()

        if self._watcher is not None and not self._watcher.done():
            try:
                await asyncio.wait_for(
                    asyncio.shield(self._watcher), timeout=self._stop_timeout,
                )
            except asyncio.TimeoutError:
                self._watcher.cancel()


class ServeProcessLauncher:
    """Starts `<command> serve <project file>` in the project's directory."""

    def __init__(
        self,
        command: str = "atlas",
        output_callback: OutputCallback | None = None,
        stop_timeout: float = 5.0,
        subcommand: Sequence[str] = ("serve",),
    ) -> None:
        self.command = command
        self.output_callback = output_callback
        self.stop_timeout = stop_timeout
        self.subcommand = tuple(subcommand)

    def build_command(self, project_file: ProjectFile) -> list[str]:
        return [self.command, *self.subcommand, project_file.file_name]

    async def launch(
        self,
        project_file: ProjectFile,
        on_exit: ExitCallback,
    ) -> ServeHandle:
        """Spawn the serve process.

        Raises:
            LaunchFailedError: missing directory, missing binary, or any
                other OS-level spawn failure.
        """
        cwd = project_file.directory
        if not Path(cwd).is_dir():
            raise LaunchFailedError(
                project_file.path, f"Project directory does not exist: {cwd}",
            )

        cmd = self.build_command(project_file)
        try:
            # Array-based exec, no shell
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=cwd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except FileNotFoundError as exc:
            raise LaunchFailedError(
                project_file.path,
                f"Could not find '{self.command}' on PATH. Is it installed?",
            ) from exc
        except OSError as exc:
            raise LaunchFailedError(
                project_file.path, f"Failed to start process: {exc}",
            ) from exc

        handle = ServeHandle(
            project_file,
            process,
            on_exit,
            output_callback=self.output_callback,
            stop_timeout=self.stop_timeout,
        )
        handle.start_watching()
        logger.info(
            "Launched %s for %s (pid=%d)", " ".join(cmd), project_file.path, process.pid,
        )
        return handle
