from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from atlasctl.engine.errors import LaunchFailedError
from atlasctl.engine.models import ProjectFile
from atlasctl.engine.session_registry import SessionRegistry
from atlasctl.shared.services.serve_process import CTRL_C, ServeProcessLauncher


def _project(tmp_path: Path) -> ProjectFile:
    path = tmp_path / "game.project.json"
    path.write_text("{}")
    return ProjectFile(name=path.name, workspace_folder_name=tmp_path.name, path=str(path))


def _python_launcher(script: str, output: list[str] | None = None) -> ServeProcessLauncher:
    return ServeProcessLauncher(
        command=sys.executable,
        subcommand=("-c", script),
        output_callback=(lambda _key, line: output.append(line)) if output is not None else None,
        stop_timeout=5.0,
    )


def test_build_command_uses_file_name() -> None:
    launcher = ServeProcessLauncher(command="atlas")
    pf = ProjectFile(name="default.project.json", workspace_folder_name="ws", path="/ws/default.project.json")

    assert launcher.build_command(pf) == ["atlas", "serve", "default.project.json"]


@pytest.mark.asyncio
async def test_output_and_exit_code_are_reported(tmp_path: Path) -> None:
    output: list[str] = []
    exited = asyncio.Event()
    codes: list[int | None] = []

    def on_exit(code):
        codes.append(code)
        exited.set()

    script = "import sys; print('serving ' + sys.argv[1], flush=True); sys.exit(3)"
    launcher = _python_launcher(script, output)

    handle = await launcher.launch(_project(tmp_path), on_exit)
    await asyncio.wait_for(exited.wait(), timeout=10)

    assert codes == [3]
    assert handle.returncode == 3
    assert "serving game.project.json" in output
    assert output[-1] == "Process exited with code 3"


@pytest.mark.asyncio
async def test_process_runs_in_project_directory(tmp_path: Path) -> None:
    output: list[str] = []
    exited = asyncio.Event()
    launcher = _python_launcher("import os; print(os.getcwd(), flush=True)", output)

    await launcher.launch(_project(tmp_path), lambda code: exited.set())
    await asyncio.wait_for(exited.wait(), timeout=10)

    assert Path(output[0]).resolve() == tmp_path.resolve()


@pytest.mark.asyncio
async def test_requested_stop_does_not_report_exit(tmp_path: Path) -> None:
    on_exit = MagicMock()
    launcher = _python_launcher("import time; time.sleep(30)")

    handle = await launcher.launch(_project(tmp_path), on_exit)
    await handle.stop()

    assert handle.returncode is not None
    on_exit.assert_not_called()
    # Second stop is a no-op
    await handle.stop()


@pytest.mark.asyncio
async def test_ctrl_c_interrupts_process(tmp_path: Path) -> None:
    exited = asyncio.Event()
    codes: list[int | None] = []

    def on_exit(code):
        codes.append(code)
        exited.set()

    script = (
        "import sys, time\n"
        "print('ready', flush=True)\n"
        "try:\n"
        "    time.sleep(30)\n"
        "except KeyboardInterrupt:\n"
        "    sys.exit(7)\n"
    )
    ready = asyncio.Event()
    launcher = ServeProcessLauncher(
        command=sys.executable,
        subcommand=("-c", script),
        output_callback=lambda _key, line: ready.set() if line == "ready" else None,
    )

    handle = await launcher.launch(_project(tmp_path), on_exit)
    await asyncio.wait_for(ready.wait(), timeout=10)
    handle.send_input(CTRL_C)
    await asyncio.wait_for(exited.wait(), timeout=10)

    assert codes == [7]


@pytest.mark.asyncio
async def test_missing_binary_is_launch_failure(tmp_path: Path) -> None:
    launcher = ServeProcessLauncher(command="atlas-binary-that-does-not-exist")

    with pytest.raises(LaunchFailedError, match="on PATH"):
        await launcher.launch(_project(tmp_path), MagicMock())


@pytest.mark.asyncio
async def test_missing_directory_is_launch_failure(tmp_path: Path) -> None:
    pf = ProjectFile(
        name="game.project.json",
        workspace_folder_name="gone",
        path=str(tmp_path / "gone" / "game.project.json"),
    )

    with pytest.raises(LaunchFailedError, match="does not exist"):
        await _python_launcher("pass").launch(pf, MagicMock())


@pytest.mark.asyncio
async def test_registry_drops_session_when_process_exits(tmp_path: Path) -> None:
    registry = SessionRegistry()
    idle = asyncio.Event()
    registry.subscribe(lambda: idle.set() if len(registry) == 0 else None)
    pf = _project(tmp_path)

    await registry.start(pf, _python_launcher("import time; time.sleep(0.2)"))
    assert registry.is_running(pf.path)

    await asyncio.wait_for(idle.wait(), timeout=10)
    assert not registry.is_running(pf.path)
    assert await registry.stop(pf.path) is False


@pytest.mark.asyncio
async def test_exit_reported_after_very_long_output_line(tmp_path: Path) -> None:
    output: list[str] = []
    registry = SessionRegistry()
    idle = asyncio.Event()
    registry.subscribe(lambda: idle.set() if len(registry) == 0 else None)
    pf = _project(tmp_path)
    script = (
        "import sys\n"
        "sys.stdout.write('x' * 200000 + '\\n')\n"
        "sys.stdout.write('done\\n')\n"
        "sys.stdout.flush()\n"
        "sys.exit(3)\n"
    )

    session = await registry.start(pf, _python_launcher(script, output))
    await asyncio.wait_for(idle.wait(), timeout=10)

    assert not registry.is_running(pf.path)
    assert session.handle.returncode == 3
    assert "".join(line for line in output if set(line) == {"x"}) == "x" * 200000
    assert output[-2:] == ["done", "Process exited with code 3"]
