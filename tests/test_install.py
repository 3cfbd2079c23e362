from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from atlasctl.engine.errors import InstallCheckError
from atlasctl.engine.session_registry import OneTimeNotices
from atlasctl.shared.services import install
from atlasctl.shared.services.install import (
    AtlasInstall,
    InstallType,
    detect_install,
    install_detail,
    install_type_for,
    rokit_notice,
)


def _fake_exec(monkeypatch, stdout: bytes, stderr: bytes = b"", returncode: int = 0) -> AsyncMock:
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.returncode = returncode
    spawn = AsyncMock(return_value=proc)
    monkeypatch.setattr(install.asyncio, "create_subprocess_exec", spawn)
    return spawn


@pytest.mark.asyncio
async def test_missing_executable_returns_none(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(install.shutil, "which", lambda _cmd: None)

    assert await detect_install(tmp_path) is None


@pytest.mark.asyncio
async def test_version_and_rokit_install(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(install.shutil, "which", lambda _cmd: "/home/dev/.rokit/bin/atlas")
    spawn = _fake_exec(monkeypatch, b"atlas 7.4.1\n")

    result = await detect_install(tmp_path)

    assert result == AtlasInstall("7.4.1", InstallType.ROKIT, "/home/dev/.rokit/bin/atlas")
    args, kwargs = spawn.call_args
    assert args == ("/home/dev/.rokit/bin/atlas", "--version")
    assert kwargs["cwd"] == str(tmp_path)


@pytest.mark.asyncio
async def test_unconfigured_rokit_shim_returns_none(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(install.shutil, "which", lambda _cmd: "/home/dev/.rokit/bin/atlas")
    _fake_exec(monkeypatch, b"", b"rokit: atlas is not managed for this project", returncode=1)

    assert await detect_install(tmp_path) is None


@pytest.mark.asyncio
async def test_failing_executable_raises(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(install.shutil, "which", lambda _cmd: "/usr/local/bin/atlas")
    _fake_exec(monkeypatch, b"", b"segmentation fault", returncode=139)

    with pytest.raises(InstallCheckError, match="segmentation fault"):
        await detect_install(tmp_path)


def test_install_type_and_detail() -> None:
    assert install_type_for("/usr/local/bin/atlas") == InstallType.GLOBAL
    assert install_detail(None, False) == "Atlas is not installed."
    assert install_detail(InstallType.GLOBAL, True) == "Atlas install method differs by project file."
    assert install_detail(InstallType.ROKIT, False) == "Atlas is managed by Rokit."


def test_rokit_notice_shown_once_for_global_installs() -> None:
    notices = OneTimeNotices()
    global_install = AtlasInstall("7.4.1", InstallType.GLOBAL, "/usr/local/bin/atlas")
    rokit_install = AtlasInstall("7.4.1", InstallType.ROKIT, "/home/dev/.rokit/bin/atlas")

    assert rokit_notice(rokit_install, notices) is None
    first = rokit_notice(global_install, notices)
    assert first is not None and "Rokit" in first
    assert rokit_notice(global_install, notices) is None
