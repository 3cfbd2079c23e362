from __future__ import annotations

from pathlib import Path

import pytest

from atlasctl.engine.errors import NoWorkspaceError
from atlasctl.shared.services.discovery import find_project_files, roots_from_paths


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "game"
    (ws / "places").mkdir(parents=True)
    (ws / "default.project.json").write_text("{}")
    (ws / "build.project.json5").write_text("{}")
    (ws / "README.md").write_text("readme")
    (ws / "places" / "lobby.project.json").write_text("{}")
    (ws / "folder.project.json").mkdir()
    return ws


def test_roots_from_paths_names_and_dedupes(workspace: Path) -> None:
    roots = roots_from_paths([workspace, workspace / ".", str(workspace)])

    assert len(roots) == 1
    assert roots[0].name == "game"


def test_finds_both_suffixes_in_root_only(workspace: Path) -> None:
    roots = roots_from_paths([workspace])
    files = find_project_files(roots)

    assert [pf.name for pf in files] == ["build.project.json5", "default.project.json"]
    assert all(pf.workspace_folder_name == "game" for pf in files)


def test_relative_additional_paths_search_each_root(workspace: Path) -> None:
    roots = roots_from_paths([workspace])
    files = find_project_files(roots, ["places", "missing-dir"])

    names = [pf.name for pf in files]
    assert "lobby.project.json" in names
    lobby = next(pf for pf in files if pf.name == "lobby.project.json")
    assert lobby.workspace_folder_name == "game"


def test_absolute_additional_path_outside_roots(workspace: Path, tmp_path: Path) -> None:
    shared = tmp_path / "shared"
    shared.mkdir()
    (shared / "hub.project.json").write_text("{}")

    files = find_project_files(roots_from_paths([workspace]), [str(shared)])

    hub = next(pf for pf in files if pf.name == "hub.project.json")
    assert Path(hub.path).resolve() == (shared / "hub.project.json").resolve()


def test_repeated_paths_are_reported_once(workspace: Path) -> None:
    roots = roots_from_paths([workspace])
    files = find_project_files(roots, [".", str(workspace)])

    keys = [pf.key for pf in files]
    assert len(keys) == len(set(keys))


def test_no_roots_raises() -> None:
    with pytest.raises(NoWorkspaceError):
        find_project_files([])
