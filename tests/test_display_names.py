from __future__ import annotations

import pytest

from atlasctl.engine.display import (
    EXTERNAL_LABEL,
    containing_root,
    format_project_display_name,
    format_project_display_names,
    is_external_project,
    project_relative_path,
    shared_suffix_names,
    workspace_folder_label,
)
from atlasctl.engine.models import DisplayPolicy, ProjectFile, WorkspaceRoot


def _pf(path: str, folder: str = "ws") -> ProjectFile:
    return ProjectFile(name=path.rsplit("/", 1)[-1], workspace_folder_name=folder, path=path)


ROOT_A = WorkspaceRoot(name="A", path="/ws/A")
ROOT_B = WorkspaceRoot(name="B", path="/ws/B")


def _names(result) -> list[str]:
    return [info.display_name for info in result.values()]


def test_empty_input_gives_empty_mapping() -> None:
    for policy in DisplayPolicy:
        assert format_project_display_names([], policy) == {}


def test_mapping_is_total_and_in_input_order() -> None:
    files = [
        _pf("/ws/A/b.project.json", "A"),
        _pf("/ws/A/a.project.json", "A"),
        _pf("/ws/A/sub/a.project.json", "A"),
    ]
    result = format_project_display_names(files, DisplayPolicy.AS_NEEDED, roots=[ROOT_A])

    assert list(result) == [pf.key for pf in files]
    assert _names(result) == [
        "b.project.json",
        "a.project.json",
        "sub/a.project.json",
    ]


def test_resolution_is_deterministic() -> None:
    files = [
        _pf("/ws/A/default.project.json5", "A"),
        _pf("/ws/B/default.project.json5", "B"),
        _pf("/x/foo/default.project.json5"),
    ]
    first = format_project_display_names(files, roots=[ROOT_A, ROOT_B])
    second = format_project_display_names(files, roots=[ROOT_A, ROOT_B])
    assert first == second


def test_never_keeps_bare_file_names_even_when_colliding() -> None:
    files = [
        _pf("/ws/A/default.project.json", "A"),
        _pf("/ws/A/sub/default.project.json", "A"),
    ]
    result = format_project_display_names(files, DisplayPolicy.NEVER, roots=[ROOT_A])
    assert _names(result) == ["default.project.json", "default.project.json"]


def test_as_needed_prefixes_workspace_folder_for_cross_root_collisions() -> None:
    files = [
        _pf("/ws/A/default.project.json5", "A"),
        _pf("/ws/B/default.project.json5", "B"),
    ]
    result = format_project_display_names(files, roots=[ROOT_A, ROOT_B])
    assert _names(result) == ["A/default.project.json5", "B/default.project.json5"]


def test_as_needed_external_collisions_escalate_to_shared_depth() -> None:
    files = [
        _pf("/x/foo/default.project.json"),
        _pf("/y/foo/default.project.json"),
    ]
    result = format_project_display_names(files, roots=[ROOT_A])
    assert _names(result) == [
        "x/foo/default.project.json",
        "y/foo/default.project.json",
    ]


def test_as_needed_workspace_and_external_with_same_file_name() -> None:
    files = [
        _pf("/ws/A/default.project.json", "A"),
        _pf("/other/default.project.json"),
    ]
    result = format_project_display_names(files, roots=[ROOT_A])
    assert _names(result) == [
        "default.project.json",
        "other/default.project.json",
    ]


def test_as_needed_unique_external_shows_parent_and_file() -> None:
    files = [_pf("/opt/places/lobby.project.json")]
    result = format_project_display_names(files, roots=[ROOT_A])
    assert _names(result) == ["places/lobby.project.json"]


def test_always_shows_relative_path_and_stays_unique() -> None:
    files = [
        _pf("/ws/A/game.project.json", "A"),
        _pf("/ws/A/places/game.project.json", "A"),
        _pf("/ws/B/game.project.json", "B"),
    ]
    result = format_project_display_names(files, DisplayPolicy.ALWAYS, roots=[ROOT_A, ROOT_B])
    names = _names(result)

    assert len(set(names)) == len(names)
    assert names[1] == "places/game.project.json"


def test_duplicate_paths_collapse_to_one_entry() -> None:
    first = _pf("/ws/A/game.project.json", "A")
    again = _pf("/ws/A/./game.project.json", "other")
    result = format_project_display_names([first, again], roots=[ROOT_A])

    assert len(result) == 1
    assert result[first.key].display_name == "game.project.json"


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_project_display_names([_pf("/ws/A/a.project.json")], "sometimes")  # type: ignore[arg-type]


def test_display_names_are_truncated_after_disambiguation() -> None:
    files = [_pf("/ws/A/some/long/path/to/project.json5", "A")]
    result = format_project_display_names(
        files, DisplayPolicy.ALWAYS, max_length=20, roots=[ROOT_A],
    )
    info = result[files[0].key]

    assert info.display_name == "...to/project.json5"
    assert info.was_truncated
    assert info.original_name == "some/long/path/to/project.json5"


def test_single_name_policies() -> None:
    pf = _pf("/ws/A/places/lobby.project.json", "A")

    assert format_project_display_name(pf, DisplayPolicy.NEVER, [ROOT_A]) == "lobby.project.json"
    assert format_project_display_name(pf, DisplayPolicy.AS_NEEDED, [ROOT_A]) == "lobby.project.json"
    assert format_project_display_name(pf, DisplayPolicy.ALWAYS, [ROOT_A]) == "places/lobby.project.json"


def test_containing_root_prefers_deepest_root() -> None:
    nested = WorkspaceRoot(name="inner", path="/ws/A/inner")
    pf = _pf("/ws/A/inner/game.project.json", "A")

    assert containing_root(pf, [ROOT_A, nested]) == nested
    assert project_relative_path(pf, [ROOT_A, nested]) == "game.project.json"


def test_root_prefix_is_matched_by_segment() -> None:
    pf = _pf("/ws/AB/game.project.json")

    assert is_external_project(pf, [ROOT_A])
    assert workspace_folder_label(pf, [ROOT_A]) == EXTERNAL_LABEL


def test_shared_suffix_picks_smallest_separating_depth() -> None:
    group = [_pf("/r/x/foo/game.project.json"), _pf("/r/y/foo/game.project.json")]
    names, depth = shared_suffix_names(group)

    assert depth == 3
    assert sorted(names.values()) == [
        "x/foo/game.project.json",
        "y/foo/game.project.json",
    ]
