from __future__ import annotations

import json

from clinicbook.state_file import ViewState, load_view_state, save_view_state


def test_missing_file_gives_defaults(tmp_path) -> None:
    assert load_view_state(str(tmp_path / "absent.json")) == ViewState()


def test_save_then_load_keeps_selection_order(tmp_path) -> None:
    path = str(tmp_path / "nested" / "state.json")
    state = ViewState(selected_resource_ids=("r3", "r1"), slot_height=90, view_mode="week")

    save_view_state(path, state)

    assert load_view_state(path) == state
    assert list(tmp_path.joinpath("nested").iterdir()) == [tmp_path / "nested" / "state.json"]


def test_corrupt_file_is_ignored(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_view_state(str(path)) == ViewState()


def test_unexpected_values_are_sanitized(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps({"selected_resource_ids": [7, "7", None, "r2"], "slot_height": 500, "view_mode": "year"}),
        encoding="utf-8",
    )

    state = load_view_state(str(path))

    assert state.selected_resource_ids == ("7", "r2")
    assert state.slot_height == 120
    assert state.view_mode == "day"


def test_non_object_state_gives_defaults(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert load_view_state(str(path)) == ViewState()
