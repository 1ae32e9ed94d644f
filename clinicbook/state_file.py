from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass

from clinicbook.timegrid import DEFAULT_SLOT, clamp_slot_height

logger = logging.getLogger(__name__)

VIEW_MODES = ("day", "week", "month")


@dataclass(frozen=True)
class ViewState:
    """What survives between sessions: selection order, zoom and view mode."""

    selected_resource_ids: tuple[str, ...] = ()
    slot_height: float = DEFAULT_SLOT
    view_mode: str = "day"


def load_view_state(path: str) -> ViewState:
    if not os.path.exists(path):
        return ViewState()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, OSError):
        # Corrupted state shouldn't block the calendar; start fresh.
        logger.warning("Ignoring unreadable view state file %s", path, exc_info=True)
        return ViewState()

    if not isinstance(raw, dict):
        return ViewState()

    ids: list[str] = []
    for item in raw.get("selected_resource_ids", []) or []:
        if isinstance(item, (str, int)) and str(item) not in ids:
            ids.append(str(item))

    try:
        slot_height = clamp_slot_height(float(raw.get("slot_height", DEFAULT_SLOT)))
    except (TypeError, ValueError):
        slot_height = DEFAULT_SLOT

    view_mode = raw.get("view_mode", "day")
    if view_mode not in VIEW_MODES:
        view_mode = "day"

    return ViewState(selected_resource_ids=tuple(ids), slot_height=slot_height, view_mode=view_mode)


def save_view_state(path: str, state: ViewState) -> None:
    data = asdict(state)
    data["selected_resource_ids"] = list(state.selected_resource_ids)

    folder = os.path.dirname(os.path.abspath(path))
    if folder and not os.path.exists(folder):
        os.makedirs(folder, exist_ok=True)

    # Atomic write
    with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
        json.dump(data, tf, ensure_ascii=False, indent=2)
        tmp_name = tf.name

    os.replace(tmp_name, path)
