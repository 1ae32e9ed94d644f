from __future__ import annotations

import hashlib
from enum import Enum

from clinicbook.domain import ResourceSelection

RESOURCE_COLORS = (
    "#007AFF",  # blue
    "#34C759",  # green
    "#FF9500",  # orange
    "#FF3B30",  # red
    "#AF52DE",  # purple
    "#5AC8FA",  # light blue
    "#FF2D55",  # pink
    "#FFCC00",  # yellow
)


class ColorMode(str, Enum):
    # Position in the current selection. Colors follow the selection order.
    INDEX = "index"
    # Digest of the resource id. Colors never change between sessions.
    STABLE = "stable"


def color_for_index(index: int, palette: tuple[str, ...] = RESOURCE_COLORS) -> str:
    return palette[index % len(palette)]


def color_for_resource_id(resource_id: str, palette: tuple[str, ...] = RESOURCE_COLORS) -> str:
    digest = hashlib.sha256(resource_id.encode("utf-8")).digest()
    return palette[int.from_bytes(digest[:4], "big") % len(palette)]


def assign_colors(
    selection: ResourceSelection,
    *,
    mode: ColorMode = ColorMode.INDEX,
    palette: tuple[str, ...] = RESOURCE_COLORS,
) -> dict[str, str]:
    """Map each selected resource id to its color."""
    if mode is ColorMode.STABLE:
        return {r.id: color_for_resource_id(r.id, palette) for r in selection}
    return {r.id: color_for_index(i, palette) for i, r in enumerate(selection)}
