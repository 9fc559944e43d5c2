"""Grid placement for new widgets on the 12-column dashboard grid."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

GRID_COLUMNS = 12


class Size(Protocol):
    w: int
    h: int


class Rect(Size, Protocol):
    x: int
    y: int


@dataclass(frozen=True)
class GridRect:
    x: int
    y: int
    w: int
    h: int


@dataclass(frozen=True)
class WidgetSize:
    w: int
    h: int
    min_w: int
    min_h: int


_DEFAULT_SIZES = {
    "metric": WidgetSize(w=3, h=2, min_w=2, min_h=2),
    "chart": WidgetSize(w=6, h=4, min_w=4, min_h=3),
    "list": WidgetSize(w=4, h=4, min_w=3, min_h=3),
    "table": WidgetSize(w=6, h=4, min_w=4, min_h=3),
    "funnel": WidgetSize(w=6, h=4, min_w=4, min_h=3),
    "leaderboard": WidgetSize(w=4, h=4, min_w=3, min_h=3),
}
_FALLBACK_SIZE = WidgetSize(w=4, h=3, min_w=2, min_h=2)


def default_widget_size(widget_type: str) -> WidgetSize:
    return _DEFAULT_SIZES.get(str(widget_type), _FALLBACK_SIZE)


def rects_overlap(a: Rect, b: Rect) -> bool:
    """Axis-aligned overlap; touching edges do not count."""
    return a.x < b.x + b.w and a.x + a.w > b.x and a.y < b.y + b.h and a.y + a.h > b.y


def _fits(candidate: GridRect, layout: Iterable[Rect]) -> bool:
    return not any(rects_overlap(candidate, item) for item in layout)


def find_next_position(existing_layout: Sequence[Rect], size: Size) -> GridRect:
    """
    First free spot for a rectangle of ``size``.

    Scans rows top to bottom and columns left to right down to the lowest
    occupied row; when nothing fits, the rectangle starts a new row below
    everything.
    """
    w, h = size.w, size.h

    if not existing_layout:
        return GridRect(x=0, y=0, w=w, h=h)

    max_y = max(item.y + item.h for item in existing_layout)

    for y in range(0, max_y + 1):
        for x in range(0, GRID_COLUMNS - w + 1):
            candidate = GridRect(x=x, y=y, w=w, h=h)
            if _fits(candidate, existing_layout):
                return candidate

    return GridRect(x=0, y=max_y, w=w, h=h)
