"""Dashboard entity: metadata plus the grid layout of its widgets."""

from typing import List, Optional

from pydantic import BaseModel, Field

from .base import BaseEntity


class LayoutItem(BaseModel):
    """Where one widget sits on the 12-column grid (react-grid-layout format)."""

    widget_id: str
    x: int = 0  # X position in grid units
    y: int = 0  # Y position in grid units
    w: int = 1  # Width in grid units
    h: int = 1  # Height in grid units
    min_w: Optional[int] = None
    min_h: Optional[int] = None
    max_w: Optional[int] = None
    max_h: Optional[int] = None


class Dashboard(BaseEntity):
    """
    A named, configurable dashboard.

    ``layout`` mirrors the widgets stored in ``dashboard_widgets``; the
    dashboard service keeps both in lockstep. At most one dashboard in the
    collection carries ``is_default``.
    """

    name: str
    description: Optional[str] = None
    layout: List[LayoutItem] = Field(default_factory=list)
    is_default: bool = False
    is_public: bool = False
