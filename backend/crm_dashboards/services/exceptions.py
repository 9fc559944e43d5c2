"""Custom exceptions for the dashboard services."""
from __future__ import annotations


class DashboardServiceError(Exception):
    """Base exception for dashboard service failures."""


class NotFoundError(DashboardServiceError):
    """Raised when a referenced dashboard, widget or pipeline does not exist."""
    def __init__(self, entity: str, entity_id: object = None):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidWidgetConfigError(DashboardServiceError):
    """Raised when a widget config does not fit the widget's type."""
