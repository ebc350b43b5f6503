"""
Core configuration and error types for fetchplan.
"""

from .exceptions import (
    AmbiguousSingleResult,
    AssociationError,
    FetchPlanError,
    InvalidCriteria,
    InvalidPaginationRequest,
    UnsupportedOrdering,
    UnsupportedStrategyCombination,
)
from .settings import (
    FetchPlanSettings,
    LoadingSettings,
    MonitoringSettings,
    PaginationSettings,
    get_fetchplan_settings,
    reset_settings_cache,
)

__all__ = [
    "FetchPlanError",
    "InvalidPaginationRequest",
    "UnsupportedStrategyCombination",
    "AmbiguousSingleResult",
    "InvalidCriteria",
    "UnsupportedOrdering",
    "AssociationError",
    "FetchPlanSettings",
    "LoadingSettings",
    "PaginationSettings",
    "MonitoringSettings",
    "get_fetchplan_settings",
    "reset_settings_cache",
]
