"""
Default configuration for the fetchplan library.

Every section mirrors one of the dataclasses defined in
``fetchplan.core.settings``. Projects override values through the
``FETCHPLAN`` Django setting using the same section names.
"""

from __future__ import annotations

from typing import Any

LIBRARY_DEFAULTS: dict[str, Any] = {
    "loading_settings": {
        # Keys per IN (...) follow-up query; 100-1000 keeps parameter lists sane.
        "batch_size": 1000,
        "default_strategy": "batched",
        "warn_on_naive_strategy": True,
    },
    "pagination_settings": {
        "default_page_size": 20,
        "max_page_size": 2000,
    },
    "monitoring_settings": {
        "enable_query_monitoring": True,
        "max_queries_warning": 50,
        "slow_plan_threshold": 1.0,
    },
}


def get_library_defaults() -> dict[str, Any]:
    """Return a copy of the library defaults, one dict per section."""
    return {section: dict(values) for section, values in LIBRARY_DEFAULTS.items()}
