"""
Settings module for fetchplan.

Each section of the ``FETCHPLAN`` Django setting is loaded into a frozen
dataclass, merging library defaults with project values. Settings are read
once and cached; the cache is only cleared through Django's
``setting_changed`` signal (see ``fetchplan.apps``).
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured

from ..defaults import get_library_defaults

SETTINGS_NAME = "FETCHPLAN"


def _merge_settings_dicts(*dicts: dict[str, Any]) -> dict[str, Any]:
    """Merge multiple settings dictionaries with later ones taking precedence."""
    result = {}
    for d in dicts:
        if d:
            result.update(d)
    return result


def _get_project_section(section: str) -> dict[str, Any]:
    project_settings = getattr(django_settings, SETTINGS_NAME, None) or {}
    if not isinstance(project_settings, dict):
        raise ImproperlyConfigured(f"{SETTINGS_NAME} must be a dict")
    return project_settings.get(section) or {}


def _load_section(cls, section: str):
    defaults = get_library_defaults().get(section, {})
    merged = _merge_settings_dicts(defaults, _get_project_section(section))
    valid_fields = set(cls.__dataclass_fields__.keys())
    return cls(**{k: v for k, v in merged.items() if k in valid_fields})


@dataclass(frozen=True)
class LoadingSettings:
    """Settings for one-to-many collection loading."""

    batch_size: int = 1000
    default_strategy: str = "batched"
    warn_on_naive_strategy: bool = True

    def __post_init__(self):
        if not isinstance(self.batch_size, int) or self.batch_size <= 0:
            raise ImproperlyConfigured(
                f"loading_settings.batch_size must be a positive integer, got {self.batch_size!r}"
            )
        from ..loading.base import LoadingStrategy

        try:
            LoadingStrategy(self.default_strategy)
        except ValueError:
            raise ImproperlyConfigured(
                f"Unknown loading_settings.default_strategy {self.default_strategy!r}"
            )

    @classmethod
    def from_settings(cls) -> "LoadingSettings":
        return _load_section(cls, "loading_settings")


@dataclass(frozen=True)
class PaginationSettings:
    """Settings for page requests."""

    default_page_size: int = 20
    max_page_size: int = 2000

    def __post_init__(self):
        if self.default_page_size <= 0 or self.max_page_size <= 0:
            raise ImproperlyConfigured("Page sizes must be positive integers")
        if self.default_page_size > self.max_page_size:
            raise ImproperlyConfigured(
                "pagination_settings.default_page_size cannot exceed max_page_size"
            )

    @classmethod
    def from_settings(cls) -> "PaginationSettings":
        return _load_section(cls, "pagination_settings")


@dataclass(frozen=True)
class MonitoringSettings:
    """Settings for query-count monitoring."""

    enable_query_monitoring: bool = True
    max_queries_warning: int = 50
    slow_plan_threshold: float = 1.0  # seconds

    @classmethod
    def from_settings(cls) -> "MonitoringSettings":
        return _load_section(cls, "monitoring_settings")


@dataclass(frozen=True)
class FetchPlanSettings:
    """All fetchplan settings sections."""

    loading: LoadingSettings
    pagination: PaginationSettings
    monitoring: MonitoringSettings

    @classmethod
    def from_settings(cls) -> "FetchPlanSettings":
        return cls(
            loading=LoadingSettings.from_settings(),
            pagination=PaginationSettings.from_settings(),
            monitoring=MonitoringSettings.from_settings(),
        )

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            "loading_settings": dict(self.loading.__dict__),
            "pagination_settings": dict(self.pagination.__dict__),
            "monitoring_settings": dict(self.monitoring.__dict__),
        }


@lru_cache(maxsize=1)
def get_fetchplan_settings() -> FetchPlanSettings:
    """Return the process-wide settings, loading them on first use."""
    return FetchPlanSettings.from_settings()


def reset_settings_cache() -> None:
    """Drop cached settings so the next access reloads them."""
    get_fetchplan_settings.cache_clear()
