"""
Custom exceptions for query planning and collection loading.

Planning errors are raised before any query is sent to the database.
Errors raised by the database driver while executing a plan are never
wrapped; they reach the caller unchanged.
"""

from typing import Any, Dict, List, Optional


class FetchPlanError(Exception):
    """Base exception for fetchplan errors."""

    def __init__(self, message: str, model_name: Optional[str] = None):
        self.model_name = model_name
        super().__init__(message)


class InvalidPaginationRequest(FetchPlanError):
    """Raised when offset/limit are negative, zero or above the configured maximum."""

    def __init__(
        self,
        message: str,
        offset: Optional[Any] = None,
        limit: Optional[Any] = None,
        max_page_size: Optional[int] = None,
    ):
        self.offset = offset
        self.limit = limit
        self.max_page_size = max_page_size
        super().__init__(message)


class UnsupportedStrategyCombination(FetchPlanError):
    """Raised when a loading strategy cannot honour the requested plan."""

    def __init__(
        self,
        message: str,
        strategy: Optional[str] = None,
        associations: Optional[List[str]] = None,
        model_name: Optional[str] = None,
    ):
        self.strategy = strategy
        self.associations = associations or []
        super().__init__(message, model_name)


class AmbiguousSingleResult(FetchPlanError):
    """Raised when a single-result fetch matches more than one record."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        keys: Optional[List[Any]] = None,
    ):
        self.keys = keys or []
        super().__init__(message, model_name)


class InvalidCriteria(FetchPlanError):
    """Raised when raw criteria fail FilterSet form validation."""

    def __init__(
        self,
        message: str,
        errors: Optional[Dict[str, Any]] = None,
        model_name: Optional[str] = None,
    ):
        self.errors = errors or {}
        super().__init__(message, model_name)


class UnsupportedOrdering(FetchPlanError):
    """Raised when a sort term names an unknown or to-many field."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        fields: Optional[List[str]] = None,
    ):
        self.fields = fields or []
        super().__init__(message, model_name)


class AssociationError(FetchPlanError):
    """Raised when an association is not a reverse one-to-many relation."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        association: Optional[str] = None,
    ):
        self.association = association
        super().__init__(message, model_name)
