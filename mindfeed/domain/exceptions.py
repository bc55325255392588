"""Custom exception hierarchy for mindfeed.

Every failure surfaced by the recommendation engine or the model selector is
one of the types below, so callers can tell bad input, collaborator outages
and deployment problems apart.
"""

from typing import Optional, Dict, Any


class MindFeedException(Exception):
    """Base exception for all mindfeed-specific exceptions."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(MindFeedException):
    """Raised when caller input is malformed or out of range."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.field = field


class DependencyError(MindFeedException):
    """Raised when an external collaborator fails to deliver data."""

    def __init__(
        self,
        message: str,
        dependency: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.dependency = dependency


class ConfigurationError(MindFeedException):
    """Raised when configuration or reference data is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.config_key = config_key
