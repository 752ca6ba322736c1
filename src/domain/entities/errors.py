"""
Domain Errors

This module defines custom error classes for domain-specific exceptions.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DemandValidationError(DomainError):
    """Raised when a request or configuration fails validation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class DemandDependencyError(DomainError):
    """Raised when a core signal cannot be obtained from a collaborator."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class DemandOperationError(DomainError):
    """Raised when a persistence operation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class PredictionNotFoundError(DomainError):
    """Raised when a prediction cannot be found."""

    def __init__(self, prediction_id: str, details: Optional[Dict[str, Any]] = None):
        message = f"Prediction with ID {prediction_id} not found"
        super().__init__(message, details)
