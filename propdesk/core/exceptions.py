"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. None of them are retried inside
the core; callers decide what to do with them.
"""

from typing import Optional, Any


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationError(DomainException):
    """A ticket draft or change breaks a field-level invariant."""


class NotFoundError(ApplicationException):
    """Exception when a referenced ticket or reference row does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Any] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id is not None:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationError(ApplicationException):
    """A required reference row (e.g. the Closed status) is absent."""


class ConcurrencyConflict(RepositoryException):
    """Two mutations of the same ticket raced past the version check."""

    def __init__(self, ticket_id: Any, details: Optional[dict] = None):
        self.ticket_id = ticket_id
        super().__init__(
            f"Ticket {ticket_id} was modified concurrently",
            details or {"ticket_id": ticket_id}
        )
