"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from propdesk.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationError,
    NotFoundError,
    ConfigurationError,
    ConcurrencyConflict,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "ConcurrencyConflict",
]
