"""
Domain-specific exception hierarchy for the slot resolver application.
"""


class SlotResolverError(Exception):
    """Base class for all application-level errors."""


class PersistenceError(SlotResolverError):
    """Raised when availability data cannot be fetched, stored or parsed."""


class ConfigurationError(SlotResolverError):
    """Raised when the application is missing settings it needs."""
