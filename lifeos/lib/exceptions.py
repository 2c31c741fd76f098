"""
Custom exception hierarchy for LifeOS.

All exceptions inherit from LifeOSException, enabling catch-all for
LifeOS-specific errors while keeping the ability to catch specific
error types.
"""

from __future__ import annotations


class LifeOSException(Exception):
    """Base exception for all LifeOS errors."""


class ConfigurationError(LifeOSException):
    """Missing environment variables, invalid config values, or startup failures."""


class StoreError(LifeOSException):
    """Key-value store read or write failures."""


class StoreUnavailableError(StoreError):
    """The configured backend could not be reached (Redis down, database locked)."""


class SerializationError(LifeOSException):
    """JSON encode/decode, data serialization/deserialization failures."""


class IngestionError(LifeOSException):
    """A pillar producer failed to deliver its recent events."""


class StateError(LifeOSException):
    """Invalid state transitions, missing required state."""
