"""
Lib package for LifeOS.

Contains shared utilities:
- exceptions.py: Exception hierarchy rooted at LifeOSException
- logging.py: structlog + stdlib logging setup
"""

from lifeos.lib.exceptions import (
    ConfigurationError,
    IngestionError,
    LifeOSException,
    SerializationError,
    StateError,
    StoreError,
    StoreUnavailableError,
)

__all__ = [
    "ConfigurationError",
    "IngestionError",
    "LifeOSException",
    "SerializationError",
    "StateError",
    "StoreError",
    "StoreUnavailableError",
]
