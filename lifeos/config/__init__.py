"""
Configuration package for LifeOS.

- constants.py: Fixed thresholds, weights, the pattern catalog and templates
- settings.py: Tunable engine settings (pydantic, LIFEOS_* env vars)
"""

from lifeos.config.constants import Pillar
from lifeos.config.settings import CompletionPolicy, EngineSettings, StorageBackend

__all__ = [
    "CompletionPolicy",
    "EngineSettings",
    "Pillar",
    "StorageBackend",
]
