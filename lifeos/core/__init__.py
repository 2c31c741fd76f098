"""
Core types shared by the engine components.

Exports:
    - RefreshStatus: success / partial / failed
    - DegradationLog: Locally-handled failures of one refresh cycle
"""

from lifeos.core.result import Degradation, DegradationLog, RefreshStatus

__all__ = ["Degradation", "DegradationLog", "RefreshStatus"]
