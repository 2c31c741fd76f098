"""
Refresh workflow for LifeOS.

The orchestrator is the only entry point the presentation layer calls.
"""

from lifeos.workflows.refresh import RefreshOrchestrator, RefreshResult

__all__ = ["RefreshOrchestrator", "RefreshResult"]
