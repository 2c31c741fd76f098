"""
LifeOS integration engine.

Cross-pillar pattern mining and life intelligence over the event streams of
the LifeOS pillars (health, procrastination, decisions, relationships,
career simulator).

Usage:
    from lifeos.bootstrap import create_orchestrator

    orchestrator = create_orchestrator(producers=[...])
    result = await orchestrator.refresh()

Logging is configured by the host process with
``lifeos.lib.logging.setup_logging()``.
"""

__version__ = "1.0.0"
