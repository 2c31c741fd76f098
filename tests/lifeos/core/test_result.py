"""
Tests for DegradationLog.
"""

from lifeos.core.result import DegradationLog
from lifeos.lib.exceptions import StoreError


def test_record_and_drain():
    log = DegradationLog()
    assert not log

    log.record("lifeos:patterns", "read", StoreError("redis down"))
    log.record("ingest.health", "pull", "producer offline")

    assert len(log) == 2
    assert str(log.entries[0]) == "lifeos:patterns.read: redis down"

    drained = log.drain()
    assert [d.component for d in drained] == ["lifeos:patterns", "ingest.health"]
    assert len(log) == 0
    assert log.drain() == []


def test_entries_is_a_copy():
    log = DegradationLog()
    log.record("k", "write", "failed")

    log.entries.clear()

    assert len(log) == 1
