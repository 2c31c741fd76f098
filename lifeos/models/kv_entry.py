"""
Key-Value Entry Model for LifeOS.

Backs ``SQLKeyValueStore``: one row per persisted collection, holding the
serialized JSON text of the whole collection.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String, Text

from lifeos.models.base import Base


class KeyValueEntry(Base):
    """
    A single named entry of the local durable store.

    Attributes:
        key: Entry name (e.g. "lifeos:patterns")
        value: Serialized collection (JSON text)
        updated_at: Last write timestamp
    """

    __tablename__ = "lifeos_kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry(key={self.key!r}, size={len(self.value or '')})>"
