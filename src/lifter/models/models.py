"""Database models for the key-value storage backend."""
from sqlalchemy import Column, Integer, String, Text, UniqueConstraint

from lifter.models.base import Base, TimestampMixin


class StoredEntry(Base, TimestampMixin):
    """One JSON document stored under a namespace and key."""

    __tablename__ = "kv_entries"
    __table_args__ = (UniqueConstraint("namespace", "key", name="uq_kv_entries_namespace_key"),)

    id = Column(Integer, primary_key=True)
    namespace = Column(String, nullable=False, index=True)
    key = Column(String, nullable=False)  # matched exactly, case-sensitive
    value = Column(Text, nullable=False)  # JSON document

    def __repr__(self) -> str:
        return f"StoredEntry(namespace={self.namespace!r}, key={self.key!r})"
