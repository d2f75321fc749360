# hackmate/models/document.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from hackmate.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """One schemaless document, addressed by (collection, doc_id)."""

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "doc_id", name="uq_documents_path"),)

    # insertion order doubles as the natural read order of a collection
    id = Column(Integer, primary_key=True, autoincrement=True)

    collection = Column(String(64), nullable=False, index=True)
    doc_id = Column(String(255), nullable=False)

    data = Column(JSON, nullable=False, default=dict)

    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
