from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from storefront.db import Base
from storefront.utils.clock import utcnow


class GuestSessionEntry(Base):
    """One key/value pair of a browsing session's storage (e.g. the guest cart)."""

    __tablename__ = "guest_session_entries"
    __table_args__ = (UniqueConstraint("session_id", "key", name="uq_session_key"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)
    key = Column(String(128), nullable=False)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
