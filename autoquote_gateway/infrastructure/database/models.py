"""SQLAlchemy ORM models for persisted quote sessions"""

from sqlalchemy import JSON, Column, DateTime, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class QuoteSessionRecord(Base):
    """Quote session with its full snapshot serialized as JSON"""

    __tablename__ = "quote_session"

    session_id = Column(Text, primary_key=True)
    status = Column(Text, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    payload = Column(JSON, nullable=False)
