"""Data access layer for quote sessions"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter
from sqlalchemy.orm import Session, sessionmaker

from autoquote_gateway.domain.models import QuoteSession
from autoquote_gateway.infrastructure.database.models import QuoteSessionRecord
from autoquote_gateway.services.repository import SessionRepository

session_adapter = TypeAdapter(QuoteSession)


def encode_session(session: QuoteSession) -> Dict[str, Any]:
    return session_adapter.dump_python(session, mode="json")


def decode_session(payload: Dict[str, Any]) -> QuoteSession:
    return session_adapter.validate_python(payload)


class SqlSessionRepository(SessionRepository):
    """Repository for quote sessions backed by a SQL database"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def save(self, session: QuoteSession) -> None:
        """Insert or replace the stored snapshot of a session"""
        db: Session = self.session_factory()
        try:
            record = db.get(QuoteSessionRecord, session.session_id)
            if record is None:
                record = QuoteSessionRecord(session_id=session.session_id, created_at=session.created_at)
                db.add(record)
            record.status = session.status.value
            record.updated_at = session.updated_at
            record.payload = encode_session(session)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get(self, session_id: str) -> Optional[QuoteSession]:
        db: Session = self.session_factory()
        try:
            record = db.get(QuoteSessionRecord, session_id)
            return decode_session(record.payload) if record is not None else None
        finally:
            db.close()

    def list_sessions(self) -> List[QuoteSession]:
        """All stored sessions, oldest first"""
        db: Session = self.session_factory()
        try:
            records = db.query(QuoteSessionRecord).order_by(QuoteSessionRecord.created_at.asc()).all()
            return [decode_session(record.payload) for record in records]
        finally:
            db.close()

    def delete(self, session_id: str) -> bool:
        db: Session = self.session_factory()
        try:
            deleted = db.query(QuoteSessionRecord).filter(QuoteSessionRecord.session_id == session_id).delete()
            db.commit()
            return deleted > 0
        finally:
            db.close()

    def delete_created_before(self, cutoff: datetime) -> int:
        db: Session = self.session_factory()
        try:
            deleted = db.query(QuoteSessionRecord).filter(QuoteSessionRecord.created_at < cutoff).delete()
            db.commit()
            return deleted
        finally:
            db.close()
