"""Quote session repository interface and in-memory backend"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from autoquote_gateway.domain.models import QuoteSession


class SessionRepository(ABC):
    """Storage contract for quote sessions; backends are swapped via configuration"""

    @abstractmethod
    def save(self, session: QuoteSession) -> None:
        pass

    @abstractmethod
    def get(self, session_id: str) -> Optional[QuoteSession]:
        pass

    @abstractmethod
    def list_sessions(self) -> List[QuoteSession]:
        pass

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        pass

    @abstractmethod
    def delete_created_before(self, cutoff: datetime) -> int:
        """Remove sessions created before cutoff; returns how many were removed"""
        pass


class InMemorySessionRepository(SessionRepository):
    """Process-local dict store, used by default and in tests"""

    def __init__(self):
        self._sessions: Dict[str, QuoteSession] = {}

    def save(self, session: QuoteSession) -> None:
        self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional[QuoteSession]:
        return self._sessions.get(session_id)

    def list_sessions(self) -> List[QuoteSession]:
        return list(self._sessions.values())

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def delete_created_before(self, cutoff: datetime) -> int:
        expired = [sid for sid, session in self._sessions.items() if session.created_at < cutoff]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)
