"""Registro en memoria de las visitas en curso.

Los borradores nunca se guardan en la base de datos: viven aquí mientras el
promotor llena el formulario y se descartan al completar, cancelar o expirar.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Optional

from ..config import settings
from .visit_workflow import VisitWorkflow

logger = logging.getLogger(__name__)


@dataclass
class VisitSession:
    id: str
    user_id: int
    workflow: VisitWorkflow
    check_in_id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    touched_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class VisitSessionStore:
    """Visitas en curso indexadas por id; cada una pertenece a un solo usuario."""

    def __init__(self, ttl_minutes: int):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._sessions: dict[str, VisitSession] = {}
        self._lock = threading.Lock()

    def create(self, workflow: VisitWorkflow, check_in_id: Optional[int] = None) -> VisitSession:
        session = VisitSession(
            id=uuid.uuid4().hex,
            user_id=workflow.user_id,
            workflow=workflow,
            check_in_id=check_in_id,
        )
        with self._lock:
            self._prune_locked(datetime.now(UTC))
            self._sessions[session.id] = session
        logger.info(
            f"Visita iniciada: {session.id} (tienda {workflow.store.id}, usuario {workflow.user_id})"
        )
        return session

    def get(self, session_id: str, user_id: int) -> Optional[VisitSession]:
        """Devuelve la visita si existe, no expiró y pertenece al usuario."""
        now = datetime.now(UTC)
        with self._lock:
            self._prune_locked(now)
            session = self._sessions.get(session_id)
            if session is None or session.user_id != user_id:
                return None
            session.touched_at = now
            return session

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def prune(self, now: datetime | None = None) -> int:
        with self._lock:
            return self._prune_locked(now or datetime.now(UTC))

    def _prune_locked(self, now: datetime) -> int:
        expired = [
            sid
            for sid, s in self._sessions.items()
            if now - s.touched_at > self.ttl and not s.workflow.state.submitting
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"{len(expired)} visita(s) expiradas descartadas")
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


@lru_cache
def get_visit_sessions() -> VisitSessionStore:
    """Dependencia: registro compartido de visitas en curso."""
    return VisitSessionStore(ttl_minutes=settings.visit_session_ttl_minutes)
