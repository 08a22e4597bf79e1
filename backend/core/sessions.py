"""
In-memory registry of reconciliation sessions.

Sessions live only as long as the process. FastAPI runs sync endpoints in
a threadpool, so every session carries its own lock and callers must hold
it while touching the session.
"""
import logging
import threading
import uuid
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional

from storeroom.reconcile.config import Config, load_config
from storeroom.reconcile.models import VerificationMode
from storeroom.reconcile.session import ReconciliationSession

from backend.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    id: str
    session: ReconciliationSession
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class SessionRegistry:
    """Process-local store of sessions keyed by id."""

    def __init__(self, max_sessions: int = 50, config: Optional[Config] = None):
        self.max_sessions = max_sessions
        self._config = config
        self._entries: "OrderedDict[str, SessionEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def _get_config(self) -> Config:
        if self._config is None:
            self._config = load_config(settings.RECONCILE_CONFIG_PATH or None)
        return self._config

    def create(self, mode: VerificationMode) -> SessionEntry:
        entry = SessionEntry(
            id=str(uuid.uuid4()),
            session=ReconciliationSession(mode=mode, config=self._get_config()),
        )
        with self._lock:
            self._entries[entry.id] = entry
            while len(self._entries) > self.max_sessions:
                evicted_id, _ = self._entries.popitem(last=False)
                logger.info(f"Evicted reconcile session {evicted_id}")
        logger.info(f"Created {mode.value} reconcile session {entry.id}")
        return entry

    def get(self, session_id: str) -> Optional[SessionEntry]:
        with self._lock:
            return self._entries.get(session_id)

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._entries.pop(session_id, None) is not None

    def list(self) -> list[SessionEntry]:
        with self._lock:
            return list(self._entries.values())

    def clear(self):
        with self._lock:
            self._entries.clear()

    @contextmanager
    def locked(self, session_id: str) -> Iterator[Optional[SessionEntry]]:
        """Yield the entry with its lock held, or None if unknown."""
        entry = self.get(session_id)
        if entry is None:
            yield None
            return
        with entry.lock:
            yield entry


registry = SessionRegistry(max_sessions=settings.MAX_SESSIONS)
