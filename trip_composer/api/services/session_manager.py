# trip_composer/api/services/session_manager.py
"""In-memory registry of planning sessions."""

import logging
import secrets
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from trip_composer.api.config import get_session_config
from trip_composer.api.services.planning_service import PlanningSession

logger = logging.getLogger(__name__)


class PlanningSessionManager:
    """Creates, looks up and expires ``PlanningSession`` objects."""

    def __init__(self, session_factory: Callable[[str], PlanningSession] = PlanningSession,
                 start_cleanup: bool = True):
        self.config = get_session_config()
        self.sessions: Dict[str, PlanningSession] = {}
        self._factory = session_factory

        # Thread safety
        self.lock = threading.RLock()

        if start_cleanup:
            self.cleanup_thread = threading.Thread(
                target=self._cleanup_loop,
                daemon=True
            )
            self.cleanup_thread.start()

        logger.info("PlanningSessionManager initialized")

    def create_session(self) -> Optional[PlanningSession]:
        """Create a new planning session, or None when at capacity."""
        with self.lock:
            if len(self.sessions) >= self.config["max_sessions"]:
                logger.warning("Maximum planner sessions reached")
                return None

            session_id = f"plan_{secrets.token_urlsafe(16)}"
            planning_session = self._factory(session_id)
            self.sessions[session_id] = planning_session

            logger.info(f"Created planner session {session_id}")
            return planning_session

    def get_session(self, session_id: Optional[str]) -> Optional[PlanningSession]:
        if not session_id:
            return None
        with self.lock:
            planning_session = self.sessions.get(session_id)
            if planning_session:
                planning_session.touch()
            return planning_session

    def get_or_create(self, session_id: Optional[str]) -> Optional[PlanningSession]:
        with self.lock:
            return self.get_session(session_id) or self.create_session()

    def remove_session(self, session_id: str, reason: str = "manual") -> None:
        with self.lock:
            planning_session = self.sessions.pop(session_id, None)
        if planning_session is None:
            return

        planning_session.close()
        duration = (datetime.now() - planning_session.created_at).total_seconds()
        logger.info(f"Removed planner session {session_id} - Reason: {reason}, Duration: {duration:.1f}s")

    def get_stats(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "total_sessions": len(self.sessions),
                "config": {
                    "max_sessions": self.config["max_sessions"],
                    "timeout_seconds": self.config["session_timeout_seconds"],
                },
            }

    def _cleanup_loop(self):
        """Background thread to clean up expired sessions."""
        while True:
            time.sleep(self.config["cleanup_interval_seconds"])
            try:
                self.cleanup_expired_sessions()
            except Exception as e:
                logger.error(f"Error in cleanup loop: {e}")

    def cleanup_expired_sessions(self) -> int:
        """Remove sessions idle for longer than the configured timeout."""
        cutoff_time = datetime.now() - timedelta(seconds=self.config["session_timeout_seconds"])

        with self.lock:
            expired = [sid for sid, s in self.sessions.items() if s.last_activity < cutoff_time]

        for sid in expired:
            self.remove_session(sid, "timeout")

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired planner sessions")
        return len(expired)


# Global session manager instance
_session_manager = None


def get_session_manager() -> PlanningSessionManager:
    """Get the global PlanningSessionManager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = PlanningSessionManager()
    return _session_manager


def set_session_manager(manager: Optional[PlanningSessionManager]) -> None:
    """Swap the global manager (used by tests)."""
    global _session_manager
    _session_manager = manager
