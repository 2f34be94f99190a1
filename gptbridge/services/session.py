"""
Session Store

Maps chat user ids to GPT-trainer session handles. Sessions live in memory
only and are dropped after a period of inactivity by a periodic cleanup job.

The mapping is guarded by a lock because the cleanup job runs on the
scheduler's thread. The lock only covers dictionary access; session creation
happens outside it.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from gptbridge.api.gpt_trainer import GPTTrainerClient
from gptbridge.core.constants import DEFAULT_CLEANUP_INTERVAL, DEFAULT_MAX_IDLE_TIME
from gptbridge.core.errors import UpstreamUnavailable
from gptbridge.models import Session

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "session_cleanup"


class SessionStore:
    """
    In-memory store of GPT-trainer sessions, one per chat user.

    Handles:
    - Creating a backend session on a user's first message
    - Refreshing activity on every use
    - Evicting sessions idle longer than ``max_idle_time``
    """

    def __init__(
        self,
        client: GPTTrainerClient,
        max_idle_time: float = DEFAULT_MAX_IDLE_TIME,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize the store.

        Args:
            client: GPT-trainer client used to create sessions
            max_idle_time: Seconds of inactivity after which a session is evicted
            cleanup_interval: Seconds between eviction sweeps
            clock: Returns the current time
        """
        self.client = client
        self.max_idle_time = timedelta(seconds=max_idle_time)
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._scheduler: Optional[BackgroundScheduler] = None

        logger.info("[SESSION] Session store initialized")

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get(self, user_id: str) -> Optional[str]:
        """
        Get the session handle for a user and mark the session active.

        Returns:
            The handle, or None if the user has no live session
        """
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return None
            session.last_active_at = self._clock()
            return session.handle

    async def get_or_create(self, user_id: str) -> str:
        """
        Get the user's session handle, creating a backend session if needed.

        Args:
            user_id: Chat user id

        Returns:
            The GPT-trainer session handle

        Raises:
            UpstreamUnavailable: If GPT-trainer could not create a session
        """
        handle = self.get(user_id)
        if handle is not None:
            return handle

        new_handle = await self._create_backend_session(user_id)

        with self._lock:
            existing = self._sessions.get(user_id)
            if existing is not None:
                # Another flow created one while we were waiting; keep it
                existing.last_active_at = self._clock()
                logger.debug(f"[SESSION] Discarding duplicate session {new_handle} for user {user_id}")
                return existing.handle
            self._store(user_id, new_handle)

        logger.info(f"[SESSION] Created new session for user {user_id}: {new_handle}")
        return new_handle

    async def reset(self, user_id: str) -> str:
        """
        Start a fresh backend session for a user, replacing any existing one.

        Raises:
            UpstreamUnavailable: If GPT-trainer could not create a session
        """
        new_handle = await self._create_backend_session(user_id)
        with self._lock:
            self._store(user_id, new_handle)
        logger.info(f"[SESSION] Reset session for user {user_id}: {new_handle}")
        return new_handle

    def remove(self, user_id: str) -> bool:
        """Drop a user's session. Returns True if one existed."""
        with self._lock:
            return self._sessions.pop(user_id, None) is not None

    def count(self) -> int:
        """Get the number of live sessions."""
        with self._lock:
            return len(self._sessions)

    def snapshot(self) -> Dict[str, Session]:
        """Get a copy of every live session, keyed by user id."""
        with self._lock:
            return {user_id: replace(session) for user_id, session in self._sessions.items()}

    # -------------------------------------------------------------------------
    # Eviction
    # -------------------------------------------------------------------------

    def evict_idle(self, now: Optional[datetime] = None) -> int:
        """
        Remove every session idle for longer than ``max_idle_time``.

        Args:
            now: Reference time (default: the store's clock)

        Returns:
            Number of sessions removed
        """
        now = now or self._clock()
        with self._lock:
            expired = [
                user_id for user_id, session in self._sessions.items()
                if now - session.last_active_at > self.max_idle_time
            ]
            for user_id in expired:
                del self._sessions[user_id]

        if expired:
            logger.info(f"[SESSION] Cleaned up {len(expired)} idle sessions")
        return len(expired)

    def start_cleanup(self) -> None:
        """Start the periodic eviction job."""
        if self._scheduler is not None:
            return

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self.evict_idle,
            trigger=IntervalTrigger(seconds=self.cleanup_interval),
            id=CLEANUP_JOB_ID,
            name="Evict idle sessions",
            replace_existing=True
        )
        self._scheduler.start()
        logger.info(f"[SESSION] Session cleanup scheduled every {self.cleanup_interval:.0f} seconds")

    def stop_cleanup(self) -> None:
        """Stop the periodic eviction job."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("[SESSION] Session cleanup stopped")

    @property
    def cleanup_running(self) -> bool:
        return self._scheduler is not None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _create_backend_session(self, user_id: str) -> str:
        try:
            return await self.client.create_session()
        except Exception as e:
            logger.error(f"[SESSION] Could not create session for user {user_id}: {e}")
            raise UpstreamUnavailable(f"Failed to create session: {e}", original_error=e) from e

    def _store(self, user_id: str, handle: str) -> None:
        now = self._clock()
        self._sessions[user_id] = Session(
            user_id=user_id,
            handle=handle,
            created_at=now,
            last_active_at=now
        )
