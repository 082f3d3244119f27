# utils/thread_safe_session.py
"""
Per-user locking and delivery deduplication so one user's messages are processed one at a time
"""
import threading
import time
import logging
from typing import Dict
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class ThreadSafeSessionManager:
    """Serializes processing per user and remembers recently handled message ids"""

    def __init__(self, lock_timeout: float = 10.0, dedup_window: float = 300.0):
        # Per-user locks to prevent concurrent processing
        self._user_locks: Dict[str, threading.RLock] = {}
        self._locks_lock = threading.Lock()  # Lock for the locks dict itself

        # Users whose message is in flight
        self._processing: Dict[str, bool] = {}
        self._processing_lock = threading.Lock()

        # Message deduplication
        self._processed_messages: Dict[str, float] = {}
        self._message_cleanup_lock = threading.Lock()

        self.lock_timeout = lock_timeout
        self.dedup_window = dedup_window

        logger.info("✅ Thread-safe session manager initialized")

    def get_user_lock(self, user_id: str) -> threading.RLock:
        """Get or create a lock for specific user - thread safe"""
        with self._locks_lock:
            if user_id not in self._user_locks:
                self._user_locks[user_id] = threading.RLock()
            return self._user_locks[user_id]

    @contextmanager
    def user_session_lock(self, user_id: str):
        """Context manager for user-specific locking"""
        user_lock = self.get_user_lock(user_id)
        acquired = False
        try:
            acquired = user_lock.acquire(timeout=self.lock_timeout)
            if not acquired:
                raise TimeoutError(f"Could not acquire lock for user {user_id}")

            logger.debug(f"🔒 Acquired lock for user {user_id}")
            self._set_processing(user_id, True)
            yield

        finally:
            if acquired:
                self._set_processing(user_id, False)
                user_lock.release()
                logger.debug(f"🔓 Released lock for user {user_id}")

    def is_message_duplicate(self, user_id: str, message_id: str) -> bool:
        """Check if message was already processed, marking it processed if not"""
        if not message_id:
            return False

        with self._message_cleanup_lock:
            current_time = time.time()
            cutoff = current_time - self.dedup_window

            to_remove = [key for key, timestamp in self._processed_messages.items()
                         if timestamp < cutoff]
            for key in to_remove:
                del self._processed_messages[key]

            key = f"{user_id}:{message_id}"
            if key in self._processed_messages:
                logger.warning(f"🔄 Duplicate message detected: {key}")
                return True

            self._processed_messages[key] = current_time
            return False

    def _set_processing(self, user_id: str, processing: bool):
        with self._processing_lock:
            if processing:
                self._processing[user_id] = True
            else:
                self._processing.pop(user_id, None)

    def get_session_stats(self) -> Dict:
        """Get current lock statistics"""
        with self._processing_lock:
            processing_users = len(self._processing)
        with self._message_cleanup_lock:
            tracked_messages = len(self._processed_messages)

        return {
            'processing_users': processing_users,
            'user_locks_count': len(self._user_locks),
            'tracked_message_ids': tracked_messages,
        }


# Global instance
session_manager = ThreadSafeSessionManager()
