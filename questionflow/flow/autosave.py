"""
Debounced draft auto-save.

Every answer change cancels the pending timer and schedules a new one. When
the timer fires, the draft collaborator is called with the responses captured
at scheduling time. An ``is_saving`` guard skips a save while another is
still in flight; it does not cancel the one already issued.

Save failures are logged and swallowed: they never reach the respondent and
never block navigation.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..errors import DraftSaveError
from ..schemas.session import ResponseMap
from .collaborators import SaveDraftCallback, invoke

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], "threading.Timer"]


class DraftAutoSaver:
    """Debounces calls to a draft-save collaborator."""

    def __init__(
        self,
        save_callback: SaveDraftCallback,
        delay: float = 2.0,
        timer_factory: Optional[TimerFactory] = None,
        session_id: str = "",
    ):
        """
        Args:
            save_callback: Called with a copy of the responses
            delay: Seconds between the last change and the save
            timer_factory: Builds a timer object with start()/cancel();
                defaults to threading.Timer
            session_id: Used in log messages only
        """
        self.save_callback = save_callback
        self.delay = delay
        self.timer_factory = timer_factory or threading.Timer
        self.session_id = session_id

        self._lock = threading.Lock()
        self._timer = None
        self._pending: Optional[ResponseMap] = None
        self.is_saving = False
        self.saves_completed = 0
        self.last_error: Optional[DraftSaveError] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self, responses: ResponseMap):
        """(Re)start the debounce timer for this set of responses."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = dict(responses)
            fired = []
            timer = self.timer_factory(self.delay, lambda: self._fire(fired[0]))
            fired.append(timer)
            # threading.Timer must not keep the interpreter alive
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self):
        """Drop any pending save."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None

    def _fire(self, timer):
        with self._lock:
            # A newer schedule() or cancel() owns the pending save now
            if self._timer is not timer:
                logger.debug("Superseded draft timer fired for session %s, ignoring", self.session_id)
                return
            self._timer = None
        self.flush()

    def flush(self, responses: Optional[ResponseMap] = None) -> bool:
        """
        Save now.

        Args:
            responses: Responses to save; defaults to the pending snapshot

        Returns:
            True if the collaborator completed without raising
        """
        with self._lock:
            if self.is_saving:
                logger.debug("Draft save already in flight for session %s, skipping", self.session_id)
                return False
            payload = dict(responses) if responses is not None else self._pending
            if payload is None:
                return False
            self._pending = None
            self.is_saving = True

        try:
            invoke(self.save_callback, payload)
        except Exception as exc:
            error = DraftSaveError(f"Failed to save draft: {exc}", self.session_id)
            error.__cause__ = exc
            self.last_error = error
            logger.warning("Draft save failed for session %s: %s", self.session_id, exc, exc_info=exc)
            return False
        finally:
            with self._lock:
                self.is_saving = False

        self.saves_completed += 1
        logger.debug("Draft saved for session %s (%d answers)", self.session_id, len(payload))
        return True
