"""
Current-status cell for Radio Sync

StatusCell holds the one "current" StationStatus. The poller is the only
writer; routes, the notifier and cold-start handlers only read. Writes
replace the whole snapshot, so a reader always sees a complete value.

The cell also tracks staleness (last cycle failed) and keeps a bounded
trailing log of transitions for display.
"""

import logging
import threading
from collections import deque
from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 50


class StatusCell:
    """Single-writer holder of the current StationStatus

    Attributes:
        history_size: Maximum number of transitions kept in memory
    """

    def __init__(self, history_size=DEFAULT_HISTORY_SIZE):
        self._lock = threading.Lock()
        self._status = None
        self._stale = False
        self._last_error = None
        self._last_success_at = None
        self._error_count = 0
        self.history_size = history_size
        self._transitions = deque(maxlen=history_size)

    @property
    def current(self):
        """Current StationStatus, or None before the first successful poll"""
        return self._status

    @property
    def stale(self):
        return self._stale

    @property
    def last_error(self):
        return self._last_error

    @property
    def error_count(self):
        """Number of failed cycles since the process started"""
        return self._error_count

    def replace(self, status, transitions=()):
        """Install a new snapshot and record its transitions

        Args:
            status: New StationStatus
            transitions: TransitionEvent list derived from the previous value

        Returns:
            The previous StationStatus (or None)
        """
        with self._lock:
            previous = self._status
            self._status = status
            self._stale = False
            self._last_error = None
            self._last_success_at = datetime.now()
            self._transitions.extend(transitions)
        return previous

    def mark_stale(self, error):
        """Record a failed cycle; the current snapshot is kept as-is

        Args:
            error: StreamInfoError describing the failure
        """
        with self._lock:
            self._stale = True
            self._last_error = error
            self._error_count += 1

    def recent_transitions(self, limit=None):
        """Most recent transitions, newest first"""
        with self._lock:
            items = list(self._transitions)
        items.reverse()
        if limit is not None:
            items = items[:limit]
        return items

    def snapshot(self):
        """Cold-start payload for clients

        Returns:
            dict with the current status plus staleness information
        """
        with self._lock:
            status = self._status
            stale = self._stale
            last_error = self._last_error
            last_success_at = self._last_success_at

        return {
            'status': status.to_dict() if status else None,
            'stale': stale,
            'last_error': last_error.to_dict() if last_error else None,
            'last_success_at': last_success_at.isoformat() if last_success_at else None,
        }
