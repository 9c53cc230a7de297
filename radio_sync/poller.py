"""
Status poller for Radio Sync

One poll cycle:
1. Fetch station status from Radio.co (one GET)
2. Diff against the current snapshot
3. Replace the current snapshot
4. Hand transitions to the notifier and the transition log

Failures (UpstreamUnavailable, MalformedResponse) are soft: the current
snapshot is kept and marked stale, a stream-info error is published, and
the next scheduled interval tries again. Cycles never overlap.
"""

import logging
import threading

from radio_sync.exceptions import StreamInfoError
from radio_sync.transitions import diff_status

logger = logging.getLogger(__name__)

# Upstream rate-limit guidance: never poll more often than this
MIN_POLL_INTERVAL_SECONDS = 10


def clamp_interval(seconds):
    """Clamp a poll interval to the upstream floor

    Args:
        seconds: Requested interval in seconds

    Returns:
        int: Interval that respects MIN_POLL_INTERVAL_SECONDS
    """
    try:
        seconds = int(seconds)
    except (TypeError, ValueError):
        logger.warning(f"Invalid poll interval {seconds!r}, using {MIN_POLL_INTERVAL_SECONDS}s")
        return MIN_POLL_INTERVAL_SECONDS

    if seconds < MIN_POLL_INTERVAL_SECONDS:
        logger.warning(
            f"Poll interval {seconds}s is below the {MIN_POLL_INTERVAL_SECONDS}s floor, "
            f"using {MIN_POLL_INTERVAL_SECONDS}s"
        )
        return MIN_POLL_INTERVAL_SECONDS
    return seconds


class StatusPoller:
    """Fetch -> diff -> replace, one cycle at a time

    Attributes:
        client: RadioCoClient for the station
        cell: StatusCell owning the current snapshot
        notifier: ChangeNotifier receiving transitions and errors (optional)
        db: SyncDatabase for the persistent transition log (optional)
    """

    def __init__(self, client, cell, notifier=None, db=None):
        self.client = client
        self.cell = cell
        self.notifier = notifier
        self.db = db
        self._cycle_lock = threading.Lock()
        self.cycles = 0
        self.failures = 0
        self.skipped = 0

    def poll_once(self):
        """Run one poll cycle

        Returns:
            dict: Results of the cycle
                {
                    "success": bool,
                    "skipped": bool,
                    "transitions": [kind, ...],
                    "error": {...} or None
                }
        """
        if not self._cycle_lock.acquire(blocking=False):
            self.skipped += 1
            logger.warning("Previous poll cycle still running, skipping this one")
            return {'success': False, 'skipped': True, 'transitions': [], 'error': None}

        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self):
        self.cycles += 1

        try:
            new_status = self.client.fetch_status()
        except StreamInfoError as e:
            self.failures += 1
            logger.warning(f"streamInfoError ({e.kind}): {e.message}")
            self.cell.mark_stale(e)
            if self.notifier:
                self.notifier.publish_error(e)
            return {'success': False, 'skipped': False, 'transitions': [], 'error': e.to_dict()}

        previous = self.cell.current
        events = diff_status(previous, new_status)
        self.cell.replace(new_status, events)

        if previous is None:
            logger.info(f"Baseline status: {new_status.online_state}/{new_status.source_mode}, "
                        f"track={new_status.current_track.title if new_status.current_track else None}")

        for event in events:
            logger.info(f"Transition: {event.kind} - {event.describe()}")
            self._log_transition(event)
            if self.notifier:
                self.notifier.publish(event)

        return {
            'success': True,
            'skipped': False,
            'transitions': [event.kind for event in events],
            'error': None
        }

    def _log_transition(self, event):
        if not self.db:
            return
        try:
            self.db.log_transition(event)
        except Exception as e:
            logger.error(f"Failed to log transition {event.kind}: {e}")
