"""
Snapshot diffing for Radio Sync

Transitions are derived purely from two consecutive StationStatus
snapshots; no history is needed for detection.

Rules (evaluated in order):
1. online -> offline              => WentOffline (and nothing else)
2. still offline                  => nothing
3. now live, was offline/automated => WentLive (with collaborator if known)
4. was online+live, now automated  => BackToAutomated
5. track identity changed          => TrackChanged

Track identity is (title, start_time). Only a snapshot that is online and
has a track can produce TrackChanged; entering the "no track info" state is
silent, and leaving it to a real track counts as a change. Listener count,
bitrate, artwork and history never trigger anything.
"""

import logging

from radio_sync.models import (
    TransitionEvent, TRACK_CHANGED, WENT_LIVE, WENT_OFFLINE, BACK_TO_AUTOMATED
)

logger = logging.getLogger(__name__)


def diff_status(old, new):
    """Compare two consecutive snapshots

    Args:
        old: Previous StationStatus, or None on the first successful poll
        new: Freshly polled StationStatus

    Returns:
        list: TransitionEvent objects in emission order (may be empty)
    """
    # First snapshot is the baseline
    if old is None:
        return []

    events = []

    if not new.is_online:
        if old.is_online:
            events.append(TransitionEvent(WENT_OFFLINE, old, new))
        return events

    if new.is_live and (not old.is_online or not old.is_live):
        events.append(TransitionEvent(WENT_LIVE, old, new, collaborator=new.collaborator_name))
    elif old.is_online and old.is_live and not new.is_live:
        events.append(TransitionEvent(BACK_TO_AUTOMATED, old, new))

    new_key = new.track_key
    if new_key is not None and new_key != old.track_key:
        events.append(TransitionEvent(TRACK_CHANGED, old, new))

    if events:
        logger.debug(f"Detected transitions: {[e.kind for e in events]}")

    return events
