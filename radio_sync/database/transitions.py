"""
Transition log database module for Radio Sync

Persists a bounded trailing log of detected transitions for display.
Detection never reads from this table.
"""

import json
import logging

logger = logging.getLogger(__name__)


def log_transition(cursor, event):
    """Insert a transition into the log

    Args:
        cursor: SQLite cursor object
        event: TransitionEvent

    Returns:
        int: Row ID of the log entry
    """
    track = event.new.current_track
    cursor.execute("""
        INSERT OR IGNORE INTO transition_log
        (event_id, event_type, collaborator, track_title, summary, payload, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    """, (
        event.id,
        event.kind,
        event.collaborator,
        track.title if track else None,
        event.describe(),
        json.dumps(event.to_dict()),
        event.created_at.isoformat(sep=' ', timespec='seconds')
    ))
    return cursor.lastrowid


def trim_transition_log(cursor, keep):
    """Delete all but the newest `keep` entries

    Returns:
        int: Number of rows deleted
    """
    cursor.execute("""
        DELETE FROM transition_log
        WHERE id NOT IN (
            SELECT id FROM transition_log ORDER BY id DESC LIMIT ?
        )
    """, (keep,))
    deleted = cursor.rowcount
    if deleted:
        logger.debug(f"Trimmed {deleted} old transition log entries")
    return deleted


def get_recent_transitions(cursor, limit=50, event_type=None):
    """Newest transitions first

    Args:
        cursor: SQLite cursor object
        limit: Maximum entries
        event_type: Optional filter (TrackChanged, WentLive, ...)

    Returns:
        list of dicts
    """
    query = """
        SELECT id, event_id, event_type, collaborator, track_title, summary, created_at
        FROM transition_log
    """
    params = []
    if event_type:
        query += " WHERE event_type = ?"
        params.append(event_type)
    query += " ORDER BY id DESC LIMIT ?"
    params.append(limit)

    cursor.execute(query, params)
    return [
        {
            'id': row_id,
            'event_id': event_id,
            'type': kind,
            'collaborator': collaborator,
            'track_title': track_title,
            'summary': summary,
            'created_at': created_at,
        }
        for row_id, event_id, kind, collaborator, track_title, summary, created_at in cursor.fetchall()
    ]
