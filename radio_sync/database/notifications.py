"""
Notifications database module for Radio Sync

This module handles all database operations for:
- Notification provider configurations
- Notification history/tracking
- Listener push tokens
"""

import json
import logging
from datetime import datetime
from typing import List, Dict, Any, Optional

logger = logging.getLogger(__name__)

_NOTIFICATION_COLUMNS = """
    id, notification_type, name, enabled, config, triggers,
    created_at, last_triggered, failure_count
"""


def _row_to_notification(row) -> Dict[str, Any]:
    (notif_id, notification_type, name, enabled, config_json,
     triggers_json, created_at, last_triggered, failure_count) = row

    return {
        'id': notif_id,
        'notification_type': notification_type,
        'name': name,
        'enabled': bool(enabled),
        'config': json.loads(config_json),
        'triggers': json.loads(triggers_json),
        'created_at': created_at,
        'last_triggered': last_triggered,
        'failure_count': failure_count
    }


def create_notification(cursor, notification_type: str, name: str,
                        config: Dict[str, Any], triggers: List[str],
                        enabled: bool = True) -> int:
    """Create a new notification configuration

    Args:
        cursor: SQLite cursor object
        notification_type: Provider type (onesignal, discord, ntfy, ...)
        name: Human-readable name
        config: Configuration dictionary (will be stored as JSON)
        triggers: List of trigger types
        enabled: Whether notification is enabled

    Returns:
        int: ID of the created notification
    """
    cursor.execute("""
        INSERT INTO notifications
        (notification_type, name, enabled, config, triggers)
        VALUES (?, ?, ?, ?, ?)
    """, (notification_type, name, enabled, json.dumps(config), json.dumps(triggers)))

    notif_id = cursor.lastrowid
    logger.info(f"Created notification '{name}' (ID: {notif_id}, type: {notification_type})")
    return notif_id


def get_notification(cursor, notification_id: int) -> Optional[Dict[str, Any]]:
    """Get a notification configuration by ID"""
    cursor.execute(f"SELECT {_NOTIFICATION_COLUMNS} FROM notifications WHERE id = ?",
                   (notification_id,))
    row = cursor.fetchone()
    return _row_to_notification(row) if row else None


def get_all_notifications(cursor, enabled_only: bool = False) -> List[Dict[str, Any]]:
    """Get all notification configurations

    Args:
        cursor: SQLite cursor object
        enabled_only: Only return enabled notifications

    Returns:
        List of notification configurations
    """
    query = f"SELECT {_NOTIFICATION_COLUMNS} FROM notifications"
    if enabled_only:
        query += " WHERE enabled = 1"
    query += " ORDER BY created_at DESC, id DESC"

    cursor.execute(query)
    return [_row_to_notification(row) for row in cursor.fetchall()]


def get_notifications_for_event(cursor, event_type: str) -> List[Dict[str, Any]]:
    """Get all enabled notifications that should trigger for an event

    Args:
        cursor: SQLite cursor object
        event_type: Event type (on_went_live, on_stream_error, etc.)

    Returns:
        List of matching notification configurations
    """
    return [
        notification for notification in get_all_notifications(cursor, enabled_only=True)
        if event_type in notification['triggers']
    ]


def delete_notification(cursor, notification_id: int) -> bool:
    """Delete a notification configuration and its history

    Returns:
        bool: True if deleted successfully
    """
    cursor.execute("DELETE FROM notification_history WHERE notification_id = ?", (notification_id,))
    cursor.execute("DELETE FROM notifications WHERE id = ?", (notification_id,))
    deleted = cursor.rowcount > 0

    if deleted:
        logger.info(f"Deleted notification ID {notification_id} and its history")

    return deleted


def update_notification_triggered(cursor, notification_id: int) -> bool:
    """Update last_triggered timestamp for a notification"""
    cursor.execute("""
        UPDATE notifications
        SET last_triggered = ?
        WHERE id = ?
    """, (datetime.now().isoformat(sep=' ', timespec='seconds'), notification_id))

    return cursor.rowcount > 0


def increment_notification_failures(cursor, notification_id: int) -> bool:
    """Increment failure count for a notification"""
    cursor.execute("""
        UPDATE notifications
        SET failure_count = failure_count + 1
        WHERE id = ?
    """, (notification_id,))

    return cursor.rowcount > 0


def log_notification_send(cursor, notification_id: int, event_type: str,
                          severity: str, title: str, message: str,
                          success: bool, error_message: Optional[str] = None) -> int:
    """Log a notification send attempt to history

    Returns:
        int: ID of the history record
    """
    cursor.execute("""
        INSERT INTO notification_history
        (notification_id, event_type, event_severity, title, message, success, error_message)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    """, (notification_id, event_type, severity, title, message, success, error_message))

    return cursor.lastrowid


def get_notification_history(cursor, notification_id: Optional[int] = None,
                             limit: int = 100) -> List[Dict[str, Any]]:
    """Get notification send history, newest first

    Args:
        cursor: SQLite cursor object
        notification_id: Filter by notification ID (None = all)
        limit: Maximum records to return

    Returns:
        List of history records
    """
    query = """
        SELECT
            h.id, h.notification_id, h.sent_at, h.event_type, h.event_severity,
            h.title, h.message, h.success, h.error_message,
            n.name as notification_name, n.notification_type
        FROM notification_history h
        LEFT JOIN notifications n ON h.notification_id = n.id
        WHERE 1=1
    """
    params = []

    if notification_id:
        query += " AND h.notification_id = ?"
        params.append(notification_id)

    query += " ORDER BY h.id DESC LIMIT ?"
    params.append(limit)

    cursor.execute(query, params)

    history = []
    for row in cursor.fetchall():
        (history_id, notif_id, sent_at, event_type, severity,
         title, message, success, error_message, notif_name, notif_type) = row

        history.append({
            'id': history_id,
            'notification_id': notif_id,
            'sent_at': sent_at,
            'event_type': event_type,
            'severity': severity,
            'title': title,
            'message': message,
            'success': bool(success),
            'error_message': error_message,
            'notification_name': notif_name,
            'notification_type': notif_type
        })

    return history


# ==================== PUSH TOKENS ====================

def register_push_token(cursor, token: str, platform: Optional[str] = None) -> bool:
    """Register (or refresh) a listener device token

    Returns:
        bool: True if the token is new, False if it was already known
    """
    cursor.execute("SELECT 1 FROM push_tokens WHERE token = ?", (token,))
    if cursor.fetchone():
        cursor.execute("""
            UPDATE push_tokens
            SET last_seen_at = CURRENT_TIMESTAMP,
                platform = COALESCE(?, platform)
            WHERE token = ?
        """, (platform, token))
        return False

    cursor.execute("INSERT INTO push_tokens (token, platform) VALUES (?, ?)", (token, platform))
    logger.info(f"Registered push token ({platform or 'unknown platform'})")
    return True


def remove_push_token(cursor, token: str) -> bool:
    """Remove a listener device token"""
    cursor.execute("DELETE FROM push_tokens WHERE token = ?", (token,))
    return cursor.rowcount > 0


def get_push_tokens(cursor) -> List[str]:
    """All registered device tokens"""
    cursor.execute("SELECT token FROM push_tokens ORDER BY created_at, token")
    return [row[0] for row in cursor.fetchall()]


def get_push_token_details(cursor) -> List[Dict[str, Any]]:
    """All registered device tokens with platform and timestamps"""
    cursor.execute("""
        SELECT token, platform, created_at, last_seen_at
        FROM push_tokens
        ORDER BY created_at, token
    """)
    return [
        {'token': token, 'platform': platform, 'created_at': created_at, 'last_seen_at': last_seen_at}
        for token, platform, created_at, last_seen_at in cursor.fetchall()
    ]
