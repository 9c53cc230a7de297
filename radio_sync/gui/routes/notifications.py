"""
Notification routes for Radio Sync

Manage notification providers and inspect send history.
"""

import logging
import sqlite3
from flask import Blueprint, jsonify, request, current_app
from radio_sync.auth import requires_auth
from radio_sync.database import notifications as notif_db
from radio_sync.notifications import HANDLERS, NOTIFICATION_TRIGGERS, send_notification

logger = logging.getLogger(__name__)

notifications_bp = Blueprint('notifications', __name__)


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


@notifications_bp.route('/api/notifications')
@requires_auth
def api_notifications():
    """List notification providers"""
    db = get_db()
    if not db:
        return jsonify({'error': 'Database not initialized'}), 500

    cursor = db.get_cursor()
    try:
        items = notif_db.get_all_notifications(cursor)
    finally:
        cursor.close()

    return jsonify({
        'items': items,
        'count': len(items),
        'types': sorted(HANDLERS),
        'triggers': NOTIFICATION_TRIGGERS
    })


@notifications_bp.route('/api/notifications', methods=['POST'])
@requires_auth
def api_create_notification():
    """Create a notification provider

    Expects JSON:
        {
            "notification_type": "ntfy",
            "name": "Studio phone",
            "config": {"topic": "my-station"},
            "triggers": ["on_went_live"],
            "enabled": true
        }
    """
    db = get_db()
    if not db:
        return jsonify({'error': 'Database not initialized'}), 500

    data = request.get_json(silent=True) or {}
    notification_type = data.get('notification_type')
    name = data.get('name')
    config = data.get('config') or {}
    triggers = data.get('triggers') or []

    if notification_type not in HANDLERS:
        return jsonify({'error': f"Unknown notification type: {notification_type}"}), 400
    if not name:
        return jsonify({'error': 'Name is required'}), 400
    if not isinstance(config, dict):
        return jsonify({'error': 'Config must be an object'}), 400

    unknown = [t for t in triggers if t not in NOTIFICATION_TRIGGERS]
    if not triggers or unknown:
        return jsonify({'error': f"Invalid triggers: {unknown or 'none given'}"}), 400

    try:
        notif_id = db.create_notification(
            notification_type, name, config, triggers,
            enabled=bool(data.get('enabled', True))
        )
    except sqlite3.IntegrityError:
        return jsonify({'error': f"Notification named '{name}' already exists"}), 409

    return jsonify({'success': True, 'id': notif_id}), 201


@notifications_bp.route('/api/notifications/<int:notification_id>', methods=['DELETE'])
@requires_auth
def api_delete_notification(notification_id):
    """Delete a notification provider and its history"""
    db = get_db()
    if not db:
        return jsonify({'error': 'Database not initialized'}), 500

    deleted = db.delete_notification(notification_id)
    if not deleted:
        return jsonify({'error': 'Notification not found'}), 404
    return jsonify({'success': True})


@notifications_bp.route('/api/notifications/<int:notification_id>/test', methods=['POST'])
@requires_auth
def api_test_notification(notification_id):
    """Send a test message through one provider"""
    db = get_db()
    if not db:
        return jsonify({'error': 'Database not initialized'}), 500

    cursor = db.get_cursor()
    try:
        notification = notif_db.get_notification(cursor, notification_id)
    finally:
        cursor.close()

    if not notification:
        return jsonify({'error': 'Notification not found'}), 404

    tokens = db.get_push_tokens() if notification['notification_type'] == 'onesignal' else None
    success = send_notification(
        notification['notification_type'],
        notification['config'],
        'Radio Sync Test',
        'This is a test notification from Radio Sync.',
        'info',
        None,
        tokens
    )
    return jsonify({'success': success}), 200 if success else 502


@notifications_bp.route('/api/notifications/history')
@requires_auth
def api_notification_history():
    """Notification send history, newest first"""
    db = get_db()
    if not db:
        return jsonify({'error': 'Database not initialized'}), 500

    limit = request.args.get('limit', 100, type=int)
    notification_id = request.args.get('notification_id', type=int)

    cursor = db.get_cursor()
    try:
        items = notif_db.get_notification_history(cursor, notification_id, limit)
    finally:
        cursor.close()

    return jsonify({'items': items, 'count': len(items)})
