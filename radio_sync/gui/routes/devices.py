"""
Device routes for Radio Sync

Listener apps register their push token here to be notified when the
station goes live.
"""

import logging
from flask import Blueprint, jsonify, request, current_app
from radio_sync.auth import requires_auth

logger = logging.getLogger(__name__)

devices_bp = Blueprint('devices', __name__)

MAX_TOKEN_LENGTH = 512
PLATFORMS = ('ios', 'android', 'web')


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


@devices_bp.route('/api/devices')
@requires_auth
def api_devices():
    """List registered push tokens"""
    db = get_db()
    if not db:
        return jsonify({'error': 'Database not initialized'}), 500

    devices = db.get_push_token_details()
    return jsonify({'items': devices, 'count': len(devices)})


@devices_bp.route('/api/devices', methods=['POST'])
def api_register_device():
    """Register a push token

    Expects JSON:
        {"token": "...", "platform": "ios"}

    Returns 201 for a new token, 200 when it was already registered.
    """
    db = get_db()
    if not db:
        return jsonify({'error': 'Database not initialized'}), 500

    data = request.get_json(silent=True) or {}
    token = data.get('token')
    platform = data.get('platform')

    if not isinstance(token, str) or not token.strip():
        return jsonify({'error': 'Token is required'}), 400
    if len(token) > MAX_TOKEN_LENGTH:
        return jsonify({'error': 'Token is too long'}), 400
    if platform is not None and platform not in PLATFORMS:
        return jsonify({'error': f"Platform must be one of: {', '.join(PLATFORMS)}"}), 400

    created = db.register_push_token(token.strip(), platform)
    return jsonify({'success': True, 'created': created}), 201 if created else 200


@devices_bp.route('/api/devices/<path:token>', methods=['DELETE'])
def api_unregister_device(token):
    """Remove a push token"""
    db = get_db()
    if not db:
        return jsonify({'error': 'Database not initialized'}), 500

    if not db.remove_push_token(token):
        return jsonify({'error': 'Token not found'}), 404
    return jsonify({'success': True})
