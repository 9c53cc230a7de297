"""
Authentication module for Radio Sync

Provides:
- HTTP Basic Authentication for admin API routes
- Password hashing and verification with bcrypt
- Password reset by deleting the auth file
- Login attempt tracking (brute force protection)

Listener-facing routes (status, stream, device registration) stay open;
only routes that change the running service are guarded.
"""

import os
import json
import logging
from datetime import datetime, timedelta
from functools import wraps

import bcrypt
from flask import request, Response
from flask_httpauth import HTTPBasicAuth

logger = logging.getLogger(__name__)

AUTH_FILE = 'radio_sync_auth.json'
MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_DURATION_MINUTES = 5

auth = HTTPBasicAuth()
failed_attempts = {}  # IP address -> {'attempts': int, 'locked_until': datetime}


def is_auth_enabled():
    """Authentication is enabled when the auth file exists"""
    return os.path.exists(AUTH_FILE)


def load_auth_config():
    """Load authentication configuration from JSON file

    Returns:
        dict with 'username' and 'password_hash' keys, or None if missing/unreadable
    """
    if not os.path.exists(AUTH_FILE):
        return None

    try:
        with open(AUTH_FILE, 'r') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading auth config: {e}")
        return None


def save_auth_config(username, password):
    """Hash the password and write the auth file

    Args:
        username: Username (plain text)
        password: Password (plain text, only the hash is stored)

    Returns:
        True if saved successfully, False otherwise
    """
    from radio_sync import get_version

    config = {
        'username': username,
        'password_hash': hash_password(password),
        'created_at': datetime.now().isoformat(),
        'version': get_version()
    }

    try:
        with open(AUTH_FILE, 'w') as f:
            json.dump(config, f, indent=2)
    except OSError as e:
        logger.error(f"Error saving auth config: {e}")
        return False

    logger.info(f"Auth config saved to {AUTH_FILE}")
    return True


def hash_password(password):
    """Hash a password using bcrypt"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password, hashed):
    """Verify a password against a bcrypt hash"""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
    except (ValueError, AttributeError) as e:
        logger.error(f"Error verifying password: {e}")
        return False


def is_ip_locked(ip_address):
    """Check if IP address is locked due to too many failed attempts"""
    attempt_data = failed_attempts.get(ip_address)
    if not attempt_data or not attempt_data.get('locked_until'):
        return False

    if datetime.now() < attempt_data['locked_until']:
        return True

    # Lockout expired
    del failed_attempts[ip_address]
    return False


def record_failed_attempt(ip_address):
    """Record a failed login attempt and lock out if necessary

    Returns:
        True if IP is now locked, False otherwise
    """
    attempt_data = failed_attempts.setdefault(ip_address, {'attempts': 0})
    attempt_data['attempts'] += 1

    if attempt_data['attempts'] >= MAX_LOGIN_ATTEMPTS:
        attempt_data['locked_until'] = datetime.now() + timedelta(minutes=LOCKOUT_DURATION_MINUTES)
        logger.warning(f"IP {ip_address} locked out until {attempt_data['locked_until']} "
                       f"({attempt_data['attempts']} failed attempts)")
        return True

    logger.warning(f"Failed login attempt from {ip_address} "
                   f"({attempt_data['attempts']}/{MAX_LOGIN_ATTEMPTS})")
    return False


@auth.verify_password
def verify_auth(username, password):
    """Flask-HTTPAuth password verifier"""
    config = load_auth_config()
    if not config:
        return True  # No config = no auth

    ip_address = request.remote_addr
    if is_ip_locked(ip_address):
        logger.warning(f"Locked out IP attempted login: {ip_address}")
        return False

    if username == config.get('username') and verify_password(password or '', config.get('password_hash', '')):
        failed_attempts.pop(ip_address, None)
        return True

    record_failed_attempt(ip_address)
    return False


@auth.error_handler
def auth_error():
    """401 response for failed authentication"""
    ip_address = request.remote_addr

    if is_ip_locked(ip_address):
        locked_until = failed_attempts[ip_address]['locked_until']
        return Response(
            f'Too many failed login attempts. Locked until {locked_until:%Y-%m-%d %H:%M:%S}.',
            401,
            {'WWW-Authenticate': 'Basic realm="Locked Out"'}
        )

    return Response(
        'Authentication required. Delete ' + AUTH_FILE + ' to reset password.',
        401,
        {'WWW-Authenticate': 'Basic realm="Radio Sync"'}
    )


def requires_auth(f):
    """Decorator to require authentication for a route

    Only enforces auth if the auth file exists.

    Usage:
        @bp.route('/api/monitor/start', methods=['POST'])
        @requires_auth
        def start():
            ...
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if is_auth_enabled():
            return auth.login_required(f)(*args, **kwargs)
        return f(*args, **kwargs)

    return decorated
