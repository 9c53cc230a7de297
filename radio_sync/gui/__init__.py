"""
Flask GUI/API Package for Radio Sync

This package provides the HTTP surface of Radio Sync:
- Cold-start status and server-sent event stream for listeners
- Monitor controls (start/stop/poll now/interval)
- Push token registration
- Notification provider management

Key Principle: Single integrated app - Flask + APScheduler + Database in one process.
"""

import os
import copy
import json
import logging
from datetime import datetime
from flask import Flask

from radio_sync import get_version

logger = logging.getLogger(__name__)

SETTINGS_FILE = 'radio_sync_settings.json'

DEFAULT_SETTINGS = {
    'station': {
        'id': '',
        'api_base': 'https://public.radio.co',
        'user_agent': None,
        'timeout': 10,
    },
    'monitor': {
        'poll_interval_seconds': 15,
        'history_size': 50,
        'database_file': 'radio_sync.db',
        'autostart': True,
    },
    'gui': {
        'host': '0.0.0.0',
        'port': 5000,
        'stream_keepalive_seconds': 15,
    },
    'logging': {
        'file': 'radio_sync.log',
        'console_level': 'INFO',
        'file_level': 'WARNING',
        'max_bytes': 10485760,
        'backup_count': 5,
    },
    'notifications': {
        'went_live_title': '{collaborator} is On Air',
    },
}

app = Flask(__name__)
app.config['VERSION'] = get_version()

# Global variables
db = None
settings = None
scheduler = None
notifier = None


def _merge(base, overrides):
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(settings_file=SETTINGS_FILE):
    """Load settings from radio_sync_settings.json merged over the defaults

    Returns:
        Settings dict (defaults only if the file doesn't exist or is invalid)
    """
    if not os.path.exists(settings_file):
        return copy.deepcopy(DEFAULT_SETTINGS)

    try:
        with open(settings_file, 'r') as f:
            return _merge(DEFAULT_SETTINGS, json.load(f))
    except (OSError, ValueError) as e:
        logger.error(f"Error loading settings from {settings_file}: {e}")
        return copy.deepcopy(DEFAULT_SETTINGS)


def init_gui(database, status_cell, poller, change_notifier, background_scheduler=None,
             app_settings=None):
    """Wire the running components into the Flask app

    Args:
        database: SyncDatabase instance (connected)
        status_cell: StatusCell holding the current snapshot
        poller: StatusPoller
        change_notifier: ChangeNotifier
        background_scheduler: RadioScheduler instance (optional)
        app_settings: Settings dict (optional, loaded from file if omitted)
    """
    global db, scheduler, settings, notifier

    db = database
    scheduler = background_scheduler
    notifier = change_notifier
    settings = app_settings if app_settings is not None else load_settings()

    app.config['db'] = database
    app.config['cell'] = status_cell
    app.config['poller'] = poller
    app.config['notifier'] = change_notifier
    app.config['scheduler'] = background_scheduler
    app.config['settings'] = settings
    app.config['start_time'] = datetime.now()

    logger.info(f"GUI initialized - db: {db is not None}, scheduler: {scheduler is not None}, "
                f"station: {settings.get('station', {}).get('id')}")


def run_app(host='0.0.0.0', port=5000, debug=False):
    """Run Flask application

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 5000)
        debug: Enable debug mode (default: False)
    """
    logger.info(f"Starting Flask app on {host}:{port}")

    try:
        # Threaded: every SSE client holds a worker thread
        app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
    finally:
        logger.info("Flask app shutting down...")
        cleanup()


def cleanup():
    """Cleanup resources before shutdown

    The scheduler finishes an in-flight poll; client channels are closed
    without flushing pending events.
    """
    global scheduler, db, notifier

    if scheduler:
        scheduler.shutdown(wait=True)
        scheduler = None

    if notifier:
        notifier.close_all()
        notifier = None

    try:
        if db:
            logger.info("Closing database...")
            db.close()
            db = None
    except Exception as e:
        logger.error(f"Error closing database: {e}")


# Import and register blueprints
from radio_sync.gui.routes import status, monitor, devices, notifications, system

app.register_blueprint(status.status_bp)
app.register_blueprint(monitor.monitor_bp)
app.register_blueprint(devices.devices_bp)
app.register_blueprint(notifications.notifications_bp)
app.register_blueprint(system.system_bp)
