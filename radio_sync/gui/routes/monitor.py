"""
Monitor Routes for Radio Sync

Status poller controls.
"""

import logging
from flask import Blueprint, jsonify, request, current_app
from radio_sync.auth import requires_auth

logger = logging.getLogger(__name__)

monitor_bp = Blueprint('monitor', __name__)


def get_scheduler():
    """Get scheduler instance from Flask app config"""
    return current_app.config.get('scheduler')


@monitor_bp.route('/api/monitor/status')
def api_monitor_status():
    """Get monitor status

    Returns JSON:
        {
            "running": true/false,
            "interval": 15,
            "next_run": "2026-01-01T15:30:00",
            "cycles": 120,
            "failures": 3,
            "subscribers": 4
        }
    """
    scheduler = get_scheduler()
    poller = current_app.config.get('poller')
    notifier = current_app.config.get('notifier')
    cell = current_app.config.get('cell')

    return jsonify({
        'running': scheduler.is_running() if scheduler else False,
        'interval': scheduler.poll_interval if scheduler else None,
        'next_run': scheduler.next_run_time() if scheduler else None,
        'cycles': poller.cycles if poller else 0,
        'failures': poller.failures if poller else 0,
        'stale': cell.stale if cell else None,
        'subscribers': notifier.registry.count if notifier else 0
    })


@monitor_bp.route('/api/monitor/start', methods=['POST'])
@requires_auth
def api_monitor_start():
    """Start polling

    Returns JSON:
        {
            "status": "started",
            "message": "Polling started"
        }
    """
    scheduler = get_scheduler()
    if not scheduler:
        return jsonify({'error': 'Scheduler not initialized'}), 500

    if scheduler.start():
        return jsonify({'status': 'started', 'message': 'Polling started'})
    return jsonify({'status': 'already_running', 'message': 'Polling already running'})


@monitor_bp.route('/api/monitor/stop', methods=['POST'])
@requires_auth
def api_monitor_stop():
    """Stop polling

    Returns JSON:
        {
            "status": "stopped",
            "message": "Polling stopped"
        }
    """
    scheduler = get_scheduler()
    if not scheduler:
        return jsonify({'error': 'Scheduler not initialized'}), 500

    if scheduler.stop():
        return jsonify({'status': 'stopped', 'message': 'Polling stopped'})
    return jsonify({'status': 'already_stopped', 'message': 'Polling already stopped'})


@monitor_bp.route('/api/monitor/poll', methods=['POST'])
@requires_auth
def api_monitor_poll():
    """Run one poll cycle now

    Skipped (409) when a scheduled cycle is already in flight.
    """
    poller = current_app.config.get('poller')
    if not poller:
        return jsonify({'error': 'Poller not initialized'}), 500

    logger.info("Manual poll triggered via API")
    result = poller.poll_once()

    if result['skipped']:
        return jsonify(result), 409
    return jsonify(result)


@monitor_bp.route('/api/monitor/interval', methods=['PUT'])
@requires_auth
def api_monitor_interval():
    """Change poll interval

    Expects JSON:
        {"seconds": 30}

    Values below the upstream floor are raised to it.
    """
    scheduler = get_scheduler()
    if not scheduler:
        return jsonify({'error': 'Scheduler not initialized'}), 500

    data = request.get_json(silent=True) or {}
    seconds = data.get('seconds')
    if not isinstance(seconds, int) or isinstance(seconds, bool):
        return jsonify({'error': "'seconds' must be an integer"}), 400

    applied = scheduler.modify_interval(seconds)
    return jsonify({'success': True, 'interval': applied})
