"""
System routes for Radio Sync
"""

import logging
from datetime import datetime
from flask import Blueprint, jsonify, current_app

logger = logging.getLogger(__name__)

system_bp = Blueprint('system', __name__)


@system_bp.route('/api/system/health')
def api_system_health():
    """Health check

    "degraded" means the last poll failed and clients see stale data.
    The service itself never reports down for upstream problems.
    """
    cell = current_app.config.get('cell')
    scheduler = current_app.config.get('scheduler')
    start_time = current_app.config.get('start_time')

    if cell is None:
        status = 'starting'
    elif cell.stale:
        status = 'degraded'
    else:
        status = 'ok'

    uptime = int((datetime.now() - start_time).total_seconds()) if start_time else None

    return jsonify({
        'status': status,
        'version': current_app.config.get('VERSION'),
        'polling': scheduler.is_running() if scheduler else False,
        'has_status': bool(cell and cell.current),
        'uptime_seconds': uptime
    })
