"""
Status routes for Radio Sync

Listener-facing endpoints:
- GET /api/status           cold-start snapshot
- GET /api/status/stream    server-sent events (transitions + stale markers)
- GET /api/status/history   trailing transition log
- GET /api/track/current    current track straight from the station API

Stream protocol:
    The first message is always `event: snapshot` with the same body as
    /api/status. After that each transition is sent as `event: <kind>`
    (TrackChanged, WentLive, WentOffline, BackToAutomated) and failed
    polls as `event: stale`. Comment lines keep idle connections open.
    There is no resume token; a reconnecting client gets a new snapshot.
"""

import json
import logging
from flask import Blueprint, jsonify, request, current_app, Response, stream_with_context

from radio_sync.exceptions import StreamInfoError

logger = logging.getLogger(__name__)

status_bp = Blueprint('status', __name__)

DEFAULT_KEEPALIVE_SECONDS = 15


def format_sse(event_name, data, event_id=None):
    """Encode one server-sent event message"""
    lines = []
    if event_id:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {event_name}")
    lines.append(f"data: {json.dumps(data)}")
    return '\n'.join(lines) + '\n\n'


def generate_events(cell, registry, keepalive_seconds=DEFAULT_KEEPALIVE_SECONDS):
    """Yield SSE messages for one client connection

    The subscriber is registered before the snapshot is taken so nothing
    published in between is missed, and removed when the generator closes.
    """
    subscriber = registry.subscribe()
    try:
        yield format_sse('snapshot', cell.snapshot())

        while True:
            message = subscriber.get(timeout=keepalive_seconds)
            if message is None:
                if subscriber.closed:
                    break
                yield ': keep-alive\n\n'
                continue

            event_name, payload = message
            yield format_sse(event_name, payload, event_id=payload.get('id'))
    finally:
        registry.unsubscribe(subscriber)


@status_bp.route('/')
def index():
    """Service summary"""
    settings = current_app.config.get('settings') or {}
    return jsonify({
        'service': 'Radio Sync',
        'version': current_app.config.get('VERSION'),
        'station': settings.get('station', {}).get('id'),
        'endpoints': ['/api/status', '/api/status/stream', '/api/status/history', '/api/track/current']
    })


@status_bp.route('/api/status')
def api_status():
    """Cold-start snapshot

    Returns JSON:
        {
            "status": {...} or null,
            "stale": false,
            "last_error": null,
            "last_success_at": "2026-01-01T10:00:00"
        }
    """
    cell = current_app.config.get('cell')
    if cell is None:
        return jsonify({'error': 'Status not initialized'}), 503

    return jsonify(cell.snapshot())


@status_bp.route('/api/status/stream')
def api_status_stream():
    """Server-sent event stream of transitions"""
    cell = current_app.config.get('cell')
    notifier = current_app.config.get('notifier')
    if cell is None or notifier is None:
        return jsonify({'error': 'Status stream not initialized'}), 503

    settings = current_app.config.get('settings') or {}
    keepalive = settings.get('gui', {}).get('stream_keepalive_seconds', DEFAULT_KEEPALIVE_SECONDS)

    return Response(
        stream_with_context(generate_events(cell, notifier.registry, keepalive)),
        mimetype='text/event-stream',
        headers={
            'Cache-Control': 'no-cache',
            'X-Accel-Buffering': 'no',
        }
    )


@status_bp.route('/api/status/history')
def api_status_history():
    """Trailing transition log, newest first

    Query params:
        limit: Maximum entries (default: 20)
        type: Filter by transition kind
    """
    limit = request.args.get('limit', 20, type=int)
    limit = max(1, min(limit, 500))
    event_type = request.args.get('type')

    db = current_app.config.get('db')
    if db:
        items = db.get_recent_transitions(limit=limit, event_type=event_type)
    else:
        cell = current_app.config.get('cell')
        if cell is None:
            return jsonify({'error': 'Status not initialized'}), 503
        items = [
            {
                'event_id': event.id,
                'type': event.kind,
                'collaborator': event.collaborator,
                'track_title': event.new.current_track.title if event.new.current_track else None,
                'summary': event.describe(),
                'created_at': event.created_at.isoformat(sep=' ', timespec='seconds'),
            }
            for event in cell.recent_transitions()
            if not event_type or event.kind == event_type
        ][:limit]

    return jsonify({'items': items, 'count': len(items)})


@status_bp.route('/api/track/current')
def api_track_current():
    """Current track from the station's track endpoint"""
    poller = current_app.config.get('poller')
    if poller is None:
        return jsonify({'error': 'Poller not initialized'}), 503

    try:
        track = poller.client.fetch_current_track()
    except StreamInfoError as e:
        logger.warning(f"Current track lookup failed ({e.kind}): {e.message}")
        return jsonify({'error': e.message, 'kind': e.kind}), 502

    return jsonify({'track': track.to_dict() if track else None})
