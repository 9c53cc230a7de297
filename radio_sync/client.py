"""
Now-playing client for Radio Sync

A passive consumer of a running Radio Sync server:
1. Cold start: GET /api/status once
2. Follow /api/status/stream (server-sent events)
3. On channel loss, poll /api/status at the poll floor and retry the
   stream on every tick until it comes back

Usage:
    client = NowPlayingClient('http://localhost:5000')
    client.run()    # blocks; prints a line on every change

The display state is the last snapshot plus whatever transitions arrived
since; it never replays missed events.
"""

import json
import logging
import threading

import requests

from radio_sync.poller import MIN_POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

MODE_STREAM = 'stream'
MODE_POLLING = 'polling'


def iter_sse(lines):
    """Parse server-sent event lines into (event, data) tuples

    Args:
        lines: Iterable of decoded lines (without line terminators)

    Yields:
        tuple: (event_name, decoded JSON data)
    """
    event_name = 'message'
    data_lines = []

    for line in lines:
        if line is None:
            continue
        if line == '':
            if data_lines:
                try:
                    yield event_name, json.loads('\n'.join(data_lines))
                except ValueError:
                    logger.warning(f"Ignoring undecodable {event_name} event")
            event_name = 'message'
            data_lines = []
            continue
        if line.startswith(':'):
            continue  # keep-alive comment

        field, _, value = line.partition(':')
        if value.startswith(' '):
            value = value[1:]
        if field == 'event':
            event_name = value
        elif field == 'data':
            data_lines.append(value)


class NowPlayingClient:
    """Client-side now-playing view

    Attributes:
        base_url: Radio Sync server root
        poll_interval: Fallback polling interval (never below the floor)
        status: Last known StationStatus dict (or None)
        stale: True when the server reported its data is stale
        mode: 'stream' or 'polling'
    """

    def __init__(self, base_url, poll_interval=MIN_POLL_INTERVAL_SECONDS,
                 session=None, on_update=None, read_timeout=60):
        self.base_url = base_url.rstrip('/')
        self.poll_interval = max(poll_interval, MIN_POLL_INTERVAL_SECONDS)
        self.session = session or requests.Session()
        self.on_update = on_update
        self.read_timeout = read_timeout
        self.status = None
        self.stale = False
        self.last_event = None
        self.mode = MODE_STREAM
        self._stop = threading.Event()

    # ==================== STATE ====================

    def apply_snapshot(self, snapshot):
        """Adopt a cold-start snapshot as display state"""
        self.status = snapshot.get('status')
        self.stale = bool(snapshot.get('stale'))
        self._changed('snapshot')

    def apply_event(self, event_name, data):
        """Apply one pushed message to display state"""
        if event_name == 'snapshot':
            self.apply_snapshot(data)
        elif event_name == 'stale':
            self.stale = True
            self._changed('stale')
        elif isinstance(data, dict) and 'new' in data:
            self.status = data['new']
            self.stale = False
            self.last_event = data
            self._changed(event_name)
        else:
            logger.debug(f"Ignoring unknown event: {event_name}")

    def _changed(self, reason):
        if self.on_update:
            self.on_update(self, reason)

    def render(self):
        """One-line now-playing text"""
        if not self.status:
            return "Waiting for station status..."

        if self.status.get('online_state') != 'online':
            line = "Station offline"
        else:
            track = self.status.get('current_track')
            line = f"Now playing: {track['title']}" if track else "On air (no track info)"
            if self.status.get('source_mode') == 'live':
                collaborator = self.status.get('collaborator_name')
                prefix = f"[LIVE: {collaborator}]" if collaborator else "[LIVE]"
                line = f"{prefix} {line}"

        if self.stale:
            line += " (stale)"
        return line

    # ==================== TRANSPORT ====================

    def cold_start(self):
        """Fetch the current snapshot once

        Returns:
            True on success, False if the server could not be reached
        """
        try:
            response = self.session.get(f"{self.base_url}/api/status", timeout=10)
            response.raise_for_status()
            self.apply_snapshot(response.json())
            return True
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Status request failed: {e}")
            return False

    def consume_stream(self):
        """Follow the event stream until the channel is lost

        Returns normally when the server closes the stream.

        Raises:
            requests.exceptions.RequestException: Connection failure
        """
        with self.session.get(f"{self.base_url}/api/status/stream",
                              stream=True, timeout=(10, self.read_timeout)) as response:
            response.raise_for_status()
            self.mode = MODE_STREAM
            logger.info("Event stream connected")

            for event_name, data in iter_sse(response.iter_lines(decode_unicode=True)):
                self.apply_event(event_name, data)
                if self._stop.is_set():
                    return

        logger.info("Event stream closed by server")

    def run(self):
        """Cold start, then follow the stream with polling fallback"""
        self.cold_start()

        while not self._stop.is_set():
            try:
                self.consume_stream()
            except requests.exceptions.RequestException as e:
                logger.warning(f"Event stream unavailable: {e}")

            if self._stop.is_set():
                break

            if self.mode != MODE_POLLING:
                logger.info(f"Falling back to polling every {self.poll_interval}s")
                self.mode = MODE_POLLING

            if self._stop.wait(self.poll_interval):
                break
            self.cold_start()

    def stop(self):
        self._stop.set()
