"""
Radio.co public API client for Radio Sync

This module fetches station status from the hosted Radio.co API and
normalizes it into StationStatus snapshots.

Endpoints:
- GET {api_base}/stations/{id}/status       (full status)
- GET {api_base}/api/v2/{id}/track/current  (current track only)

Key Principle: One request per call, no retries. The poller owns the
schedule; a failed call simply waits for the next interval.

Example status payload:
    {
        "status": "online",
        "source": {"type": "live", "collaborator": {"name": "DJ X"}},
        "current_track": {"title": "Artist - Song",
                          "start_time": "2026-01-01T10:00:00+00:00",
                          "artwork_url": "https://..."},
        "history": [{"title": "Artist - Song"}],
        "outputs": [{"name": "", "format": "MP3", "bitrate": 128}]
    }
"""

import logging
import threading
import time
import requests

from radio_sync import get_version
from radio_sync.exceptions import UpstreamUnavailable, MalformedResponse
from radio_sync.models import (
    Track, StationStatus, ONLINE, OFFLINE, AUTOMATED, LIVE
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = 'https://public.radio.co'
DEFAULT_TIMEOUT = 10
TRACK_CACHE_SECONDS = 10


def _collaborator_name(source):
    """Extract collaborator name from source block

    Radio.co reports the collaborator either as a plain string or as an
    object with a name field.
    """
    collaborator = source.get('collaborator')
    if isinstance(collaborator, dict):
        collaborator = collaborator.get('name')
    if isinstance(collaborator, str) and collaborator.strip():
        return collaborator.strip()
    return None


def _parse_track(data):
    """Parse a track block, None if there is no usable title"""
    if not data:
        return None
    if not isinstance(data, dict):
        raise MalformedResponse(f"Expected track object, got {type(data).__name__}")

    title = data.get('title')
    if not isinstance(title, str) or not title.strip():
        return None

    artwork_url = data.get('artwork_url')
    if not artwork_url and isinstance(data.get('artwork_urls'), dict):
        artwork_url = data['artwork_urls'].get('standard') or data['artwork_urls'].get('large')

    return Track(
        title=title.strip(),
        start_time=data.get('start_time'),
        artwork_url=artwork_url
    )


def _parse_int(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_station_status(payload):
    """Normalize a status payload into a StationStatus

    Args:
        payload: Decoded JSON body of the status endpoint

    Returns:
        StationStatus

    Raises:
        MalformedResponse: If the payload does not match the expected schema
    """
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Expected JSON object, got {type(payload).__name__}")

    status = payload.get('status')
    if status not in (ONLINE, OFFLINE):
        raise MalformedResponse(f"Unexpected station status: {status!r}")

    source = payload.get('source') or {}
    if not isinstance(source, dict):
        raise MalformedResponse("Expected 'source' to be an object")

    source_mode = LIVE if source.get('type') == LIVE else AUTOMATED

    history = payload.get('history') or []
    if not isinstance(history, list):
        raise MalformedResponse("Expected 'history' to be a list")
    history_titles = tuple(
        item['title'] for item in history
        if isinstance(item, dict) and isinstance(item.get('title'), str)
    )

    outputs = payload.get('outputs') or []
    if not isinstance(outputs, list):
        raise MalformedResponse("Expected 'outputs' to be a list")
    bitrate = None
    for output in outputs:
        if isinstance(output, dict):
            bitrate = _parse_int(output.get('bitrate'))
            if bitrate is not None:
                break

    listener_count = _parse_int(payload.get('listeners'))
    if listener_count is None:
        listener_count = _parse_int(payload.get('listener_count'))

    return StationStatus(
        online_state=status,
        source_mode=source_mode,
        current_track=_parse_track(payload.get('current_track')),
        bitrate=bitrate,
        listener_count=listener_count,
        collaborator_name=_collaborator_name(source) if source_mode == LIVE else None,
        history=history_titles
    )


class RadioCoClient:
    """HTTP client for one Radio.co station

    Attributes:
        station_id: Opaque Radio.co station identifier
        api_base: API root URL
        timeout: Request timeout in seconds
    """

    def __init__(self, station_id, api_base=DEFAULT_API_BASE, timeout=DEFAULT_TIMEOUT,
                 user_agent=None, session=None):
        if not station_id:
            raise ValueError("Station ID is required")

        self.station_id = station_id
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self._track_cache = None
        self._track_lock = threading.Lock()
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': user_agent or f"RadioSync/{get_version()}",
            'Accept': 'application/json',
        })

    @property
    def status_url(self):
        return f"{self.api_base}/stations/{self.station_id}/status"

    @property
    def current_track_url(self):
        return f"{self.api_base}/api/v2/{self.station_id}/track/current"

    def _get_json(self, url):
        """GET a URL and decode its JSON body

        Raises:
            UpstreamUnavailable: Network error or non-2xx status
            MalformedResponse: Body is not valid JSON
        """
        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamUnavailable(f"Request to {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise UpstreamUnavailable(
                f"{url} returned HTTP {response.status_code}",
                http_status=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Invalid JSON from {url}: {e}",
                                    http_status=response.status_code) from e

    def fetch_status(self):
        """Fetch and normalize the station status

        Returns:
            StationStatus
        """
        return parse_station_status(self._get_json(self.status_url))

    def fetch_current_track(self):
        """Fetch the current track only

        Results, failures included, are reused for TRACK_CACHE_SECONDS so
        callers proxying this endpoint stay inside the upstream rate limit.

        Returns:
            Track or None if the station reports no track

        Raises:
            UpstreamUnavailable, MalformedResponse: Also re-raised from the
                cache until the window expires
        """
        with self._track_lock:
            now = time.monotonic()
            if self._track_cache and now - self._track_cache[0] < TRACK_CACHE_SECONDS:
                _, track, error = self._track_cache
                if error:
                    raise error
                return track

            try:
                track = self._fetch_current_track()
            except (UpstreamUnavailable, MalformedResponse) as e:
                self._track_cache = (now, None, e)
                raise

            self._track_cache = (now, track, None)
            return track

    def _fetch_current_track(self):
        payload = self._get_json(self.current_track_url)
        if isinstance(payload, dict) and isinstance(payload.get('data'), dict):
            payload = payload['data']
        if not isinstance(payload, dict):
            raise MalformedResponse(f"Expected JSON object, got {type(payload).__name__}")
        return _parse_track(payload)

    def test_connection(self):
        """Test that the station status endpoint is reachable

        Returns:
            tuple: (success, message)
        """
        try:
            status = self.fetch_status()
        except (UpstreamUnavailable, MalformedResponse) as e:
            return False, e.message

        return True, f"Station {self.station_id} is {status.online_state} ({status.source_mode})"
