"""
Now-playing client tests

Tests SSE parsing, display state updates, rendering, and the fallback
from the event stream to polling and back.
"""

import json
import pytest
from unittest.mock import MagicMock, Mock

import requests

from radio_sync.client import NowPlayingClient, iter_sse, MODE_POLLING, MODE_STREAM
from radio_sync.models import TransitionEvent, WENT_LIVE


@pytest.fixture
def client():
    return NowPlayingClient('http://localhost:5000/', session=MagicMock())


@pytest.mark.unit
class TestIterSse:
    """Event stream parsing"""

    def test_events(self):
        lines = [
            'event: snapshot',
            'data: {"status": null, "stale": false}',
            '',
            ': keep-alive',
            '',
            'id: abc',
            'event: WentLive',
            'data: {"collaborator": "DJ X"}',
            '',
        ]
        assert list(iter_sse(lines)) == [
            ('snapshot', {'status': None, 'stale': False}),
            ('WentLive', {'collaborator': 'DJ X'}),
        ]

    def test_undecodable_data_skipped(self):
        lines = ['event: stale', 'data: {not json', '', 'data: {"ok": true}', '']
        assert list(iter_sse(lines)) == [('message', {'ok': True})]


@pytest.mark.unit
class TestDisplayState:
    """Snapshot and transitions"""

    def test_waiting(self, client):
        assert client.base_url == 'http://localhost:5000'
        assert client.render() == 'Waiting for station status...'

    def test_poll_interval_floor(self):
        assert NowPlayingClient('http://x', poll_interval=2, session=Mock()).poll_interval == 10

    def test_snapshot(self, client, make_status):
        client.apply_event('snapshot', {'status': make_status().to_dict(), 'stale': False})
        assert client.render() == 'Now playing: Artist - Song'

    def test_transition_replaces_status(self, client, make_status):
        client.apply_snapshot({'status': make_status().to_dict(), 'stale': True})
        event = TransitionEvent(WENT_LIVE, make_status(), make_status(live=True, collaborator='DJ X'),
                                collaborator='DJ X')

        client.apply_event(WENT_LIVE, event.to_dict())

        assert client.stale is False
        assert client.last_event['type'] == WENT_LIVE
        assert client.render() == '[LIVE: DJ X] Now playing: Artist - Song'

    def test_stale_marker(self, client, make_status):
        client.apply_snapshot({'status': make_status(online=False).to_dict(), 'stale': False})
        client.apply_event('stale', {'kind': 'UpstreamUnavailable'})
        assert client.render() == 'Station offline (stale)'

    def test_no_track_info(self, client, make_status):
        client.apply_snapshot({'status': make_status(live=True, title=None).to_dict()})
        assert client.render() == '[LIVE] On air (no track info)'

    def test_on_update_callback(self, make_status):
        updates = []
        client = NowPlayingClient('http://x', session=Mock(), on_update=lambda c, reason: updates.append(reason))

        client.apply_snapshot({'status': make_status().to_dict()})
        client.apply_event('stale', {})
        client.apply_event('Unknown', 'noise')

        assert updates == ['snapshot', 'stale']


@pytest.mark.unit
class TestTransport:
    """Cold start and fallback"""

    def test_cold_start(self, client, make_status):
        client.session.get.return_value.json.return_value = {'status': make_status().to_dict(), 'stale': False}

        assert client.cold_start() is True
        client.session.get.assert_called_once_with('http://localhost:5000/api/status', timeout=10)
        assert client.status['current_track']['title'] == 'Artist - Song'

    def test_cold_start_failure(self, client):
        client.session.get.side_effect = requests.exceptions.ConnectionError('refused')
        assert client.cold_start() is False
        assert client.status is None

    def test_consume_stream(self, client, make_status):
        response = client.session.get.return_value.__enter__.return_value
        response.iter_lines.return_value = iter([
            'event: snapshot',
            'data: {"status": {"online_state": "offline"}, "stale": false}',
            '',
        ])

        client.consume_stream()

        assert client.mode == MODE_STREAM
        assert client.render() == 'Station offline'

    def test_falls_back_to_polling(self, client, make_status):
        snapshot = {'status': make_status().to_dict(), 'stale': False}
        calls = []

        def fake_get(url, **kwargs):
            calls.append(url)
            if url.endswith('/stream'):
                raise requests.exceptions.ConnectionError('stream down')
            response = Mock()
            response.json.return_value = snapshot
            if len(calls) >= 3:
                client.stop()
            return response

        client.session.get.side_effect = fake_get
        client._stop.wait = Mock(return_value=False)

        client.run()

        assert client.mode == MODE_POLLING
        assert calls == [
            'http://localhost:5000/api/status',
            'http://localhost:5000/api/status/stream',
            'http://localhost:5000/api/status',
        ]
        client._stop.wait.assert_called_with(10)

    def test_reconnects_to_stream(self, client, make_status):
        polled = {'status': make_status(title='Polled - Song').to_dict(), 'stale': False}
        streamed = {'status': make_status(live=True, title='Streamed - Song', collaborator='DJ X').to_dict(),
                    'stale': False}
        calls = []
        modes = []

        def fake_get(url, **kwargs):
            calls.append(url)
            if not url.endswith('/stream'):
                modes.append(client.mode)
                response = Mock()
                response.json.return_value = polled
                return response
            if calls.count(url) == 1:
                raise requests.exceptions.ConnectionError('stream down')

            response = MagicMock()
            response.__enter__.return_value = response
            response.iter_lines.return_value = iter([
                'event: snapshot',
                f'data: {json.dumps(streamed)}',
                '',
            ])
            client.stop()
            return response

        client.session.get.side_effect = fake_get
        client._stop.wait = Mock(return_value=False)

        client.run()

        assert calls == [
            'http://localhost:5000/api/status',
            'http://localhost:5000/api/status/stream',
            'http://localhost:5000/api/status',
            'http://localhost:5000/api/status/stream',
        ]
        assert modes == [MODE_STREAM, MODE_POLLING]
        assert client.mode == MODE_STREAM
        assert client.render() == '[LIVE: DJ X] Now playing: Streamed - Song'
