"""
Poller tests

Tests the fetch -> diff -> replace cycle, soft failures, staleness,
the transition log, and cycle serialization.
"""

import threading
import pytest
from unittest.mock import MagicMock, Mock

from radio_sync.exceptions import UpstreamUnavailable, MalformedResponse
from radio_sync.models import WENT_LIVE, TRACK_CHANGED
from radio_sync.poller import StatusPoller, clamp_interval, MIN_POLL_INTERVAL_SECONDS
from radio_sync.radioco import RadioCoClient


@pytest.fixture
def fake_client():
    """Client stand-in whose fetch_status results are set per test"""
    return Mock(spec=['fetch_status', 'fetch_current_track'])


@pytest.fixture
def notifier():
    return Mock()


@pytest.mark.unit
class TestClampInterval:
    """Upstream rate-limit floor"""

    @pytest.mark.parametrize('requested,applied', [
        (1, MIN_POLL_INTERVAL_SECONDS),
        (9, MIN_POLL_INTERVAL_SECONDS),
        (10, 10),
        (15, 15),
        ('30', 30),
        (None, MIN_POLL_INTERVAL_SECONDS),
        ('soon', MIN_POLL_INTERVAL_SECONDS),
    ])
    def test_clamp(self, requested, applied):
        assert clamp_interval(requested) == applied


@pytest.mark.unit
class TestPollCycle:
    """Successful cycles"""

    def test_first_cycle_sets_baseline(self, fake_client, status_cell, notifier, make_status):
        fake_client.fetch_status.return_value = make_status()
        poller = StatusPoller(fake_client, status_cell, notifier=notifier)

        result = poller.poll_once()

        assert result == {'success': True, 'skipped': False, 'transitions': [], 'error': None}
        assert status_cell.current == make_status()
        notifier.publish.assert_not_called()

    def test_transitions_published_in_order(self, fake_client, status_cell, notifier, make_status):
        fake_client.fetch_status.side_effect = [
            make_status(title='A - One'),
            make_status(live=True, collaborator='DJ X', title='B - Two'),
        ]
        poller = StatusPoller(fake_client, status_cell, notifier=notifier)

        poller.poll_once()
        result = poller.poll_once()

        assert result['transitions'] == [WENT_LIVE, TRACK_CHANGED]
        published = [c.args[0].kind for c in notifier.publish.call_args_list]
        assert published == [WENT_LIVE, TRACK_CHANGED]
        assert status_cell.current.collaborator_name == 'DJ X'
        assert [e.kind for e in status_cell.recent_transitions()] == [TRACK_CHANGED, WENT_LIVE]

    def test_unchanged_status_is_quiet(self, fake_client, status_cell, notifier, make_status):
        fake_client.fetch_status.side_effect = [make_status(listeners=5), make_status(listeners=500)]
        poller = StatusPoller(fake_client, status_cell, notifier=notifier)

        poller.poll_once()
        result = poller.poll_once()

        assert result['transitions'] == []
        notifier.publish.assert_not_called()
        assert status_cell.current.listener_count == 500

    def test_transitions_written_to_log(self, fake_client, status_cell, test_db, make_status):
        fake_client.fetch_status.side_effect = [make_status(), make_status(live=True, collaborator='DJ X')]
        poller = StatusPoller(fake_client, status_cell, db=test_db)

        poller.poll_once()
        poller.poll_once()

        entries = test_db.get_recent_transitions()
        assert len(entries) == 1
        assert entries[0]['type'] == WENT_LIVE
        assert entries[0]['collaborator'] == 'DJ X'

    def test_log_failure_does_not_stop_cycle(self, fake_client, status_cell, notifier, make_status):
        fake_client.fetch_status.side_effect = [make_status(title='A'), make_status(title='B')]
        db = Mock()
        db.log_transition.side_effect = RuntimeError('disk full')
        poller = StatusPoller(fake_client, status_cell, notifier=notifier, db=db)

        poller.poll_once()
        result = poller.poll_once()

        assert result['success'] is True
        assert notifier.publish.call_count == 1


@pytest.mark.unit
class TestSoftFailures:
    """Failed cycles keep the last good snapshot"""

    def test_three_http_500s(self, status_cell, notifier, status_payload):
        good = Mock(status_code=200)
        good.json.return_value = status_payload()
        failing = Mock(status_code=500)

        session = MagicMock()
        session.headers = {}
        session.get.side_effect = [good, failing, failing, failing]
        poller = StatusPoller(RadioCoClient('s1234567890', session=session), status_cell, notifier=notifier)

        poller.poll_once()
        baseline = status_cell.current
        results = [poller.poll_once() for _ in range(3)]

        assert all(r['success'] is False for r in results)
        assert all(r['transitions'] == [] for r in results)
        assert [r['error']['kind'] for r in results] == ['UpstreamUnavailable'] * 3

        errors = [c.args[0] for c in notifier.publish_error.call_args_list]
        assert len(errors) == 3
        assert all(isinstance(e, UpstreamUnavailable) for e in errors)
        notifier.publish.assert_not_called()

        assert status_cell.current is baseline
        assert status_cell.stale is True
        assert status_cell.error_count == 3
        assert poller.failures == 3
        assert poller.cycles == 4

    def test_malformed_response(self, fake_client, status_cell, notifier, make_status):
        fake_client.fetch_status.side_effect = [make_status(), MalformedResponse('bad schema')]
        poller = StatusPoller(fake_client, status_cell, notifier=notifier)

        poller.poll_once()
        result = poller.poll_once()

        assert result['error']['kind'] == 'MalformedResponse'
        assert status_cell.current == make_status()
        assert status_cell.snapshot()['last_error']['message'] == 'bad schema'

    def test_recovery_clears_stale(self, fake_client, status_cell, make_status):
        fake_client.fetch_status.side_effect = [
            make_status(), UpstreamUnavailable('timeout'), make_status(title='Next - Song')
        ]
        poller = StatusPoller(fake_client, status_cell)

        poller.poll_once()
        poller.poll_once()
        assert status_cell.stale is True

        result = poller.poll_once()
        assert result['transitions'] == [TRACK_CHANGED]
        assert status_cell.stale is False
        assert status_cell.last_error is None

    def test_failure_before_first_success(self, fake_client, status_cell):
        fake_client.fetch_status.side_effect = UpstreamUnavailable('no route')
        poller = StatusPoller(fake_client, status_cell)

        poller.poll_once()

        snapshot = status_cell.snapshot()
        assert snapshot['status'] is None
        assert snapshot['stale'] is True


@pytest.mark.unit
class TestCycleSerialization:
    """At most one cycle in flight"""

    def test_overlapping_cycle_is_skipped(self, fake_client, status_cell, make_status):
        started = threading.Event()
        release = threading.Event()

        def slow_fetch():
            started.set()
            release.wait(5)
            return make_status()

        fake_client.fetch_status.side_effect = slow_fetch
        poller = StatusPoller(fake_client, status_cell)

        worker = threading.Thread(target=poller.poll_once)
        worker.start()
        assert started.wait(5)

        result = poller.poll_once()

        release.set()
        worker.join(5)

        assert result['skipped'] is True
        assert poller.skipped == 1
        assert poller.cycles == 1
        assert fake_client.fetch_status.call_count == 1
