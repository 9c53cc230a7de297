"""
Pytest configuration and fixtures for Radio Sync tests

Provides test database, status factories, Flask app, and HTTP client
fixtures for testing all components of the application.
"""

import pytest
import tempfile
import os
import sys
from pathlib import Path
from unittest.mock import Mock

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from radio_sync.database import SyncDatabase
from radio_sync.gui import app as gui_app
from radio_sync.models import StationStatus, Track, ONLINE, OFFLINE, AUTOMATED, LIVE
from radio_sync.notifier import ChangeNotifier
from radio_sync.state import StatusCell


@pytest.fixture
def test_db_path():
    """Provide a temporary database file path"""
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    yield path
    # Cleanup
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


@pytest.fixture
def test_db(test_db_path):
    """Provide a SyncDatabase with schema initialized

    The database is cleaned up after the test.
    """
    db = SyncDatabase(test_db_path, history_size=10)
    db.connect()  # This initializes the schema

    yield db

    db.close()


@pytest.fixture
def make_status():
    """Factory for StationStatus snapshots

    Usage:
        make_status()                               # online, automated, "Artist - Song"
        make_status(title=None)                     # online, no track info
        make_status(live=True, collaborator='DJ X')
        make_status(online=False)
    """
    def _make(online=True, live=False, title='Artist - Song', start_time='2026-01-01T10:00:00+00:00',
              collaborator=None, listeners=None, bitrate=128):
        track = Track(title=title, start_time=start_time) if (online and title) else None
        return StationStatus(
            online_state=ONLINE if online else OFFLINE,
            source_mode=LIVE if live else AUTOMATED,
            current_track=track,
            bitrate=bitrate,
            listener_count=listeners,
            collaborator_name=collaborator
        )
    return _make


@pytest.fixture
def status_payload():
    """Factory for Radio.co status endpoint payloads"""
    def _payload(status='online', source_type='automated', collaborator=None,
                 title='Artist - Song', start_time='2026-01-01T10:00:00+00:00', listeners=None):
        payload = {
            'status': status,
            'source': {'type': source_type, 'collaborator': collaborator, 'relay': None},
            'current_track': {
                'title': title,
                'start_time': start_time,
                'artwork_url': 'https://images.radio.co/station_logos/abc.png'
            } if title else None,
            'history': [{'title': 'Earlier Artist - Earlier Song'}],
            'logo_url': 'https://images.radio.co/station_logos/abc.png',
            'streaming_hostname': 'streaming.radio.co',
            'outputs': [{'name': '', 'format': 'MP3', 'bitrate': 128}],
        }
        if listeners is not None:
            payload['listeners'] = listeners
        return payload
    return _payload


@pytest.fixture
def status_cell():
    """Provide an empty StatusCell"""
    return StatusCell(history_size=10)


@pytest.fixture
def change_notifier():
    """Provide a ChangeNotifier with a recording dispatch and no database"""
    notifier = ChangeNotifier(dispatch=Mock(return_value=0))
    yield notifier
    notifier.close_all()


@pytest.fixture
def mock_poller(status_cell):
    """Provide a poller stand-in exposing the attributes routes read"""
    poller = Mock()
    poller.cell = status_cell
    poller.cycles = 0
    poller.failures = 0
    poller.poll_once.return_value = {'success': True, 'skipped': False, 'transitions': [], 'error': None}
    return poller


@pytest.fixture
def test_app(test_db, status_cell, change_notifier, mock_poller, tmp_path, monkeypatch):
    """Provide a Flask test app wired to isolated components

    Auth is disabled by pointing the auth file at a path that does not exist.
    """
    monkeypatch.setattr('radio_sync.auth.AUTH_FILE', str(tmp_path / 'auth.json'))

    gui_app.config['TESTING'] = True
    gui_app.config['db'] = test_db
    gui_app.config['cell'] = status_cell
    gui_app.config['poller'] = mock_poller
    gui_app.config['notifier'] = change_notifier
    gui_app.config['scheduler'] = None
    gui_app.config['settings'] = {'station': {'id': 'test-station'}, 'gui': {'stream_keepalive_seconds': 1}}
    gui_app.config['start_time'] = None

    yield gui_app


@pytest.fixture
def test_client(test_app):
    """Provide a Flask test client for making HTTP requests"""
    return test_app.test_client()


@pytest.fixture
def test_notification(test_db):
    """Create a test ntfy notification subscribed to went-live events

    Returns the ID of the created notification.
    """
    return test_db.create_notification(
        'ntfy', 'Test Ntfy Notification',
        {'topic': 'radio-sync-test'}, ['on_went_live']
    )
