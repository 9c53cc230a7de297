#!/usr/bin/env python
"""
Unit tests for database functionality

Tests:
1. Transition log insert, ordering and trimming
2. Push token registration
3. Notification provider configuration
4. Notification send history
"""

import sqlite3
import unittest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from radio_sync.database import SyncDatabase
from radio_sync.database import notifications as notif_db
from radio_sync.models import (
    StationStatus, Track, TransitionEvent, ONLINE, LIVE, TRACK_CHANGED, WENT_LIVE
)


def online(title='Artist - Song', live=False, collaborator=None):
    return StationStatus(
        online_state=ONLINE,
        source_mode=LIVE if live else 'automated',
        current_track=Track(title, '2026-01-01T10:00:00+00:00') if title else None,
        collaborator_name=collaborator
    )


class TestTransitionLog(unittest.TestCase):
    """Test the trailing transition log"""

    def setUp(self):
        """Set up test database"""
        self.db = SyncDatabase(":memory:", history_size=3)
        self.db.connect()

    def tearDown(self):
        """Clean up test database"""
        self.db.close()

    def test_log_transition(self):
        """Test logging a went-live transition"""
        event = TransitionEvent(WENT_LIVE, online(), online(live=True, collaborator='DJ X'),
                                collaborator='DJ X')
        self.db.log_transition(event)

        entries = self.db.get_recent_transitions()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]['event_id'], event.id)
        self.assertEqual(entries[0]['type'], WENT_LIVE)
        self.assertEqual(entries[0]['collaborator'], 'DJ X')
        self.assertEqual(entries[0]['summary'], 'DJ X is live')
        self.assertEqual(entries[0]['track_title'], 'Artist - Song')

    def test_duplicate_event_ignored(self):
        """Test that the same event is only logged once"""
        event = TransitionEvent(TRACK_CHANGED, online('A'), online('B'))
        self.db.log_transition(event)
        self.db.log_transition(event)

        self.assertEqual(len(self.db.get_recent_transitions()), 1)

    def test_log_is_trimmed(self):
        """Test that only the newest history_size entries are kept, newest first"""
        titles = ['One', 'Two', 'Three', 'Four', 'Five']
        for previous, title in zip(['Zero'] + titles, titles):
            self.db.log_transition(TransitionEvent(TRACK_CHANGED, online(previous), online(title)))

        entries = self.db.get_recent_transitions()
        self.assertEqual([e['track_title'] for e in entries], ['Five', 'Four', 'Three'])

    def test_filter_by_type(self):
        """Test filtering the log by transition kind"""
        self.db.log_transition(TransitionEvent(TRACK_CHANGED, online('A'), online('B')))
        self.db.log_transition(TransitionEvent(WENT_LIVE, online('B'), online('B', live=True)))

        entries = self.db.get_recent_transitions(event_type=WENT_LIVE)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]['summary'], 'Station is live')


class TestPushTokens(unittest.TestCase):
    """Test listener device tokens"""

    def setUp(self):
        self.db = SyncDatabase(":memory:")
        self.db.connect()

    def tearDown(self):
        self.db.close()

    def test_register_token(self):
        """Test registering a new token and refreshing it"""
        self.assertTrue(self.db.register_push_token('token-a', 'ios'))
        self.assertFalse(self.db.register_push_token('token-a'))

        details = self.db.get_push_token_details()
        self.assertEqual(len(details), 1)
        self.assertEqual(details[0]['platform'], 'ios', "Platform should be kept when not re-sent")

    def test_remove_token(self):
        """Test removing a token"""
        self.db.register_push_token('token-a', 'android')
        self.db.register_push_token('token-b', 'web')

        self.assertTrue(self.db.remove_push_token('token-a'))
        self.assertFalse(self.db.remove_push_token('token-a'))
        self.assertEqual(self.db.get_push_tokens(), ['token-b'])


class TestNotificationConfig(unittest.TestCase):
    """Test notification provider storage"""

    def setUp(self):
        self.db = SyncDatabase(":memory:")
        self.db.connect()
        self.cursor = self.db.get_cursor()

    def tearDown(self):
        self.cursor.close()
        self.db.close()

    def test_create_and_get(self):
        """Test creating a provider configuration"""
        notif_id = notif_db.create_notification(
            self.cursor, 'onesignal', 'Listener push',
            {'app_id': 'app-1', 'api_key': 'key-1'}, ['on_went_live']
        )

        notification = notif_db.get_notification(self.cursor, notif_id)
        self.assertEqual(notification['notification_type'], 'onesignal')
        self.assertEqual(notification['config']['app_id'], 'app-1')
        self.assertEqual(notification['triggers'], ['on_went_live'])
        self.assertTrue(notification['enabled'])
        self.assertEqual(notification['failure_count'], 0)

    def test_notifications_for_event(self):
        """Test selecting enabled providers by trigger"""
        notif_db.create_notification(self.cursor, 'ntfy', 'Live', {'topic': 'a'}, ['on_went_live'])
        notif_db.create_notification(self.cursor, 'ntfy', 'Tracks', {'topic': 'b'}, ['on_track_changed'])
        notif_db.create_notification(self.cursor, 'ntfy', 'Muted', {'topic': 'c'}, ['on_went_live'],
                                     enabled=False)

        names = [n['name'] for n in notif_db.get_notifications_for_event(self.cursor, 'on_went_live')]
        self.assertEqual(names, ['Live'])

    def test_history_and_counters(self):
        """Test history logging and trigger/failure counters"""
        notif_id = notif_db.create_notification(self.cursor, 'discord', 'Studio', {'webhook_url': 'x'},
                                                ['on_went_offline'])

        notif_db.log_notification_send(self.cursor, notif_id, 'on_went_offline', 'warning',
                                       'Station Offline', 'Station went offline', False)
        notif_db.increment_notification_failures(self.cursor, notif_id)
        notif_db.update_notification_triggered(self.cursor, notif_id)

        history = notif_db.get_notification_history(self.cursor, notif_id)
        self.assertEqual(len(history), 1)
        self.assertFalse(history[0]['success'])
        self.assertEqual(history[0]['notification_name'], 'Studio')

        notification = notif_db.get_notification(self.cursor, notif_id)
        self.assertEqual(notification['failure_count'], 1)
        self.assertIsNotNone(notification['last_triggered'])

    def test_delete_cascades_history(self):
        """Test that deleting a provider removes its history"""
        notif_id = notif_db.create_notification(self.cursor, 'ntfy', 'Gone', {'topic': 'a'}, ['on_went_live'])
        notif_db.log_notification_send(self.cursor, notif_id, 'on_went_live', 'success', 't', 'm', True)

        self.assertTrue(notif_db.delete_notification(self.cursor, notif_id))
        self.assertIsNone(notif_db.get_notification(self.cursor, notif_id))
        self.assertEqual(notif_db.get_notification_history(self.cursor), [])

    def test_facade_writes(self):
        """Test provider writes through SyncDatabase"""
        notif_id = self.db.create_notification('gotify', 'Studio', {'server_url': 'x'}, ['on_went_live'])
        with self.assertRaises(sqlite3.IntegrityError):
            self.db.create_notification('gotify', 'Studio', {'server_url': 'y'}, ['on_went_live'])

        self.db.record_notification_send(notif_id, 'on_went_live', 'success', 't', 'm', True)
        self.db.record_notification_send(notif_id, 'on_went_live', 'success', 't', 'm', False)

        notification = notif_db.get_notification(self.cursor, notif_id)
        self.assertEqual(notification['failure_count'], 1)
        self.assertIsNotNone(notification['last_triggered'])
        self.assertEqual(len(notif_db.get_notification_history(self.cursor, notif_id)), 2)

        self.assertTrue(self.db.delete_notification(notif_id))
        self.assertFalse(self.db.delete_notification(notif_id))


if __name__ == '__main__':
    unittest.main()
