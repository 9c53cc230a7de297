"""
Database package for Radio Sync

This package provides a small SQLite interface with:
- schema.py: Table definitions
- transitions.py: Trailing transition log
- notifications.py: Provider configs, send history, push tokens

The SyncDatabase class (below) provides a unified interface to these
modules. Current station status is never stored here; it lives in memory
in the StatusCell.
"""

import sqlite3
import logging
import threading

from .schema import initialize_schema
from . import transitions
from . import notifications

logger = logging.getLogger(__name__)


class SyncDatabase:
    """SQLite database with 5-table schema

    Tables:
    - schema_version: Schema version tracking
    - transition_log: Trailing log of transitions (display only)
    - push_tokens: Listener device tokens
    - notifications: Notification provider configurations
    - notification_history: Notification send history
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path, history_size=50):
        self.db_path = db_path
        self.history_size = history_size
        self.conn = None
        self._write_lock = threading.Lock()

    def connect(self):
        """Connect to database and create schema if needed"""
        # The poll job, notifier worker and Flask threads share this connection
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        cursor = self.conn.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys = ON")
            initialize_schema(cursor, self.conn, self.SCHEMA_VERSION)
        finally:
            cursor.close()
        logger.info(f"Database connected: {self.db_path}")

    def get_cursor(self):
        """Get a new cursor for the current request

        A fresh cursor per caller avoids 'Recursive use of cursors' errors
        when Flask requests and the poll job hit the database together.
        """
        return self.conn.cursor()

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    # ==================== TRANSITION LOG ====================

    def log_transition(self, event):
        """Persist a transition and trim the log to history_size"""
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                row_id = transitions.log_transition(cursor, event)
                transitions.trim_transition_log(cursor, self.history_size)
                self.conn.commit()
                return row_id
            finally:
                cursor.close()

    def get_recent_transitions(self, limit=50, event_type=None):
        cursor = self.conn.cursor()
        try:
            return transitions.get_recent_transitions(cursor, limit, event_type)
        finally:
            cursor.close()

    # ==================== PUSH TOKENS ====================

    def register_push_token(self, token, platform=None):
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                created = notifications.register_push_token(cursor, token, platform)
                self.conn.commit()
                return created
            finally:
                cursor.close()

    def remove_push_token(self, token):
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                removed = notifications.remove_push_token(cursor, token)
                self.conn.commit()
                return removed
            finally:
                cursor.close()

    def get_push_tokens(self):
        cursor = self.conn.cursor()
        try:
            return notifications.get_push_tokens(cursor)
        finally:
            cursor.close()

    def get_push_token_details(self):
        cursor = self.conn.cursor()
        try:
            return notifications.get_push_token_details(cursor)
        finally:
            cursor.close()

    # ==================== NOTIFICATIONS ====================

    def create_notification(self, notification_type, name, config, triggers, enabled=True):
        """Create a provider configuration

        Raises:
            sqlite3.IntegrityError: If the name is already taken
        """
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                notif_id = notifications.create_notification(
                    cursor, notification_type, name, config, triggers, enabled=enabled
                )
                self.conn.commit()
                return notif_id
            except sqlite3.Error:
                self.conn.rollback()
                raise
            finally:
                cursor.close()

    def delete_notification(self, notification_id):
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                deleted = notifications.delete_notification(cursor, notification_id)
                self.conn.commit()
                return deleted
            finally:
                cursor.close()

    def record_notification_send(self, notification_id, event_type, severity, title, message, success):
        """Log one provider send and update its trigger/failure counters"""
        with self._write_lock:
            cursor = self.conn.cursor()
            try:
                notifications.log_notification_send(
                    cursor, notification_id, event_type, severity, title, message, success
                )
                if success:
                    notifications.update_notification_triggered(cursor, notification_id)
                else:
                    notifications.increment_notification_failures(cursor, notification_id)
                self.conn.commit()
            finally:
                cursor.close()


__all__ = ['SyncDatabase']
