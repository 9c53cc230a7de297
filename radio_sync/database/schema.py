"""
Database schema definitions for Radio Sync

This module contains all CREATE TABLE statements and indexes for the
5-table SQLite schema.

Tables:
- schema_version: Schema version tracking
- transition_log: Trailing log of detected transitions (display only)
- push_tokens: Listener device tokens for WentLive pushes
- notifications: Notification provider configurations
- notification_history: Notification send history

Schema Version: 1
"""

import logging

logger = logging.getLogger(__name__)


def create_tables(cursor):
    """Create all tables and indexes

    Args:
        cursor: SQLite cursor object
    """
    # 1. schema_version table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # 2. transition_log table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS transition_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id TEXT NOT NULL UNIQUE,
            event_type TEXT NOT NULL,
            collaborator TEXT,
            track_title TEXT,
            summary TEXT,
            payload TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_transition_log_created ON transition_log(created_at DESC)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_transition_log_type ON transition_log(event_type)")

    # 3. push_tokens table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS push_tokens (
            token TEXT PRIMARY KEY,
            platform TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            last_seen_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # 4. notifications table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            notification_type TEXT NOT NULL,
            name TEXT NOT NULL UNIQUE,
            enabled BOOLEAN DEFAULT 1,
            config TEXT NOT NULL,
            triggers TEXT NOT NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            last_triggered DATETIME,
            failure_count INTEGER DEFAULT 0
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_notifications_enabled ON notifications(enabled)")

    # 5. notification_history table
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS notification_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            notification_id INTEGER NOT NULL,
            sent_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            event_type TEXT NOT NULL,
            event_severity TEXT,
            title TEXT,
            message TEXT,
            success BOOLEAN DEFAULT 1,
            error_message TEXT,
            FOREIGN KEY (notification_id) REFERENCES notifications(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_history_notification ON notification_history(notification_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_history_sent_at ON notification_history(sent_at DESC)")


def initialize_schema(cursor, conn, schema_version):
    """Create tables if needed and record the schema version

    Args:
        cursor: SQLite cursor object
        conn: SQLite connection object
        schema_version: Current schema version
    """
    create_tables(cursor)

    cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    row = cursor.fetchone()
    if not row:
        cursor.execute("INSERT INTO schema_version (version) VALUES (?)", (schema_version,))
        logger.info(f"Created database schema v{schema_version}")
    elif row[0] < schema_version:
        cursor.execute("INSERT INTO schema_version (version) VALUES (?)", (schema_version,))
        logger.info(f"Upgraded database schema v{row[0]} -> v{schema_version}")

    conn.commit()
