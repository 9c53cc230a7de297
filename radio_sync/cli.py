"""
Command-line interface for Radio Sync

This module provides the CLI entry point for all operations:
- Run the server (poller + API + event stream)
- One-off poll and connection test
- Terminal now-playing view against a running server
- Admin password setup

Usage:
    python -m radio_sync.cli --help
"""

import argparse
import getpass
import json
import logging
import signal
import sys

from radio_sync.logging_setup import setup_logging
from radio_sync.gui import load_settings, run_app, SETTINGS_FILE

# Initial basic config for early logging; replaced once settings are loaded
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def apply_overrides(settings, args):
    """Apply command-line overrides to the settings dict"""
    if args.station:
        settings['station']['id'] = args.station
    if args.interval:
        settings['monitor']['poll_interval_seconds'] = args.interval
    if args.db:
        settings['monitor']['database_file'] = args.db
    if args.host:
        settings['gui']['host'] = args.host
    if args.port:
        settings['gui']['port'] = args.port
    return settings


def build_client(settings):
    """Create the Radio.co client from settings"""
    from radio_sync.radioco import RadioCoClient

    station = settings['station']
    return RadioCoClient(
        station['id'],
        api_base=station.get('api_base') or 'https://public.radio.co',
        timeout=station.get('timeout', 10),
        user_agent=station.get('user_agent')
    )


def build_components(settings):
    """Assemble database, status cell, notifier and poller

    Returns:
        tuple: (db, cell, notifier, poller)
    """
    from radio_sync.database import SyncDatabase
    from radio_sync.state import StatusCell
    from radio_sync.notifier import ChangeNotifier
    from radio_sync.poller import StatusPoller

    monitor = settings['monitor']
    history_size = monitor.get('history_size', 50)

    db = SyncDatabase(monitor.get('database_file', 'radio_sync.db'), history_size=history_size)
    db.connect()

    cell = StatusCell(history_size=history_size)
    notifier = ChangeNotifier(db=db, settings=settings)
    poller = StatusPoller(build_client(settings), cell, notifier=notifier, db=db)
    return db, cell, notifier, poller


def cmd_poll_once(args, settings):
    """Poll the station once and print the snapshot

    Usage: --poll-once
    """
    from radio_sync.state import StatusCell
    from radio_sync.poller import StatusPoller

    cell = StatusCell()
    poller = StatusPoller(build_client(settings), cell)
    result = poller.poll_once()

    if not result['success']:
        print(f"[FAIL] {result['error']['kind']}: {result['error']['message']}")
        return 1

    print(json.dumps(cell.snapshot(), indent=2))
    return 0


def cmd_test(args, settings):
    """Smoke test - station API and database

    Usage: --test
    """
    from radio_sync.database import SyncDatabase

    print("Running smoke test...\n")
    all_ok = True

    print("Testing station API...")
    success, message = build_client(settings).test_connection()
    print(f"[{'OK' if success else 'FAIL'}] {message}")
    all_ok = all_ok and success

    print("\nTesting database...")
    db_file = settings['monitor'].get('database_file', 'radio_sync.db')
    try:
        db = SyncDatabase(db_file)
        db.connect()
        print(f"[OK] Database ready ({len(db.get_push_tokens())} push tokens registered)")
        db.close()
    except Exception as e:
        print(f"[FAIL] Database: {e}")
        all_ok = False

    print(f"\n{'[DONE] All systems operational' if all_ok else '[FAIL] Some checks failed'}")
    return 0 if all_ok else 1


def cmd_watch(args, settings):
    """Follow a running server from the terminal

    Usage: --watch http://localhost:5000
    """
    from radio_sync.client import NowPlayingClient

    def print_line(client, reason):
        print(client.render(), flush=True)

    client = NowPlayingClient(args.watch, on_update=print_line)
    try:
        client.run()
    except KeyboardInterrupt:
        client.stop()
    return 0


def cmd_set_password(args, settings):
    """Enable HTTP Basic auth for admin routes

    Usage: --set-password USERNAME
    """
    from radio_sync.auth import save_auth_config, AUTH_FILE

    password = getpass.getpass('Password: ')
    if not password or password != getpass.getpass('Repeat password: '):
        print("[FAIL] Passwords are empty or do not match")
        return 1

    if not save_auth_config(args.set_password, password):
        print("[FAIL] Could not write auth file")
        return 1

    print(f"[OK] Authentication enabled (delete {AUTH_FILE} to disable)")
    return 0


def cmd_serve(args, settings):
    """Start the poller and the HTTP API

    Usage: [--serve] [--host HOST] [--port PORT]
    """
    from radio_sync.scheduler import RadioScheduler
    from radio_sync.gui import init_gui, cleanup

    if not settings['station'].get('id'):
        print(f"[FAIL] No station configured. Set station.id in {SETTINGS_FILE} or pass --station")
        return 1

    db, cell, notifier, poller = build_components(settings)

    monitor = settings['monitor']
    autostart = monitor.get('autostart', True)
    scheduler = RadioScheduler(poller.poll_once,
                               poll_interval_seconds=monitor.get('poll_interval_seconds', 15),
                               paused=not autostart)

    init_gui(db, cell, poller, notifier, background_scheduler=scheduler, app_settings=settings)

    if autostart:
        # Prime the snapshot so the first clients don't wait a full interval
        poller.poll_once()

    def signal_handler(sig, frame):
        logger.info("Shutdown signal received. Stopping gracefully...")
        cleanup()
        logger.info("Shutdown complete. Goodbye!")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    logger.info("Signal handlers registered. Press Ctrl+C to stop.")

    gui = settings['gui']
    run_app(host=gui.get('host', '0.0.0.0'), port=gui.get('port', 5000), debug=gui.get('debug', False))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description='Radio Sync 1.0 - Near-real-time Radio.co station status with push fan-out',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Commands
    parser.add_argument('--serve', action='store_true',
                        help='Start the poller and HTTP API (default)')
    parser.add_argument('--poll-once', action='store_true',
                        help='Poll the station once, print the snapshot and exit')
    parser.add_argument('--test', action='store_true',
                        help='Run smoke test (station API, database)')
    parser.add_argument('--watch', metavar='URL',
                        help='Show now playing from a running Radio Sync server')
    parser.add_argument('--set-password', metavar='USERNAME',
                        help='Enable HTTP Basic auth for admin routes')

    # Overrides
    parser.add_argument('--settings', metavar='FILE', default=SETTINGS_FILE,
                        help=f'Settings file (default: {SETTINGS_FILE})')
    parser.add_argument('--station', metavar='ID',
                        help='Radio.co station ID')
    parser.add_argument('--interval', type=int, metavar='SECONDS',
                        help='Poll interval in seconds (minimum 10)')
    parser.add_argument('--db', metavar='FILE',
                        help='SQLite database file')
    parser.add_argument('--host', metavar='HOST',
                        help='HTTP host (default: from settings or 0.0.0.0)')
    parser.add_argument('--port', type=int, metavar='PORT',
                        help='HTTP port (default: from settings or 5000)')
    return parser


def main(argv=None):
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)

    settings = apply_overrides(load_settings(args.settings), args)
    setup_logging(settings)

    if args.poll_once:
        return cmd_poll_once(args, settings)
    elif args.test:
        return cmd_test(args, settings)
    elif args.watch:
        return cmd_watch(args, settings)
    elif args.set_password:
        return cmd_set_password(args, settings)
    else:
        return cmd_serve(args, settings)


if __name__ == '__main__':
    sys.exit(main())
