"""
Radio Sync 1.0 - Package Architecture

This package keeps a near-real-time "now playing" picture of one hosted
Radio.co station and fans out state changes to connected listeners and
push-notification providers.

Package Structure:
------------------
radio_sync/
├── __init__.py           # Package initialization (this file)
├── models.py             # Track, StationStatus, TransitionEvent
├── exceptions.py         # UpstreamUnavailable, MalformedResponse, ...
├── radioco.py            # Radio.co public API client + normalization
├── transitions.py        # Snapshot diffing (TrackChanged, WentLive, ...)
├── state.py              # StatusCell (single-writer current snapshot)
├── poller.py             # StatusPoller (fetch -> diff -> replace)
├── scheduler.py          # APScheduler wrapper
├── notifier.py           # ChangeNotifier + subscriber registry
├── notifications.py      # Push/notification providers
├── client.py             # Now-playing client (cold start, SSE, fallback)
├── database/             # SQLite: transition log, push tokens, providers
├── gui/                  # Flask app + API blueprints
└── cli.py                # Command-line interface

Architecture Principles:
-----------------------
1. The station's API owns ground truth - we only mirror it
2. One current snapshot - poller writes, everyone else reads
3. Single integrated app - Flask + APScheduler in one process
4. Degrade, never halt - keep last known good status on any failure
5. Best-effort delivery - no replay, clients cold start on reconnect

Data Flow:
---------
┌──────────────────────────────────────────────────────────────┐
│  Single Application Process                                  │
│                                                              │
│  Radio.co API ──► StatusPoller ──► StatusCell                │
│  (every 10s+)     (APScheduler)       │                      │
│                        │              ▼                      │
│                        └──► ChangeNotifier ──► SSE clients   │
│                                   │                          │
│                                   └──► Push providers        │
└──────────────────────────────────────────────────────────────┘

Usage:
------
# GUI/API mode (default)
python -m radio_sync.cli --station s1234abcd

# Poll once and print the snapshot
python -m radio_sync.cli --poll-once

# Follow a running server from the terminal
python -m radio_sync.cli --watch http://localhost:5000

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Radio Sync Team"


def get_version():
    """Get the package version

    Returns:
        str: The version number
    """
    return __version__


from .models import Track, StationStatus, TransitionEvent
from .state import StatusCell

__all__ = [
    "Track",
    "StationStatus",
    "TransitionEvent",
    "StatusCell",
    "__version__",
]
