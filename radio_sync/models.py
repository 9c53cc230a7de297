"""
Data model for Radio Sync

- Track: one song as reported by the station
- StationStatus: immutable snapshot produced by one poll cycle
- TransitionEvent: a meaningful change between two consecutive snapshots
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Dict, Any

ONLINE = 'online'
OFFLINE = 'offline'

AUTOMATED = 'automated'
LIVE = 'live'

# Derived track states
TRACK_OFFLINE = 'offline'
TRACK_NO_INFO = 'no_track_info'
TRACK_PLAYING = 'playing'

# Transition kinds
TRACK_CHANGED = 'TrackChanged'
WENT_LIVE = 'WentLive'
WENT_OFFLINE = 'WentOffline'
BACK_TO_AUTOMATED = 'BackToAutomated'

TRANSITION_KINDS = (TRACK_CHANGED, WENT_LIVE, WENT_OFFLINE, BACK_TO_AUTOMATED)


@dataclass(frozen=True)
class Track:
    """A track as reported by the station

    Two tracks are the same play when title and start_time match; the
    artwork URL may change between polls without it being a new song.
    """
    title: str
    start_time: Optional[str] = None
    artwork_url: Optional[str] = field(default=None, compare=False)

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.title, self.start_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'start_time': self.start_time,
            'artwork_url': self.artwork_url,
        }


@dataclass(frozen=True)
class StationStatus:
    """One polled snapshot of the station

    collaborator_name is only kept while source_mode is live.
    """
    online_state: str = OFFLINE
    source_mode: str = AUTOMATED
    current_track: Optional[Track] = None
    bitrate: Optional[int] = None
    listener_count: Optional[int] = None
    collaborator_name: Optional[str] = None
    history: Tuple[str, ...] = ()
    fetched_at: datetime = field(default_factory=datetime.now, compare=False)

    def __post_init__(self):
        if self.source_mode != LIVE and self.collaborator_name is not None:
            object.__setattr__(self, 'collaborator_name', None)

    @property
    def is_online(self) -> bool:
        return self.online_state == ONLINE

    @property
    def is_live(self) -> bool:
        return self.source_mode == LIVE

    @property
    def track_state(self) -> str:
        if not self.is_online:
            return TRACK_OFFLINE
        if self.current_track is None:
            return TRACK_NO_INFO
        return TRACK_PLAYING

    @property
    def track_key(self) -> Optional[Tuple[str, Optional[str]]]:
        """Identity of the playing track, None when offline or no track info"""
        if self.track_state != TRACK_PLAYING:
            return None
        return self.current_track.key

    def to_dict(self) -> Dict[str, Any]:
        return {
            'online_state': self.online_state,
            'source_mode': self.source_mode,
            'track_state': self.track_state,
            'current_track': self.current_track.to_dict() if self.current_track else None,
            'bitrate': self.bitrate,
            'listener_count': self.listener_count,
            'collaborator_name': self.collaborator_name,
            'history': list(self.history),
            'fetched_at': self.fetched_at.isoformat(),
        }


@dataclass(frozen=True)
class TransitionEvent:
    """A transition between two consecutive snapshots

    collaborator is only meaningful for WentLive (None = anonymous live).
    """
    kind: str
    old: StationStatus
    new: StationStatus
    collaborator: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False)
    created_at: datetime = field(default_factory=datetime.now, compare=False)

    def __post_init__(self):
        if self.kind not in TRANSITION_KINDS:
            raise ValueError(f"Unknown transition kind: {self.kind}")

    def describe(self) -> str:
        """Short human-readable summary for logs and notifications"""
        if self.kind == TRACK_CHANGED:
            return f"Now playing: {self.new.current_track.title}"
        if self.kind == WENT_LIVE:
            return f"{self.collaborator} is live" if self.collaborator else "Station is live"
        if self.kind == WENT_OFFLINE:
            return "Station went offline"
        return "Back to automated playout"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.kind,
            'collaborator': self.collaborator,
            'summary': self.describe(),
            'old': self.old.to_dict(),
            'new': self.new.to_dict(),
            'created_at': self.created_at.isoformat(),
        }
