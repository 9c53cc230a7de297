"""
Error taxonomy for Radio Sync

None of these are fatal. The poller catches StreamInfoError subclasses and
keeps the last known good snapshot; the notifier catches
ChannelDeliveryFailure per subscriber.
"""

from datetime import datetime

UPSTREAM_UNAVAILABLE = 'UpstreamUnavailable'
MALFORMED_RESPONSE = 'MalformedResponse'


class RadioSyncError(Exception):
    """Base class for Radio Sync errors"""


class StreamInfoError(RadioSyncError):
    """A poll cycle could not produce a StationStatus"""

    kind = 'StreamInfoError'

    def __init__(self, message, http_status=None):
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.occurred_at = datetime.now()

    def to_dict(self):
        return {
            'kind': self.kind,
            'message': self.message,
            'http_status': self.http_status,
            'occurred_at': self.occurred_at.isoformat(),
        }


class UpstreamUnavailable(StreamInfoError):
    """Network failure or non-2xx response from the station API"""

    kind = UPSTREAM_UNAVAILABLE


class MalformedResponse(StreamInfoError):
    """Response body is not JSON or does not match the expected schema"""

    kind = MALFORMED_RESPONSE


class ChannelDeliveryFailure(RadioSyncError):
    """A push to a single subscriber channel failed"""

    def __init__(self, subscriber_id, reason):
        super().__init__(f"Delivery to subscriber {subscriber_id} failed: {reason}")
        self.subscriber_id = subscriber_id
        self.reason = reason
