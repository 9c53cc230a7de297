"""
Change notifier for Radio Sync

Fans out transitions from the poller (single producer) to:
- every connected client channel (server-sent events), in poll order
- notification providers subscribed to the matching trigger
  (WentLive also goes to the registered push tokens)

Delivery is best-effort. A subscriber whose queue is full or closed is
dropped; that failure is isolated to that subscriber. There is no replay:
a reconnecting client cold-starts from the current snapshot.
"""

import logging
import queue
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

from radio_sync.exceptions import ChannelDeliveryFailure
from radio_sync.models import TRACK_CHANGED, WENT_LIVE, WENT_OFFLINE, BACK_TO_AUTOMATED

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100

# Transition kind -> notification trigger
EVENT_TRIGGERS = {
    WENT_LIVE: 'on_went_live',
    WENT_OFFLINE: 'on_went_offline',
    BACK_TO_AUTOMATED: 'on_back_to_automated',
    TRACK_CHANGED: 'on_track_changed',
}

STREAM_ERROR_TRIGGER = 'on_stream_error'

SEVERITIES = {
    WENT_LIVE: 'success',
    WENT_OFFLINE: 'warning',
    BACK_TO_AUTOMATED: 'info',
    TRACK_CHANGED: 'info',
}

_CLOSED = object()


class Subscriber:
    """One client channel with its own FIFO queue"""

    def __init__(self, maxsize=DEFAULT_QUEUE_SIZE):
        self.id = uuid.uuid4().hex
        self._queue = queue.Queue(maxsize=maxsize)
        self.closed = False

    def deliver(self, event_name, payload):
        """Queue a message for this subscriber

        Raises:
            ChannelDeliveryFailure: If the channel is closed or backed up
        """
        if self.closed:
            raise ChannelDeliveryFailure(self.id, 'channel closed')
        try:
            self._queue.put_nowait((event_name, payload))
        except queue.Full:
            raise ChannelDeliveryFailure(self.id, 'queue full')

    def get(self, timeout=None):
        """Next (event_name, payload) message

        Returns:
            tuple, or None on timeout or once the channel is closed
        """
        if self.closed and self._queue.empty():
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            return None
        return item

    def close(self):
        """Close the channel; pending messages are discarded"""
        self.closed = True
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            pass


class SubscriberRegistry:
    """Registry of connected client channels"""

    def __init__(self, queue_size=DEFAULT_QUEUE_SIZE):
        self._lock = threading.Lock()
        self._subscribers = {}
        self.queue_size = queue_size

    def subscribe(self):
        """Register a new channel (connection open)

        Returns:
            Subscriber
        """
        subscriber = Subscriber(maxsize=self.queue_size)
        with self._lock:
            self._subscribers[subscriber.id] = subscriber
        logger.info(f"Client subscribed: {subscriber.id} ({self.count} connected)")
        return subscriber

    def unsubscribe(self, subscriber):
        """Remove a channel (connection closed)"""
        with self._lock:
            removed = self._subscribers.pop(subscriber.id, None)
        subscriber.close()
        if removed:
            logger.info(f"Client unsubscribed: {subscriber.id} ({self.count} connected)")

    def all(self):
        with self._lock:
            return list(self._subscribers.values())

    @property
    def count(self):
        with self._lock:
            return len(self._subscribers)

    def close_all(self):
        """Close every channel without flushing"""
        for subscriber in self.all():
            self.unsubscribe(subscriber)


class ChangeNotifier:
    """Fan out transitions to client channels and notification providers

    Attributes:
        registry: SubscriberRegistry of connected clients
        db: SyncDatabase holding provider configs and push tokens (optional)
        settings: Settings dict (notification message templates)
    """

    def __init__(self, registry=None, db=None, settings=None, dispatch=None):
        """Initialize notifier

        Args:
            registry: SubscriberRegistry (a new one is created if omitted)
            db: SyncDatabase for provider dispatch (optional)
            settings: Settings dict (optional)
            dispatch: Callable(db, event_type, title, message, severity, metadata, tokens)
                      Defaults to notifications.send_notifications
        """
        self.registry = registry or SubscriberRegistry()
        self.db = db
        self.settings = settings or {}
        if dispatch is None:
            from radio_sync.notifications import send_notifications
            dispatch = send_notifications
        self.dispatch = dispatch
        # One worker keeps provider dispatch in event order and off the poll thread
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='notify')
        self.delivery_failures = 0
        self.events_published = 0

    def _broadcast(self, event_name, payload):
        for subscriber in self.registry.all():
            try:
                subscriber.deliver(event_name, payload)
            except ChannelDeliveryFailure as e:
                self.delivery_failures += 1
                logger.warning(f"ChannelDeliveryFailure: {e}")
                self.registry.unsubscribe(subscriber)

    def publish(self, event):
        """Push a TransitionEvent to all channels and providers

        Args:
            event: TransitionEvent
        """
        self.events_published += 1
        self._broadcast(event.kind, event.to_dict())

        trigger = EVENT_TRIGGERS.get(event.kind)
        if trigger and self.db:
            self._submit(
                trigger,
                self._title_for(event),
                event.describe(),
                SEVERITIES.get(event.kind, 'info'),
                self._metadata_for(event),
                with_tokens=(event.kind == WENT_LIVE)
            )

    def publish_error(self, error):
        """Tell clients the current snapshot is stale

        Args:
            error: StreamInfoError from the failed cycle
        """
        self._broadcast('stale', error.to_dict())

        if self.db:
            self._submit(STREAM_ERROR_TRIGGER, 'Station Status Unavailable',
                         error.message, 'error', {'kind': error.kind, 'http_status': error.http_status},
                         with_tokens=False)

    def _title_for(self, event):
        templates = self.settings.get('notifications', {})
        if event.kind == WENT_LIVE:
            template = templates.get('went_live_title', 'On Air Now')
            return template.format(collaborator=event.collaborator or 'Live')
        return {
            WENT_OFFLINE: 'Station Offline',
            BACK_TO_AUTOMATED: 'Back to Automated',
            TRACK_CHANGED: 'Now Playing',
        }.get(event.kind, event.kind)

    def _metadata_for(self, event):
        metadata = {'event': event.kind}
        if event.collaborator:
            metadata['collaborator'] = event.collaborator
        if event.new.current_track:
            metadata['track'] = event.new.current_track.title
        return metadata

    def _submit(self, trigger, title, message, severity, metadata, with_tokens):
        try:
            self._executor.submit(self._dispatch, trigger, title, message, severity, metadata, with_tokens)
        except RuntimeError:
            logger.debug(f"Notifier shut down, dropping {trigger} notification")

    def _dispatch(self, trigger, title, message, severity, metadata, with_tokens):
        try:
            tokens = self.db.get_push_tokens() if with_tokens else None
            sent = self.dispatch(self.db, trigger, title, message, severity, metadata, tokens)
            logger.info(f"Dispatched {trigger}: {sent} notification(s) sent")
        except Exception as e:
            logger.error(f"Failed to dispatch {trigger} notification: {e}", exc_info=True)

    def close_all(self):
        """Close every client channel and drop pending notifications"""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.registry.close_all()
        logger.info("Notifier closed")
