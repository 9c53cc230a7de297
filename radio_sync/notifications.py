"""
Notification system for Radio Sync

Supports 6 notification providers:
- OneSignal: Token-addressed mobile/web push (listener devices)
- Discord: Webhook with embed support
- Gotify: Self-hosted push notifications
- Ntfy.sh: Simple HTTP pub/sub
- Pushover: Simple mobile push
- MQTT: IoT/home automation messaging

Notification Triggers:
- on_went_live: A presenter took over the stream
- on_went_offline: The station stopped broadcasting
- on_back_to_automated: Live show ended, automation resumed
- on_track_changed: A new song started
- on_stream_error: Station status could not be fetched
"""

import json
import logging
from datetime import datetime
from typing import Dict, Any, Optional, List

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10

# Notification trigger definitions
NOTIFICATION_TRIGGERS = {
    'on_went_live': 'Went Live',
    'on_went_offline': 'Went Offline',
    'on_back_to_automated': 'Back to Automated',
    'on_track_changed': 'Track Changed',
    'on_stream_error': 'Stream Info Error',
}


class NotificationHandler:
    """Base class for notification handlers"""

    def __init__(self, config: Dict[str, Any]):
        """Initialize handler with configuration

        Args:
            config: Provider-specific configuration
        """
        self.config = config
        self.enabled = config.get('enabled', True)

    def send(self, title: str, message: str,
             severity: str = 'info',
             metadata: Optional[Dict[str, Any]] = None,
             tokens: Optional[List[str]] = None) -> bool:
        """Send notification

        Args:
            title: Notification title
            message: Notification message
            severity: Severity level (info, success, warning, error)
            metadata: Additional metadata
            tokens: Device tokens to address (token-addressed providers only)

        Returns:
            bool: True if sent successfully, False otherwise
        """
        raise NotImplementedError("Subclasses must implement send()")

    @staticmethod
    def _details(metadata, separator='\n'):
        if not metadata:
            return ''
        return separator.join(f"{k}: {v}" for k, v in metadata.items() if v is not None)


class OneSignalHandler(NotificationHandler):
    """OneSignal push notifications addressed by device token"""

    API_URL = 'https://api.onesignal.com/notifications'

    def send(self, title: str, message: str,
             severity: str = 'info',
             metadata: Optional[Dict[str, Any]] = None,
             tokens: Optional[List[str]] = None) -> bool:
        """Send OneSignal push

        With tokens, only those subscriptions are addressed. Without tokens,
        the configured segments are used.
        """
        app_id = self.config.get('app_id')
        api_key = self.config.get('api_key')

        if not all([app_id, api_key]):
            logger.error("OneSignal app ID or API key not configured")
            return False

        payload = {
            'app_id': app_id,
            'headings': {'en': title},
            'contents': {'en': message},
        }

        if tokens is not None:
            if not tokens:
                logger.info("No registered push tokens, skipping OneSignal push")
                return False
            payload['include_subscription_ids'] = list(tokens)
        else:
            payload['included_segments'] = self.config.get('segments', ['Total Subscriptions'])

        if metadata:
            payload['data'] = metadata

        try:
            response = requests.post(
                self.API_URL,
                json=payload,
                headers={'Authorization': f"Key {api_key}"},
                timeout=REQUEST_TIMEOUT
            )
            if 200 <= response.status_code < 300:
                logger.info(f"OneSignal push sent: {title} ({len(tokens) if tokens else 'segments'})")
                return True
            logger.error(f"OneSignal API returned status {response.status_code}")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send OneSignal push: {e}")
            return False


class DiscordHandler(NotificationHandler):
    """Discord webhook notifications"""

    COLORS = {
        'info': 0x3498db,      # Blue
        'success': 0x2ecc71,   # Green
        'warning': 0xf39c12,   # Orange
        'error': 0xe74c3c,     # Red
    }

    def send(self, title: str, message: str,
             severity: str = 'info',
             metadata: Optional[Dict[str, Any]] = None,
             tokens: Optional[List[str]] = None) -> bool:
        """Send Discord webhook notification"""
        webhook_url = self.config.get('webhook_url')
        if not webhook_url:
            logger.error("Discord webhook URL not configured")
            return False

        embed = {
            'title': title,
            'description': message,
            'color': self.COLORS.get(severity, self.COLORS['info']),
            'timestamp': datetime.now().isoformat(),
            'footer': {'text': 'Radio Sync'}
        }

        if metadata:
            fields = []
            for key, value in metadata.items():
                if value is not None:
                    value_str = str(value)
                    if len(value_str) > 1024:
                        value_str = value_str[:1021] + '...'
                    fields.append({'name': key.replace('_', ' ').title(), 'value': value_str, 'inline': True})
            if fields:
                embed['fields'] = fields[:25]  # Discord limit

        payload = {
            'embeds': [embed],
            'username': self.config.get('username', 'Radio Sync')
        }

        try:
            response = requests.post(webhook_url, json=payload, timeout=REQUEST_TIMEOUT)
            if 200 <= response.status_code < 300:
                logger.info(f"Discord notification sent: {title}")
                return True
            logger.error(f"Discord webhook returned status {response.status_code}")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Discord notification: {e}")
            return False


class GotifyHandler(NotificationHandler):
    """Gotify server notifications (self-hosted push notifications)"""

    def send(self, title: str, message: str,
             severity: str = 'info',
             metadata: Optional[Dict[str, Any]] = None,
             tokens: Optional[List[str]] = None) -> bool:
        """Send Gotify notification"""
        server_url = self.config.get('server_url')
        app_token = self.config.get('app_token')
        priority = self.config.get('priority', 5)

        if not all([server_url, app_token]):
            logger.error("Gotify server URL or app token not configured")
            return False

        # Map severity to priority (1-10)
        severity_priority = {
            'info': 5,
            'success': 4,
            'warning': 7,
            'error': 9,
        }

        full_message = message
        details = self._details(metadata)
        if details:
            full_message += f"\n\n{details}"

        payload = {
            'title': title,
            'message': full_message,
            'priority': severity_priority.get(severity, priority),
        }

        try:
            response = requests.post(
                f"{server_url.rstrip('/')}/message",
                params={'token': app_token},
                json=payload,
                timeout=REQUEST_TIMEOUT
            )
            if 200 <= response.status_code < 300:
                logger.info(f"Gotify notification sent: {title}")
                return True
            logger.error(f"Gotify server returned status {response.status_code}")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Gotify notification: {e}")
            return False


class NtfyHandler(NotificationHandler):
    """Ntfy.sh notifications (simple HTTP pub/sub)"""

    def send(self, title: str, message: str,
             severity: str = 'info',
             metadata: Optional[Dict[str, Any]] = None,
             tokens: Optional[List[str]] = None) -> bool:
        """Send Ntfy.sh notification"""
        topic = self.config.get('topic')
        server_url = self.config.get('server_url', 'https://ntfy.sh')
        priority = self.config.get('priority', 3)
        auth_token = self.config.get('auth_token')

        if not topic:
            logger.error("Ntfy topic not configured")
            return False

        # Map severity to priority (1-5)
        severity_priority = {
            'info': 3,
            'success': 4,
            'warning': 4,
            'error': 5,
        }

        body = message
        details = self._details(metadata)
        if details:
            body += f"\n\n{details}"

        headers = {
            'Title': title,
            'Priority': str(severity_priority.get(severity, priority)),
            'Content-Type': 'text/plain; charset=utf-8'
        }
        if auth_token:
            headers['Authorization'] = f"Bearer {auth_token}"

        try:
            response = requests.post(
                f"{server_url.rstrip('/')}/{topic}",
                data=body.encode('utf-8'),
                headers=headers,
                timeout=REQUEST_TIMEOUT
            )
            if response.status_code == 200:
                logger.info(f"Ntfy notification sent: {title}")
                return True
            logger.error(f"Ntfy server returned status {response.status_code}")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Ntfy notification: {e}")
            return False


class PushoverHandler(NotificationHandler):
    """Pushover mobile push notifications"""

    API_URL = 'https://api.pushover.net/1/messages.json'

    def send(self, title: str, message: str,
             severity: str = 'info',
             metadata: Optional[Dict[str, Any]] = None,
             tokens: Optional[List[str]] = None) -> bool:
        """Send Pushover notification"""
        api_token = self.config.get('api_token')
        user_key = self.config.get('user_key')
        device = self.config.get('device', '')
        priority = self.config.get('priority', 0)

        if not all([api_token, user_key]):
            logger.error("Pushover API token or user key not configured")
            return False

        # Map severity to priority (-2 to 2)
        severity_priority = {
            'info': 0,
            'success': 0,
            'warning': 1,
            'error': 1,
        }

        full_message = message
        details = self._details(metadata)
        if details:
            full_message += f"\n\n{details}"

        payload = {
            'token': api_token,
            'user': user_key,
            'title': title,
            'message': full_message,
            'priority': severity_priority.get(severity, priority)
        }
        if device:
            payload['device'] = device

        try:
            response = requests.post(self.API_URL, data=payload, timeout=REQUEST_TIMEOUT)
            result = response.json()
            if result.get('status') == 1:
                logger.info(f"Pushover notification sent: {title}")
                return True
            logger.error(f"Pushover API error: {result.get('errors', 'Unknown error')}")
            return False
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Failed to send Pushover notification: {e}")
            return False


class MQTTPublisher(NotificationHandler):
    """MQTT notifications for IoT/home automation"""

    def send(self, title: str, message: str,
             severity: str = 'info',
             metadata: Optional[Dict[str, Any]] = None,
             tokens: Optional[List[str]] = None) -> bool:
        """Publish notification to an MQTT topic"""
        import paho.mqtt.client as mqtt

        broker = self.config.get('broker')
        port = self.config.get('port', 1883)
        topic = self.config.get('topic', 'radio-sync/events')
        username = self.config.get('username', '')
        password = self.config.get('password', '')
        qos = self.config.get('qos', 1)
        retain = self.config.get('retain', False)

        if not broker:
            logger.error("MQTT broker not configured")
            return False

        payload = {
            'title': title,
            'message': message,
            'severity': severity,
            'timestamp': datetime.now().isoformat()
        }
        if metadata:
            payload['metadata'] = metadata

        try:
            client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
            if username and password:
                client.username_pw_set(username, password)

            client.connect(broker, port, keepalive=10)
            result = client.publish(topic, json.dumps(payload), qos=qos, retain=retain)
            client.disconnect()

            if result.rc == mqtt.MQTT_ERR_SUCCESS:
                logger.info(f"MQTT notification sent: {title} to {topic}")
                return True
            logger.error(f"MQTT publish failed with code: {result.rc}")
            return False
        except (OSError, ValueError) as e:
            logger.error(f"Failed to send MQTT notification: {e}")
            return False


HANDLERS = {
    'onesignal': OneSignalHandler,
    'discord': DiscordHandler,
    'gotify': GotifyHandler,
    'ntfy': NtfyHandler,
    'pushover': PushoverHandler,
    'mqtt': MQTTPublisher,
}


def get_handler(notification_type: str, config: Dict[str, Any]) -> Optional[NotificationHandler]:
    """Factory function to get notification handler

    Args:
        notification_type: Type of notification (onesignal, discord, ntfy, ...)
        config: Configuration dictionary

    Returns:
        NotificationHandler instance or None if type not found
    """
    handler_class = HANDLERS.get(notification_type)
    if not handler_class:
        logger.error(f"Unknown notification type: {notification_type}")
        return None

    return handler_class(config)


def send_notification(notification_type: str, config: Dict[str, Any],
                      title: str, message: str,
                      severity: str = 'info',
                      metadata: Optional[Dict[str, Any]] = None,
                      tokens: Optional[List[str]] = None) -> bool:
    """Send a notification using the specified provider

    Returns:
        bool: True if sent successfully, False otherwise
    """
    handler = get_handler(notification_type, config)
    if not handler:
        return False

    if not handler.enabled:
        logger.debug(f"Notification handler {notification_type} is disabled")
        return False

    return handler.send(title, message, severity, metadata, tokens)


def send_notifications(db, event_type: str, title: str,
                       message: str, severity: str = 'info',
                       metadata: Optional[Dict[str, Any]] = None,
                       tokens: Optional[List[str]] = None) -> int:
    """Send notifications to all enabled providers for the given event type

    Args:
        db: SyncDatabase instance
        event_type: Event type (must match a trigger)
        title: Notification title
        message: Notification message
        severity: Severity level
        metadata: Additional metadata
        tokens: Device tokens for token-addressed providers (WentLive)

    Returns:
        int: Number of notifications sent successfully
    """
    from radio_sync.database import notifications as notif_db

    cursor = db.get_cursor()
    try:
        notifications = notif_db.get_notifications_for_event(cursor, event_type)
    finally:
        cursor.close()

    sent_count = 0
    for notification in notifications:
        success = send_notification(
            notification['notification_type'],
            notification['config'],
            title,
            message,
            severity,
            metadata,
            tokens
        )

        db.record_notification_send(notification['id'], event_type, severity, title, message, success)
        if success:
            sent_count += 1

    return sent_count
