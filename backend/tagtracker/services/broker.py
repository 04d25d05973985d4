"""
MQTT Subscriber
===============

The one long-lived connection to the message broker.

HOW IT WORKS:
------------
1. Created once when the app starts (see main.py lifespan)
2. Connects in the background and subscribes to the notification topic
   (again after every reconnect)
3. If the broker goes away, paho retries on a FIXED interval
   (MQTT_RECONNECT_SECONDS, default 1 second)
4. Every message is handed to the app's event loop, so ingestion runs
   on the same loop as the HTTP requests
5. stop() on shutdown disconnects cleanly

Threading:
    paho's network loop runs in its own thread. Callbacks here only hop
    the message over to asyncio; the real work happens in the handler.

Author: Tag Tracker Team
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)


MessageHandler = Callable[[str, bytes], Awaitable[Any]]


def parse_broker_address(broker: str, default_port: int = 1883) -> tuple[str, int]:
    """
    Accept either a bare host ("localhost") or a URL ("mqtt://host:1883").

    Returns:
        (host, port)
    """
    if "://" not in broker:
        return broker, default_port
    parsed = urlparse(broker)
    return parsed.hostname or "localhost", parsed.port or default_port


class MessageSubscriber:
    """
    MQTT subscriber that feeds messages to an async handler.

    Example:
        >>> subscriber = MessageSubscriber(
        ...     broker_host="localhost",
        ...     topic="notifications",
        ...     handler=ingestor.handle_message,
        ... )
        >>> subscriber.start()   # inside a running event loop
        >>> # ... app runs ...
        >>> subscriber.stop()
    """

    def __init__(
        self,
        broker_host: str,
        topic: str,
        handler: MessageHandler,
        broker_port: int = 1883,
        client_id: str = "tagtracker-backend",
        reconnect_seconds: int = 1,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0,
    ):
        """
        Args:
            broker_host: MQTT broker hostname
            topic: Topic the sensors publish detections on
            handler: Coroutine function called with (topic, payload)
            broker_port: MQTT broker port (default: 1883)
            client_id: MQTT client ID
            reconnect_seconds: Fixed delay between reconnect attempts
            username: MQTT auth username (optional)
            password: MQTT auth password (optional)
            qos: Quality of Service (default: 0)
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.handler = handler
        self.client_id = client_id
        self.reconnect_seconds = reconnect_seconds
        self.qos = qos

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
        )
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.reconnect_delay_set(min_delay=reconnect_seconds, max_delay=reconnect_seconds)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connected = threading.Event()
        self._stats_lock = threading.Lock()
        self._message_count = 0
        self._dropped_count = 0

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Start connecting in the background. Non-blocking.

        Must be called from (or given) the event loop that should run
        the handler.
        """
        self._loop = loop or asyncio.get_running_loop()
        logger.info(f"Connecting to broker on {self.broker_host}:{self.broker_port}")
        self.client.connect_async(self.broker_host, self.broker_port)
        self.client.loop_start()

    def stop(self) -> None:
        """Disconnect and stop the network thread."""
        self.client.disconnect()
        self.client.loop_stop()
        self._connected.clear()
        logger.info(f"Disconnected from broker on {self.broker_host}:{self.broker_port}")

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    def get_stats(self) -> dict:
        with self._stats_lock:
            return {
                "connected": self.is_connected,
                "broker": f"{self.broker_host}:{self.broker_port}",
                "topic": self.topic,
                "messages_received": self._message_count,
                "messages_dropped": self._dropped_count,
            }

    # =========================================================================
    # PAHO CALLBACKS (run on paho's thread)
    # =========================================================================

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.error(f"Failed to connect to broker {self.broker_host}:{self.broker_port} ({reason_code})")
            return

        self._connected.set()
        logger.info(f"Connected to broker on {self.broker_host}:{self.broker_port}")
        client.subscribe(self.topic, qos=self.qos)
        logger.info(f"Subscribed to topic {self.topic}")

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        logger.warning(f"Disconnected from broker ({reason_code}), retrying every {self.reconnect_seconds}s")

    def _on_message(self, client, userdata, msg) -> None:
        with self._stats_lock:
            self._message_count += 1

        if self._loop is None or self._loop.is_closed():
            with self._stats_lock:
                self._dropped_count += 1
            logger.error(f"No event loop to handle message from {msg.topic}, dropping it")
            return

        future = asyncio.run_coroutine_threadsafe(self.handler(msg.topic, msg.payload), self._loop)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Message handler failed: {error}", exc_info=error)
