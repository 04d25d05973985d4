import asyncio
import threading
from types import SimpleNamespace

from tagtracker.services import MessageSubscriber
from tagtracker.services.broker import parse_broker_address


def test_parse_broker_address():
    assert parse_broker_address("localhost") == ("localhost", 1883)
    assert parse_broker_address("broker.local", 8883) == ("broker.local", 8883)
    assert parse_broker_address("mqtt://broker.local:1884") == ("broker.local", 1884)
    assert parse_broker_address("mqtt://broker.local") == ("broker.local", 1883)


def test_messages_are_handed_to_the_event_loop():
    received = []

    async def scenario():
        done = asyncio.Event()
        loop_thread = threading.get_ident()

        async def handler(topic, payload):
            received.append((topic, payload, threading.get_ident() == loop_thread))
            done.set()

        subscriber = MessageSubscriber(broker_host="localhost", topic="notifications", handler=handler)
        # Attach to this loop without connecting anywhere
        subscriber._loop = asyncio.get_running_loop()

        message = SimpleNamespace(topic="notifications", payload=b'{"tag_id": "t", "sensor_id": "s"}')
        # paho calls this from its own thread
        await asyncio.to_thread(subscriber._on_message, None, None, message)
        await asyncio.wait_for(done.wait(), timeout=5)
        return subscriber.get_stats()

    stats = asyncio.run(scenario())
    assert received == [("notifications", b'{"tag_id": "t", "sensor_id": "s"}', True)]
    assert stats["messages_received"] == 1
    assert stats["messages_dropped"] == 0
    assert stats["connected"] is False


def test_message_without_loop_is_dropped():
    async def handler(topic, payload):
        raise AssertionError("should not be called")

    subscriber = MessageSubscriber(broker_host="localhost", topic="notifications", handler=handler)
    subscriber._on_message(None, None, SimpleNamespace(topic="notifications", payload=b"{}"))

    assert subscriber.get_stats()["messages_dropped"] == 1
