"""
Tests for the notification hub
"""

import pytest

from boapay.notifications import MessageType, NotificationHub, build_message


class FakeConnection:
    """Records everything sent to it"""

    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)


class BrokenConnection:
    """A client that went away without closing"""

    async def send_json(self, data):
        raise RuntimeError("socket closed")


class TestBuildMessage:
    """Test message envelopes"""

    def test_without_data(self):
        message = build_message(MessageType.INFO, "hello")

        assert message["type"] == "info"
        assert message["message"] == "hello"
        assert "timestamp" in message
        assert "data" not in message

    def test_with_data(self):
        message = build_message(MessageType.NOTIFICATION, "Transfer received", {"amount": "40.00"})
        assert message["data"] == {"amount": "40.00"}


class TestNotificationHub:
    """Test connection tracking and broadcast"""

    def setup_method(self):
        """Set up test fixtures"""
        self.hub = NotificationHub()

    @pytest.mark.asyncio
    async def test_connect_sends_greeting(self):
        connection = FakeConnection()

        await self.hub.connect(connection)

        assert self.hub.connection_count == 1
        assert connection.sent[0]["type"] == "info"
        assert connection.sent[0]["message"] == "Connected to Boapay notifications"

    @pytest.mark.asyncio
    async def test_echo(self):
        connection = FakeConnection()
        await self.hub.connect(connection)

        await self.hub.echo(connection, "ping")

        assert connection.sent[-1]["type"] == "echo"
        assert connection.sent[-1]["message"] == "Echo: ping"

    @pytest.mark.asyncio
    async def test_broadcast_reaches_every_connection(self):
        first, second = FakeConnection(), FakeConnection()
        await self.hub.connect(first)
        await self.hub.connect(second)

        delivered = await self.hub.broadcast("Maintenance tonight", data={"from": "admin"})

        assert delivered == 2
        for connection in (first, second):
            assert connection.sent[-1]["type"] == "notification"
            assert connection.sent[-1]["data"] == {"from": "admin"}

    @pytest.mark.asyncio
    async def test_failed_connection_is_dropped(self):
        """One dead client does not stop delivery to the others"""
        healthy = FakeConnection()
        await self.hub.connect(healthy)
        await self.hub.connect(BrokenConnection())

        assert self.hub.connection_count == 1

        self.hub._connections.add(BrokenConnection())
        delivered = await self.hub.broadcast("hello")

        assert delivered == 1
        assert self.hub.connection_count == 1
        assert healthy.sent[-1]["message"] == "hello"

    @pytest.mark.asyncio
    async def test_disconnect(self):
        connection = FakeConnection()
        await self.hub.connect(connection)

        await self.hub.disconnect(connection)
        await self.hub.disconnect(connection)

        assert self.hub.connection_count == 0
        assert await self.hub.broadcast("nobody listening") == 0
