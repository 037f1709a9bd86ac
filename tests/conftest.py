import json

import pytest

from hub import Connection, SignalingHub


class FakeConnection(Connection):
    """Records everything the hub sends to it."""

    def __init__(self, name: str = "", fail_sends: bool = False):
        self.name = name
        self.sent = []
        self.open = True
        self.fail_sends = fail_sends

    def __repr__(self):
        return f"FakeConnection({self.name!r})"

    @property
    def is_open(self) -> bool:
        return self.open

    async def send_json(self, message: dict):
        if self.fail_sends:
            raise ConnectionResetError("peer went away")
        self.sent.append(message)

    async def close(self):
        self.open = False

    def types(self):
        return [m["type"] for m in self.sent]

    def clear(self):
        self.sent.clear()


async def send_raw(hub: SignalingHub, connection: FakeConnection, raw):
    """Hand a frame to the hub and wait until everything it queued has been delivered."""
    await hub.handle_message(connection, raw)
    await hub.drain()


async def send(hub: SignalingHub, connection: FakeConnection, **message):
    await send_raw(hub, connection, json.dumps(message))


async def disconnect(hub: SignalingHub, connection: FakeConnection):
    await hub.disconnect(connection)
    await hub.drain()


async def connect_peer(hub: SignalingHub, name: str, **kwargs) -> FakeConnection:
    """Connect and register a peer id equal to `name`."""
    connection = FakeConnection(name, **kwargs)
    hub.connect(connection)
    await send(hub, connection, type="register-id", peerId=name)
    return connection


@pytest.fixture
def hub():
    return SignalingHub(code_generator=lambda: "4821")
