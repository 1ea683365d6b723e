"""Pytest configuration and shared fixtures."""

import base64
import json
import zlib
from typing import Any, Dict, List

import pytest

from elektron_feed.client import ElektronClient
from elektron_feed.config.settings import ClientSettings, ConnectionConfig, LoggingConfig


class FakeTransport:
    """In-memory transport; tests drive the open/message/close events."""

    def __init__(self, on_open, on_message, on_close, **kwargs):
        self.on_open = on_open
        self.on_message = on_message
        self.on_close = on_close
        self.address = None
        self.sent: List[str] = []
        self.closed = False

    def open(self, address):
        self.address = address

    def send(self, text):
        self.sent.append(text)

    def close(self):
        self.closed = True
        self.on_close()

    async def wait_closed(self):
        return None

    def messages(self) -> List[Dict[str, Any]]:
        return [json.loads(text) for text in self.sent]

    def deliver(self, *messages):
        """Deliver messages as one batch frame."""
        self.on_message(json.dumps(list(messages)))


class StatusRecorder:
    """Collects (code, payload) pairs from the status observer."""

    def __init__(self):
        self.events = []

    def __call__(self, code, payload=None):
        self.events.append((code, payload))

    @property
    def codes(self):
        return [code for code, _ in self.events]


@pytest.fixture
def status_recorder() -> StatusRecorder:
    return StatusRecorder()


@pytest.fixture
def client(status_recorder) -> ElektronClient:
    """Client wired to a FakeTransport with a status recorder attached."""
    client = ElektronClient(transport_factory=FakeTransport)
    client.on_status(status_recorder)
    return client


@pytest.fixture
def connected_client(client) -> ElektronClient:
    """Client whose transport has opened but has not yet been logged in."""
    client.connect("ads:15000", "user")
    client.transport.on_open()
    return client


@pytest.fixture
def logged_in_client(connected_client) -> ElektronClient:
    """Client that has completed the login handshake."""
    connected_client.transport.deliver(login_response("Ok"))
    connected_client.transport.sent.clear()
    return connected_client


@pytest.fixture
def test_settings() -> ClientSettings:
    return ClientSettings(
        service_name="test-feed",
        environment="local",
        connection=ConnectionConfig(server="localhost:15000", user="tester"),
        logging=LoggingConfig(level="DEBUG", format="text"),
    )


def login_response(data: str = "Ok") -> Dict[str, Any]:
    return {
        "ID": 0,
        "Type": "Refresh",
        "Domain": "Login",
        "Key": {"Name": "user", "Elements": {}},
        "State": {"Stream": "Open", "Data": data},
    }


def compress_story(story: Dict[str, Any], gzip_header: bool = False) -> bytes:
    raw = json.dumps(story).encode("utf-8")
    if gzip_header:
        compressor = zlib.compressobj(wbits=zlib.MAX_WBITS | 16)
        return compressor.compress(raw) + compressor.flush()
    return zlib.compress(raw)


def mrn_update(stream_id: int, fragment: bytes, frag_num: int, total_size: int,
               guid: str = "guid-1", name: str = "MRN_STORY", source: str = "HDL") -> Dict[str, Any]:
    """Build an MRN Update message carrying one fragment."""
    return {
        "ID": stream_id,
        "Type": "Update",
        "Domain": "NewsTextAnalytics",
        "Key": {"Name": name, "Service": "ELEKTRON_DD"},
        "Fields": {
            "FRAGMENT": base64.b64encode(fragment).decode("ascii"),
            "FRAG_NUM": frag_num,
            "TOT_SIZE": total_size,
            "MRN_SRC": source,
            "GUID": guid,
        },
    }
