"""Tests for the feed service entry point."""

import asyncio

import pytest

from elektron_feed.config.settings import SubscriptionConfig
from elektron_feed.main import FeedService
from elektron_feed.transport import WebSocketTransport

from conftest import FakeTransport, login_response


@pytest.fixture
def service(test_settings):
    test_settings.subscriptions = SubscriptionConfig(
        items=["TRI.N", "AAPL.O"],
        view=["BID", "ASK"],
        news_items=["MRN_STORY"],
        news_service="ELEKTRON_DD",
    )
    service = FeedService(test_settings)
    service._transport_factory = FakeTransport
    return service


class TestFeedService:

    def test_default_transport_uses_configured_subprotocol(self, test_settings):
        transport = FeedService(test_settings)._transport_factory(
            on_open=lambda: None, on_message=lambda raw: None, on_close=lambda: None,
        )

        assert isinstance(transport, WebSocketTransport)
        assert transport.subprotocol == "tr_json2"
        assert transport.path == "/WebSocket"

    def test_subscribes_after_login(self, service):
        client = service.build_client()
        client.connect("localhost:15000", "tester")
        client.transport.on_open()

        client.transport.deliver(login_response("Ok"))

        sent = client.transport.messages()
        assert sent[0]["Domain"] == "Login"
        assert sent[1]["Key"] == {"Name": ["TRI.N", "AAPL.O"]}
        assert sent[1]["View"] == ["BID", "ASK"]
        assert sent[2]["Domain"] == "NewsTextAnalytics"
        assert sent[2]["Key"] == {"Name": ["MRN_STORY"], "Service": "ELEKTRON_DD"}
        assert len(client.open_ids()) == 3

    def test_rejected_login_does_not_subscribe(self, service):
        client = service.build_client()
        client.connect("localhost:15000", "tester")
        client.transport.on_open()

        client.transport.deliver(login_response("Suspect"))

        assert len(client.transport.sent) == 1

    @pytest.mark.asyncio
    async def test_start_returns_when_connection_drops(self, service):
        task = asyncio.create_task(service.start())
        await asyncio.sleep(0)

        client = service.client
        assert client.transport.address == "localhost:15000"
        client.transport.on_open()
        client.transport.deliver(login_response("Ok"))
        client.transport.on_close()

        await asyncio.wait_for(task, timeout=1)

        assert client.logged_in is False
