"""Feed service - logs in to an Elektron server and logs the configured items."""

import asyncio
import logging
import os
import signal
import sys
from typing import Any, Optional

from .client import ElektronClient
from .config.settings import ClientSettings, load_settings
from .status import StatusCode
from .transport import WebSocketTransport
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


class FeedService:
    """Runs one client session until the connection drops or a signal arrives."""

    def __init__(self, settings: ClientSettings):
        self.settings = settings
        self.client: Optional[ElektronClient] = None
        self._shutdown_event = asyncio.Event()

    def build_client(self) -> ElektronClient:
        connection = self.settings.connection
        client = ElektronClient(
            transport_factory=self._transport_factory,
            clear_state_on_disconnect=self.settings.session.clear_state_on_disconnect,
        )
        client.on_status(self._on_status)
        client.on_market_data(self._on_market_data)
        client.on_news(self._on_news)
        self.client = client
        logger.info(f"Feed client created for {connection.server}")
        return client

    def _transport_factory(self, **callbacks):
        connection = self.settings.connection
        return WebSocketTransport(
            subprotocol=connection.subprotocol,
            path=connection.path,
            **callbacks,
        )

    async def start(self):
        """Connect and wait until shutdown is requested or the server disconnects."""
        connection = self.settings.connection
        client = self.client or self.build_client()

        self._setup_signal_handlers()
        client.connect(
            connection.server,
            connection.user,
            connection.application_id,
            connection.position,
        )

        await self._shutdown_event.wait()

        logger.info("Shutting down feed service")
        if client.logged_in:
            client.close_all_requests()
        client.disconnect()
        await client.wait_closed()
        logger.info(f"Feed service stopped: {client.get_stats()}")

    def stop(self):
        self._shutdown_event.set()

    def _setup_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._handle_signal, signum)
            except NotImplementedError:
                # Windows event loops have no signal support
                signal.signal(signum, lambda s, f: self._handle_signal(s))

    def _handle_signal(self, signum):
        logger.info(f"Received signal {signum}, initiating shutdown")
        self.stop()

    def _subscribe(self):
        subs = self.settings.subscriptions
        if subs.items:
            self.client.request_data(
                subs.items,
                domain=subs.domain,
                service=subs.service,
                streaming=subs.streaming,
                view=subs.view,
            )
        if subs.news_items:
            self.client.request_news(subs.news_items, subs.news_service)

    def _on_status(self, code: StatusCode, payload: Any = None):
        if code == StatusCode.LOGIN_RESPONSE:
            if self.client.logged_in:
                logger.info("Login accepted")
                self._subscribe()
            else:
                logger.error(f"Login rejected: {payload.get('State')}")
        elif code == StatusCode.DISCONNECTED:
            logger.warning("Connection closed")
            self.stop()
        elif code == StatusCode.PROCESSING_ERROR:
            logger.error(f"Processing error: {payload}")
        elif code in (StatusCode.MSG_STATUS, StatusCode.MSG_ERROR):
            logger.warning(f"{code.name}: {payload}")
        else:
            logger.info(f"Status {code.name}")

    def _on_market_data(self, message: dict):
        logger.info(
            f"{message.get('Type')} {message.get('Key', {}).get('Name')} (stream {message.get('ID')})",
            extra={'fields': message.get('Fields')},
        )

    def _on_news(self, name: str, story: Any):
        logger.info(f"{name} story received", extra={'story': story})


async def main():
    """Main entry point."""
    config_file = os.getenv("CONFIG_FILE", "config/local.yaml")
    settings = load_settings(config_file if os.path.exists(config_file) else None)
    setup_logging(settings.logging, settings.service_name)

    service = FeedService(settings)
    try:
        await service.start()
    except Exception as e:
        logger.error(f"Service failed: {e}", exc_info=True)
        sys.exit(1)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
