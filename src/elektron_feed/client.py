"""Public client for the Elektron WebSocket API."""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .codec import JsonCodec
from .fragments import FragmentAssembler, fragment_key
from .observers import Observers
from .registry import Items, MessageCallback, SubscriptionRegistry, item_key
from .session import ConnectionSession, LoginParameters
from .status import (
    DEFAULT_APPLICATION_ID,
    DEFAULT_POSITION,
    MARKET_PRICE_DOMAIN,
    NEWS_DOMAIN,
    SessionState,
    StatusCode,
)
from .transport import WebSocketTransport

logger = logging.getLogger(__name__)


class ElektronClient:
    """
    Connects to an Elektron WebSocket server, logs in and manages item
    subscriptions.

    All state lives on the instance. Every method is synchronous and must be
    called from the event loop the transport runs on.

    Example::

        client = ElektronClient()
        client.on_status(lambda code, msg: print(code, msg))
        client.on_market_data(print)
        client.connect("ads:15000", "user")
        # once client.logged_in:
        client.request_data(["TRI.N", "AAPL.O"], view=["BID", "ASK"])
    """

    def __init__(self, transport_factory: Optional[Callable[..., Any]] = None,
                 codec: Optional[JsonCodec] = None,
                 clear_state_on_disconnect: bool = False):
        self.codec = codec or JsonCodec()
        self.registry = SubscriptionRegistry()
        self.assembler = FragmentAssembler()
        self.observers = Observers()
        self.session = ConnectionSession(
            self.registry,
            self.assembler,
            self.observers,
            self.codec,
            clear_state_on_disconnect=clear_state_on_disconnect,
        )
        self._transport_factory = transport_factory or WebSocketTransport
        self.transport = None

        self.stats = {
            'news_stories': 0,
            'news_errors': 0,
        }

    # Connection

    def connect(self, server: str, user: str, app_id: str = DEFAULT_APPLICATION_ID,
                position: str = DEFAULT_POSITION) -> 'ElektronClient':
        """
        Start an asynchronous connection; login is issued once it opens.

        Args:
            server: Address of the server as ``hostname:port``
            user: DACS user name
            app_id: DACS application id
            position: DACS position
        """
        self.transport = self._transport_factory(
            on_open=self.session.handle_open,
            on_message=self.session.handle_message,
            on_close=self.session.handle_close,
        )
        self.session.connect(self.transport, server, LoginParameters(user, app_id, position))
        return self

    def disconnect(self) -> 'ElektronClient':
        self.session.close()
        return self

    async def wait_closed(self):
        if self.transport is not None:
            await self.transport.wait_closed()

    @property
    def logged_in(self) -> bool:
        return self.session.logged_in

    @property
    def state(self) -> SessionState:
        return self.session.state

    # Requests

    def request_data(self, items: Items, *, domain: str = MARKET_PRICE_DOMAIN,
                     service: Optional[str] = None, streaming: Optional[bool] = None,
                     view: Optional[Sequence[str]] = None,
                     callback: Optional[MessageCallback] = None) -> Optional[int]:
        """
        Request one item or a batch of items.

        Args:
            items: Item name (``'TRI.N'``) or list of names (``['TRI.N', 'AAPL.O']``)
            domain: Domain model of the request
            service: Service providing the data; server default when omitted
            streaming: False for a snapshot; streaming when omitted
            view: Field names to retrieve; all fields when omitted
            callback: Handler for the item's messages; defaults to the market
                data observer registered at the time of the call

        Returns:
            Stream id of the request, or None when not logged in
        """
        if not self.logged_in:
            logger.debug(f"Not logged in, ignoring request for {items}")
            return None

        if not callable(callback):
            callback = self.observers.market_data

        stream_id = self.registry.allocate(items, domain, callback)

        name = items if isinstance(items, str) else list(items)
        request: Dict[str, Any] = {
            'ID': stream_id,
            'Domain': domain,
            'Key': {'Name': name},
        }
        if isinstance(service, str):
            request['Key']['Service'] = service
        if isinstance(streaming, bool):
            request['Streaming'] = streaming
        if isinstance(view, (list, tuple)):
            request['View'] = list(view)

        self.session.send(request)
        return stream_id

    def request_news(self, items: Items, service_name: Optional[str] = None) -> Optional[int]:
        """
        Request an MRN content set (MRN_STORY, MRN_TRNA, MRN_TRNA_DOC or
        MRN_TRSI). Completed stories go to the news observer.
        """
        return self.request_data(
            items,
            domain=NEWS_DOMAIN,
            service=service_name,
            callback=self._process_news_envelope,
        )

    def close_request(self, items: Items, domain: str = MARKET_PRICE_DOMAIN) -> 'ElektronClient':
        """
        Close the streams of one item or a batch of items.

        Items that are not open still contribute NOT_FOUND to the close
        message.
        """
        names = [items] if isinstance(items, str) else list(items)
        ids = [self.registry.release(item_key(name, domain)) for name in names]
        self._send_close(ids)
        return self

    def close_all_requests(self) -> 'ElektronClient':
        ids = self.registry.open_ids()
        if not ids:
            logger.debug("No open streams to close")
            return self

        for stream_id in ids:
            self.registry.release_by_id(stream_id)
        self._send_close(ids)
        return self

    def _send_close(self, ids: List[int]):
        self.session.send({
            'ID': ids[0] if len(ids) == 1 else ids,
            'Type': 'Close',
        })

    def open_ids(self) -> List[int]:
        return self.registry.open_ids()

    # Observers

    def on_status(self, handler: Callable[[StatusCode, Any], None]) -> 'ElektronClient':
        self.observers.register('status', handler)
        return self

    def on_market_data(self, handler: Callable[[dict], None]) -> 'ElektronClient':
        self.observers.register('market_data', handler)
        return self

    def on_news(self, handler: Callable[[str, Any], None]) -> 'ElektronClient':
        self.observers.register('news', handler)
        return self

    # News envelopes

    def _process_news_envelope(self, message: Dict[str, Any]):
        """Reassemble MRN fragments and hand completed stories to the news observer."""
        if message.get('Type') != 'Update' or message.get('Domain') != NEWS_DOMAIN:
            return

        key = None
        try:
            name = message['Key']['Name']
            fields = message['Fields']
            key = fragment_key(name, fields['MRN_SRC'], fields['GUID'])

            fragment = self.codec.decode_base64(fields['FRAGMENT'])
            frag_num = fields.get('FRAG_NUM') or 1
            total_size = fields.get('TOT_SIZE', len(fragment))

            payload = self.assembler.ingest(key, fragment, frag_num <= 1, total_size)
            if payload is None:
                return

            story = self.codec.parse_story(payload)
            self.stats['news_stories'] += 1
            self.observers.notify_news(name, story)

        except Exception as e:
            self.stats['news_errors'] += 1
            if key is not None:
                self.assembler.discard(key)
            logger.error(f"Failed to process news envelope {key}: {e}", exc_info=True)
            self.observers.notify_status(StatusCode.PROCESSING_ERROR, str(e))

    def get_stats(self) -> Dict[str, Any]:
        stats = {
            **self.stats,
            **self.session.router.get_stats(),
            'state': self.state.value,
            'logged_in': self.logged_in,
            'open_streams': len(self.registry),
            'pending_envelopes': len(self.assembler),
        }
        if self.transport is not None and hasattr(self.transport, 'get_stats'):
            stats['transport'] = self.transport.get_stats()
        return stats
