"""Classification and dispatch of inbound Elektron messages."""

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from .codec import JsonCodec
from .exceptions import ProtocolParseError
from .observers import Observers
from .registry import SubscriptionRegistry
from .status import LOGIN_DOMAIN, StatusCode

if TYPE_CHECKING:
    from .session import ConnectionSession

logger = logging.getLogger(__name__)


def _stream_state(message: dict) -> Optional[str]:
    state = message.get('State')
    if isinstance(state, dict):
        return state.get('Stream')
    return None


class MessageRouter:
    """
    Routes each message of an inbound frame to the session, the registry or
    an observer.

    A frame is one fault boundary: the first exception raised while handling
    a message stops the rest of that frame and is reported once as a
    processing error. The next frame starts clean.
    """

    def __init__(self, session: 'ConnectionSession', registry: SubscriptionRegistry,
                 observers: Observers, codec: JsonCodec):
        self.session = session
        self.registry = registry
        self.observers = observers
        self.codec = codec

        self.stats = {
            'frames_received': 0,
            'messages_dispatched': 0,
            'processing_errors': 0,
            'last_message_time': None,
        }

    def dispatch_frame(self, raw: Any):
        """Decode one transport frame and dispatch its messages in order."""
        if not isinstance(raw, str) or not raw:
            logger.debug(f"Ignoring empty or non-text frame: {type(raw).__name__}")
            return

        self.stats['frames_received'] += 1
        self.stats['last_message_time'] = time.time()

        try:
            batch = self.codec.parse(raw)
            if isinstance(batch, dict):
                batch = [batch]
            elif not isinstance(batch, list):
                raise ProtocolParseError(f"Expected a JSON array of messages, got {type(batch).__name__}")

            for message in batch:
                if not isinstance(message, dict):
                    raise ProtocolParseError(f"Expected a JSON object, got {type(message).__name__}")
                self.dispatch(message)

        except Exception as e:
            self.stats['processing_errors'] += 1
            logger.error(f"Failed to process frame: {e}", exc_info=True)
            logger.debug(f"Raw frame: {raw[:200]}...")
            self.observers.notify_status(StatusCode.PROCESSING_ERROR, str(e))

    def dispatch(self, message: Dict[str, Any]):
        """Classify one message; the first matching rule wins."""
        self.stats['messages_dispatched'] += 1
        msg_type = message.get('Type')

        if msg_type == 'Ping':
            self.session.send_pong()

        elif message.get('Domain') == LOGIN_DOMAIN:
            self.session.record_login_response(message)
            self.observers.notify_status(StatusCode.LOGIN_RESPONSE, message)

        elif msg_type == 'Status':
            if _stream_state(message) == 'Closed':
                released = self.registry.release_by_id(message.get('ID'))
                logger.info(f"Stream {message.get('ID')} closed by server (released={released})")
            self.observers.notify_status(StatusCode.MSG_STATUS, message)

        elif msg_type == 'Error':
            logger.warning(f"Server reported error: {message.get('Text')}")
            self.observers.notify_status(StatusCode.MSG_ERROR, message)

        else:
            self._dispatch_data(message)

    def _dispatch_data(self, message: Dict[str, Any]):
        stream_id = message.get('ID')
        callback = self.registry.resolve(stream_id)

        # Snapshots close themselves after the refresh
        if message.get('Type') == 'Refresh' and _stream_state(message) == 'NonStreaming':
            self.registry.release_by_id(stream_id)

        if callback is not None:
            callback(message)
        else:
            logger.debug(f"No handler for stream {stream_id}, dropping {message.get('Type')}")

    def get_stats(self) -> Dict[str, Any]:
        return dict(self.stats)
