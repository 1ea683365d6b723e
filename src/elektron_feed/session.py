"""Connection lifecycle: open, login, keep-alive and closure."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .codec import JsonCodec
from .fragments import FragmentAssembler
from .observers import Observers
from .registry import SubscriptionRegistry
from .router import MessageRouter
from .status import (
    DEFAULT_APPLICATION_ID,
    DEFAULT_POSITION,
    LOGIN_DOMAIN,
    LOGIN_STREAM_ID,
    SessionState,
    StatusCode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginParameters:
    """DACS login details sent on stream 0."""
    user: str
    application_id: str = DEFAULT_APPLICATION_ID
    position: str = DEFAULT_POSITION


class ConnectionSession:
    """
    Drives one connection through Disconnected -> Connecting -> LoggingIn ->
    Active and back to Disconnected when the transport closes.

    The session answers server pings and records login responses. A rejected
    login leaves the session in LoggingIn; nothing is retried and nothing
    times out.
    """

    def __init__(self, registry: SubscriptionRegistry, assembler: FragmentAssembler,
                 observers: Observers, codec: Optional[JsonCodec] = None,
                 clear_state_on_disconnect: bool = False):
        self.registry = registry
        self.assembler = assembler
        self.observers = observers
        self.codec = codec or JsonCodec()
        self.clear_state_on_disconnect = clear_state_on_disconnect
        self.router = MessageRouter(self, registry, observers, self.codec)

        self.transport = None
        self.login: Optional[LoginParameters] = None
        self._state = SessionState.DISCONNECTED
        self._logged_in = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def logged_in(self) -> bool:
        return self._logged_in

    def _set_state(self, state: SessionState):
        if state is not self._state:
            logger.info(f"Session state {self._state.value} -> {state.value}")
            self._state = state

    def connect(self, transport, address: str, login: LoginParameters):
        """Open ``transport`` to ``address`` and remember the login details."""
        self.transport = transport
        self.login = login
        self._logged_in = False
        self._set_state(SessionState.CONNECTING)
        logger.info(f"Connecting to {address} as {login.user}")
        transport.open(address)

    def close(self):
        if self.transport is not None:
            self.transport.close()

    def send(self, message: Dict[str, Any]):
        if self.transport is None:
            logger.warning(f"No transport, dropping outbound {message.get('Type', 'request')}")
            return
        self.transport.send(self.codec.serialize(message))

    # Transport events

    def handle_open(self):
        self.observers.notify_status(StatusCode.CONNECTED)
        self._send_login()
        self._set_state(SessionState.LOGGING_IN)

    def handle_message(self, raw: Any):
        self.router.dispatch_frame(raw)

    def handle_close(self):
        self._logged_in = False
        self._set_state(SessionState.DISCONNECTED)

        if self.clear_state_on_disconnect:
            logger.info(
                f"Clearing {len(self.registry)} subscriptions and "
                f"{len(self.assembler)} pending envelopes on disconnect"
            )
            self.registry.clear()
            self.assembler.clear()

        self.observers.notify_status(StatusCode.DISCONNECTED)

    # Called by the router

    def record_login_response(self, message: Dict[str, Any]):
        state = message.get('State')
        self._logged_in = isinstance(state, dict) and state.get('Data') == 'Ok'

        if self._logged_in:
            self._set_state(SessionState.ACTIVE)
        else:
            logger.warning(f"Login not accepted: {state}")
            self._set_state(SessionState.LOGGING_IN)

    def send_pong(self):
        self.send({'Type': 'Pong'})

    def _send_login(self):
        login = self.login
        self.send({
            'ID': LOGIN_STREAM_ID,
            'Domain': LOGIN_DOMAIN,
            'Key': {
                'Name': login.user,
                'Elements': {
                    'ApplicationId': login.application_id,
                    'Position': login.position,
                },
            },
        })
