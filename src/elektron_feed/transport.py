"""WebSocket transport delivering raw text frames to the session."""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .exceptions import TransportError
from .status import WS_PATH, WS_SUBPROTOCOL

logger = logging.getLogger(__name__)


class WebSocketTransport:
    """
    Event-driven wrapper around a ``websockets`` client connection.

    ``open`` schedules the connection on the running event loop and returns
    immediately. The owner is told what happens through three callbacks:
    ``on_open()``, ``on_message(text)`` and ``on_close()``. ``on_close``
    fires exactly once per ``open``, including when the connection attempt
    itself fails.

    ``send`` never blocks: frames are queued and written in order by a
    writer task.
    """

    def __init__(self, on_open: Callable[[], None], on_message: Callable[[Any], None],
                 on_close: Callable[[], None], subprotocol: str = WS_SUBPROTOCOL,
                 path: str = WS_PATH, scheme: str = "ws",
                 ping_interval: Optional[float] = 20, close_timeout: float = 10):
        self._on_open = on_open
        self._on_message = on_message
        self._on_close = on_close
        self.subprotocol = subprotocol
        self.path = path
        self.scheme = scheme
        self.ping_interval = ping_interval
        self.close_timeout = close_timeout

        self.websocket = None
        self._task: Optional[asyncio.Task] = None
        self._outbound: Optional[asyncio.Queue] = None
        self._close_fired = True

        self.stats = {
            'connection_count': 0,
            'frames_received': 0,
            'frames_sent': 0,
            'last_message_time': None,
        }

    @property
    def is_open(self) -> bool:
        return self.websocket is not None

    def build_url(self, address: str) -> str:
        return f"{self.scheme}://{address}{self.path}"

    def open(self, address: str):
        """Start connecting to ``address`` (``host:port``)."""
        if self._task is not None and not self._task.done():
            raise TransportError("Transport is already open")

        url = self.build_url(address)
        self._outbound = asyncio.Queue()
        self._close_fired = False
        self._task = asyncio.get_running_loop().create_task(self._run(url))
        # A task cancelled before its first step never reaches _run's finally
        self._task.add_done_callback(lambda task: self._finish())

    def send(self, text: str):
        if self.websocket is None:
            logger.warning("Transport not connected, dropping outbound frame")
            return
        self._outbound.put_nowait(text)

    def close(self):
        """Request closure; ``on_close`` fires once the connection is gone."""
        if self.websocket is not None:
            asyncio.get_running_loop().create_task(self.websocket.close())
        elif self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self):
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self, url: str):
        logger.info(f"Connecting to {url} ({self.subprotocol})")
        try:
            async with websockets.connect(
                url,
                subprotocols=[self.subprotocol],
                ping_interval=self.ping_interval,
                close_timeout=self.close_timeout,
            ) as websocket:
                self.websocket = websocket
                self.stats['connection_count'] += 1
                logger.info(f"Connected to {url}")

                writer = asyncio.create_task(self._write_loop(websocket))
                try:
                    self._fire(self._on_open)
                    async for raw in websocket:
                        self.stats['frames_received'] += 1
                        self.stats['last_message_time'] = time.time()
                        self._fire(self._on_message, raw)
                except ConnectionClosed as e:
                    logger.warning(f"WebSocket connection closed by server: {e}")
                finally:
                    writer.cancel()
                    try:
                        await writer
                    except asyncio.CancelledError:
                        pass

        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.error(f"WebSocket connection to {url} failed: {e}")
        finally:
            logger.info(f"Disconnected from {url}")
            self._finish()

    def _finish(self):
        self.websocket = None
        if not self._close_fired:
            self._close_fired = True
            self._fire(self._on_close)

    async def _write_loop(self, websocket):
        while True:
            text = await self._outbound.get()
            try:
                await websocket.send(text)
                self.stats['frames_sent'] += 1
            except ConnectionClosed:
                logger.warning("Connection closed while sending, dropping remaining frames")
                return

    def _fire(self, callback: Callable, *args):
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Transport event handler {getattr(callback, '__name__', callback)} failed: {e}",
                         exc_info=True)

    def get_stats(self) -> Dict[str, Any]:
        return {**self.stats, 'is_connected': self.is_open}
