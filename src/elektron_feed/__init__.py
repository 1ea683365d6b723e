"""
Elektron Feed - asyncio client for the Elektron WebSocket API.

Handles login, keep-alive, item subscriptions and reassembly of
Machine Readable News envelopes.
"""

from .client import ElektronClient
from .registry import NOT_FOUND
from .status import SessionState, StatusCode

__version__ = "1.0.0"

__all__ = ["ElektronClient", "NOT_FOUND", "SessionState", "StatusCode"]
