"""Status codes and protocol constants for the Elektron WebSocket API."""

from enum import Enum, IntEnum


class StatusCode(IntEnum):
    """Codes passed as the first argument of the status observer."""
    PROCESSING_ERROR = 0
    CONNECTED = 1
    DISCONNECTED = 2
    LOGIN_RESPONSE = 3
    MSG_STATUS = 4
    MSG_ERROR = 5


class SessionState(Enum):
    """Lifecycle states of a connection session."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    LOGGING_IN = "logging_in"
    ACTIVE = "active"


# Stream id 0 is reserved for the login stream
LOGIN_STREAM_ID = 0

LOGIN_DOMAIN = "Login"
MARKET_PRICE_DOMAIN = "MarketPrice"
NEWS_DOMAIN = "NewsTextAnalytics"

DEFAULT_APPLICATION_ID = "256"
DEFAULT_POSITION = "127.0.0.1"

WS_SUBPROTOCOL = "tr_json2"
WS_PATH = "/WebSocket"

# Machine Readable News content sets
MRN_STORY = "MRN_STORY"
MRN_TRNA = "MRN_TRNA"
MRN_TRNA_DOC = "MRN_TRNA_DOC"
MRN_TRSI = "MRN_TRSI"
