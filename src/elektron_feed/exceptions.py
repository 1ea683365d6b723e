"""Exception types raised inside the feed client."""


class FeedError(Exception):
    """Base class for all feed client errors."""


class TransportError(FeedError):
    """The websocket transport was used in a state that does not allow it."""


class ProtocolParseError(FeedError):
    """An inbound frame could not be interpreted as a batch of messages."""


class FragmentProcessingError(FeedError):
    """A news envelope fragment could not be reassembled or decoded."""


class OrphanFragmentError(FragmentProcessingError):
    """A continuation fragment arrived for a story with no open envelope."""

    def __init__(self, key: str):
        super().__init__(f"No envelope open for fragment key {key}")
        self.key = key
