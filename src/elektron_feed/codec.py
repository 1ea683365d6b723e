"""Text codec used by the client: JSON framing plus MRN fragment decoding."""

import base64
import json
import zlib
from typing import Any


class JsonCodec:
    """
    Encodes outbound requests and decodes inbound frames.

    Elektron sends JSON arrays of messages. MRN fragments are base64 text
    wrapping a zlib or gzip stream of a UTF-8 JSON document.
    """

    def decode_base64(self, text: str) -> bytes:
        """Decode base64 text, rejecting characters outside the alphabet."""
        return base64.b64decode(text, validate=True)

    def inflate(self, data: bytes) -> bytes:
        """Decompress a zlib or gzip stream (header is auto-detected)."""
        return zlib.decompress(data, zlib.MAX_WBITS | 32)

    def parse(self, text: str) -> Any:
        return json.loads(text)

    def serialize(self, message: Any) -> str:
        return json.dumps(message, separators=(',', ':'))

    def parse_story(self, data: bytes) -> Any:
        """Inflate and parse a completed news envelope."""
        return self.parse(self.inflate(data).decode('utf-8'))
