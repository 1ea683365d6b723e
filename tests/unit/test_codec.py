"""Tests for the JSON / MRN codec."""

import base64
import binascii
import zlib

import pytest

from elektron_feed.codec import JsonCodec

from conftest import compress_story


class TestJsonCodec:

    def test_serialize_is_compact(self):
        codec = JsonCodec()

        assert codec.serialize({"ID": 1, "Type": "Close"}) == '{"ID":1,"Type":"Close"}'

    def test_decode_base64_rejects_garbage(self):
        with pytest.raises(binascii.Error):
            JsonCodec().decode_base64("@@@")

    def test_parse_story_zlib_and_gzip(self):
        codec = JsonCodec()
        story = {"headline": "Fed holds rates", "subjects": ["N2:US"]}

        assert codec.parse_story(compress_story(story)) == story
        assert codec.parse_story(compress_story(story, gzip_header=True)) == story

    def test_parse_story_round_trips_base64_fragment(self):
        codec = JsonCodec()
        payload = compress_story({"id": "abc"})
        text = base64.b64encode(payload).decode("ascii")

        assert codec.parse_story(codec.decode_base64(text)) == {"id": "abc"}

    def test_inflate_rejects_uncompressed(self):
        with pytest.raises(zlib.error):
            JsonCodec().inflate(b"plain text")
