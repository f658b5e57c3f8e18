"""Tests for the decoding module."""

import base64
import gzip
import json

import pytest

from cursor_chat_recovery.scanner.decoding import decompress_and_parse, is_compressed_key, maybe_decode

SAMPLE_JSON = json.dumps(
    {
        "messages": [
            {"role": "user", "content": "What is the gzip magic number?"},
            {"role": "assistant", "content": "It is 0x1f 0x8b."},
        ]
    }
)


class TestMaybeDecode:
    """Tests for maybe_decode()."""

    def test_gzip_base64_string_round_trip(self):
        """Test that gzip+base64 text decodes back to the original JSON exactly."""
        encoded = base64.b64encode(gzip.compress(SAMPLE_JSON.encode("utf-8"))).decode("ascii")
        assert maybe_decode(encoded) == SAMPLE_JSON

    def test_gzip_bytes(self):
        """Test that raw gzip bytes are decompressed."""
        assert maybe_decode(gzip.compress(SAMPLE_JSON.encode("utf-8"))) == SAMPLE_JSON

    def test_unicode_round_trip(self):
        """Test that non-ASCII text survives compression."""
        text = json.dumps({"messages": [{"content": "Grüße, 世界"}]}, ensure_ascii=False)
        encoded = base64.b64encode(gzip.compress(text.encode("utf-8"))).decode("ascii")
        assert maybe_decode(encoded) == text

    def test_plain_json_string(self):
        """Test that plain JSON text is returned unchanged."""
        assert maybe_decode(SAMPLE_JSON) == SAMPLE_JSON

    def test_plain_json_bytes(self):
        """Test that UTF-8 JSON bytes are decoded to text."""
        assert maybe_decode(SAMPLE_JSON.encode("utf-8")) == SAMPLE_JSON

    def test_base64_json_string(self):
        """Test that base64-wrapped JSON is unwrapped."""
        encoded = base64.b64encode(SAMPLE_JSON.encode("utf-8")).decode("ascii")
        assert maybe_decode(encoded) == SAMPLE_JSON

    def test_non_json_string_falls_back(self):
        """Test that ordinary text is passed through."""
        assert maybe_decode("hello world") == "hello world"

    def test_base64_lookalike_string_falls_back(self):
        """Test that a short base64-alphabet word that decodes to garbage is returned as-is."""
        assert maybe_decode("abcd") == "abcd"

    def test_corrupt_gzip_does_not_raise(self):
        """Test that a truncated gzip stream falls back to text instead of raising."""
        result = maybe_decode(b"\x1f\x8b\x08\x00garbage")
        assert isinstance(result, str)

    def test_invalid_utf8_bytes_do_not_raise(self):
        """Test that undecodable bytes still produce a string."""
        result = maybe_decode(b"\xff\xfe\xfd{not json")
        assert isinstance(result, str)

    @pytest.mark.parametrize(
        "value",
        [
            SAMPLE_JSON,
            SAMPLE_JSON.encode("utf-8"),
            base64.b64encode(gzip.compress(SAMPLE_JSON.encode("utf-8"))).decode("ascii"),
            "plain text value",
        ],
    )
    def test_idempotent(self, value):
        """Test that decoding the same value twice gives the same text."""
        assert maybe_decode(value) == maybe_decode(value)


class TestIsCompressedKey:
    """Tests for is_compressed_key()."""

    @pytest.mark.parametrize(
        "key",
        [
            "aiService.generations:compressed",
            "composer.compressed.data",
            "chat_gzip",
            "history_compressed",
        ],
    )
    def test_compressed_keys(self, key):
        assert is_compressed_key(key) is True

    def test_plain_key(self):
        assert is_compressed_key("aiService.prompts") is False


class TestDecompressAndParse:
    """Tests for decompress_and_parse()."""

    def test_parses_compressed_json(self):
        """Test that compressed JSON is parsed into Python values."""
        encoded = base64.b64encode(gzip.compress(SAMPLE_JSON.encode("utf-8"))).decode("ascii")
        data = decompress_and_parse(encoded)
        assert data["messages"][1]["content"] == "It is 0x1f 0x8b."

    def test_returns_none_for_non_json(self):
        """Test that undecodable text yields None."""
        assert decompress_and_parse("definitely not json") is None
