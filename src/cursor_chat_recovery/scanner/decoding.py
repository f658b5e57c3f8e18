"""Decoding of stored values that may be gzip compressed and/or base64 encoded.

Cursor mixes plain JSON text, gzip+base64 and double-encoded values under
similar keys with no tag saying which is which, so every value goes through the
same layered detection. Key names ending in ``:compressed`` are only a hint.
"""

import base64
import binascii
import gzip
import logging
import re
import zlib

import orjson

from ..exceptions import DecodeError
from .models import JSONValue

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+=*$")


def _b64decode(value: str) -> bytes:
    """Decode base64 the lenient way stored values need (invalid chars ignored)."""
    try:
        return base64.b64decode(value, validate=False)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"invalid base64: {e}") from e


def _gunzip(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"invalid gzip stream: {e}") from e


def _looks_like_json(text: str) -> bool:
    stripped = text.strip()
    return bool(stripped) and stripped[0] in "{[" and stripped[-1] in "}]"


def _as_text(value: bytes | str) -> str:
    if isinstance(value, str):
        return value
    return bytes(value).decode("utf-8", errors="replace")


def maybe_decode(value: bytes | str) -> str:
    """Decode a stored value into text.

    Steps, in order:
    1. Strings are base64-decoded to bytes; bytes are used as-is.
    2. Gzip magic bytes -> decompress and return UTF-8 text.
    3. UTF-8 text that looks like a JSON object/array is returned.
    4. A string matching the base64 alphabet (length a multiple of 4) is decoded
       again and returned if the result looks like JSON.
    5. Otherwise the best available string form of the input.

    Never raises.
    """
    try:
        if isinstance(value, (bytes, bytearray, memoryview)):
            data = bytes(value)
        else:
            try:
                data = _b64decode(value)
            except DecodeError:
                data = b""

        if data[:2] == GZIP_MAGIC:
            logger.debug("Detected gzip compressed data (%d bytes)", len(data))
            return _gunzip(data).decode("utf-8", errors="replace")

        try:
            decoded = data.decode("utf-8")
            if _looks_like_json(decoded):
                return decoded
        except UnicodeDecodeError:
            pass

        if isinstance(value, str) and _BASE64_PATTERN.match(value) and len(value) % 4 == 0:
            try:
                decoded = _b64decode(value).decode("utf-8")
                if _looks_like_json(decoded):
                    logger.debug("Decoded base64 data successfully")
                    return decoded
            except (DecodeError, UnicodeDecodeError):
                pass

        return _as_text(value)
    except DecodeError as e:
        logger.debug("Falling back to raw text: %s", e)
        return _as_text(value)


def is_compressed_key(key: str) -> bool:
    """Check whether a storage key name suggests a compressed value."""
    return key.endswith(":compressed") or ".compressed." in key or "_gzip" in key or "_compressed" in key


def decompress_and_parse(value: bytes | str) -> JSONValue | None:
    """Decode a stored value and parse it as JSON, returning None on failure."""
    try:
        return orjson.loads(maybe_decode(value))
    except orjson.JSONDecodeError as e:
        logger.debug("Failed to decompress and parse value: %s", e)
        return None
