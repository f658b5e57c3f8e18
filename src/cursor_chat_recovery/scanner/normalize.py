"""Message extraction and normalization for Cursor chat payloads.

Payloads carry their messages under different field names depending on the
Cursor version. Field precedence is expressed as ordered tables of
(field name, extractor) pairs; the first extractor returning a value wins.
"""

import logging
import math
import time
from collections.abc import Callable
from datetime import datetime, timezone

from .models import JSONValue, NormalizedMessage
from .validation import is_numeric_key_object

logger = logging.getLogger(__name__)

# Fields probed for the message array, in priority order.
MESSAGE_ARRAY_FIELDS = ("messages", "chunks", "parts", "conversation")

# Fields that indicate a payload needs no further unwrapping.
COLLECTION_FIELDS = (*MESSAGE_ARRAY_FIELDS, "entries")

ROLE_ALIASES = {
    "user": "user",
    "human": "user",
    "assistant": "assistant",
    "ai": "assistant",
    "bot": "assistant",
    "copilot": "assistant",
    "model": "assistant",
    "system": "system",
}

# Cursor's authorKind enum
AUTHOR_KIND_ROLES = {1: "user", 2: "assistant"}


def _string_field(value: JSONValue) -> str | None:
    return value if isinstance(value, str) else None


def _joined_string_parts(value: JSONValue) -> str | None:
    if not isinstance(value, list):
        return None
    return "\n".join(part for part in value if isinstance(part, str))


def _role_name(value: JSONValue) -> str | None:
    if not isinstance(value, str):
        return None
    return ROLE_ALIASES.get(value.strip().lower())


def _author_kind(value: JSONValue) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return AUTHOR_KIND_ROLES.get(int(value), "system")


def _to_epoch_ms(value: JSONValue) -> int | None:
    """Convert a timestamp field to epoch milliseconds, or None if unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            return int(text)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    return None


# Extractor tables, evaluated in order. For content, the first field present
# with a usable type decides, even if its text turns out to be blank.
CONTENT_EXTRACTORS: tuple[tuple[str, Callable[[JSONValue], str | None]], ...] = (
    ("content", _string_field),
    ("message", _string_field),
    ("parts", _joined_string_parts),
    ("text", _string_field),
)

ROLE_EXTRACTORS: tuple[tuple[str, Callable[[JSONValue], str | None]], ...] = (
    ("role", _role_name),
    ("sender", _role_name),
    ("authorKind", _author_kind),
)

TIMESTAMP_FIELDS = ("timestamp", "createdAt", "createTime", "ts")


def _now_ms() -> int:
    return int(time.time() * 1000)


def extract_message_array(data: JSONValue) -> list:
    """Locate the message collection inside a payload.

    Resolution order:
    1. A list is returned as-is.
    2. The first list among ``messages``, ``chunks``, ``parts``, ``conversation``.
    3. The concatenated ``conversation`` (or ``messages``) lists of ``entries``.
    4. A numeric-key object (Cursor's serialized prompt list) yields its values
       ordered by index.
    5. Otherwise an empty list.
    """
    if isinstance(data, list):
        return data

    if not isinstance(data, dict):
        return []

    for field in MESSAGE_ARRAY_FIELDS:
        value = data.get(field)
        if isinstance(value, list):
            logger.debug("Found %d messages in field %s", len(value), field)
            return value

    entries = data.get("entries")
    if isinstance(entries, list):
        messages = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            if isinstance(entry.get("conversation"), list):
                messages.extend(entry["conversation"])
            elif isinstance(entry.get("messages"), list):
                messages.extend(entry["messages"])
        if messages:
            logger.debug("Extracted %d messages from entries", len(messages))
            return messages

    if is_numeric_key_object(data):
        return [data[key] for key in sorted(data, key=int)]

    logger.debug("No messages found in data structure")
    return []


def resolve_nested(data: JSONValue) -> JSONValue:
    """Unwrap ``chatData`` and generic ``data`` wrappers around the real payload."""
    if not isinstance(data, dict):
        return data

    nested = data.get("chatData")
    if isinstance(nested, dict):
        return resolve_nested(nested)

    if any(isinstance(data.get(field), list) for field in COLLECTION_FIELDS):
        return data

    wrapped = data.get("data")
    if isinstance(wrapped, (dict, list)):
        return resolve_nested(wrapped)

    return data


def _first(candidate: dict, extractors) -> str | None:
    for field, extractor in extractors:
        if field in candidate:
            value = extractor(candidate[field])
            if value is not None:
                return value
    return None


def normalize_message(candidate: JSONValue, now_ms: int | None = None) -> NormalizedMessage | None:
    """Normalize one message candidate.

    Args:
        candidate: A JSON node suspected to be a chat turn.
        now_ms: Timestamp to use when the candidate has none. Defaults to now.

    Returns:
        The normalized message, or None if the candidate has no usable content.
    """
    if not isinstance(candidate, dict):
        return None

    content = _first(candidate, CONTENT_EXTRACTORS)
    if content is None or not content.strip():
        return None

    role = _first(candidate, ROLE_EXTRACTORS) or "user"

    timestamp = None
    for field in TIMESTAMP_FIELDS:
        value = candidate.get(field)
        if value:
            timestamp = _to_epoch_ms(value)
            if timestamp is not None:
                break
    if timestamp is None:
        timestamp = now_ms if now_ms is not None else _now_ms()

    return NormalizedMessage(content=content.strip(), role=role, timestamp=timestamp)


def extract_messages(data: JSONValue, now_ms: int | None = None) -> list[NormalizedMessage]:
    """Extract and normalize every usable message from a payload."""
    if now_ms is None:
        now_ms = _now_ms()

    messages = []
    for candidate in extract_message_array(resolve_nested(data)):
        message = normalize_message(candidate, now_ms=now_ms)
        if message is not None:
            messages.append(message)
    return messages
