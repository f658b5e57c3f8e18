"""Structural checks for decoded chat payloads."""

from .models import JSONValue

# Object keys that mark a payload as a chat collection (compared case-insensitively).
CHAT_COLLECTION_KEYS = frozenset({"messages", "history", "conversations", "prompts"})

# Array-valued fields that mark a payload as a full transcript.
RICH_CHAT_FIELDS = ("messages", "chunks", "parts", "conversation", "entries", "conversations")

# Bare strings at or below this length are stray settings values, not chat data.
MIN_STRING_PAYLOAD_LENGTH = 150


def is_plausible_chat_payload(value: JSONValue) -> bool:
    """Return True if a decoded value could hold chat data.

    - None: rejected
    - list: accepted, empty included
    - dict: accepted when empty, or when a key is one of messages/history/
      conversations/prompts (any case) or a non-negative integer string
    - str: accepted only when longer than 150 characters
    - anything else (numbers, booleans): rejected
    """
    if value is None:
        return False

    if isinstance(value, list):
        return True

    if isinstance(value, dict):
        if not value:
            return True
        return any(
            isinstance(key, str) and (key.lower() in CHAT_COLLECTION_KEYS or (key.isascii() and key.isdigit()))
            for key in value
        )

    if isinstance(value, str):
        return len(value) > MIN_STRING_PAYLOAD_LENGTH

    return False


def is_chat_data(value: JSONValue) -> bool:
    """Return True if a payload carries a transcript collection.

    A dict-valued ``chatData`` wrapper is unwrapped first.
    """
    if not isinstance(value, dict):
        return False

    nested = value.get("chatData")
    if isinstance(nested, dict):
        return is_chat_data(nested)

    return any(isinstance(value.get(field), list) for field in RICH_CHAT_FIELDS)


def is_prompt(value: JSONValue) -> bool:
    """Return True for a single prompt object ({"text": ..., "commandType": ...})."""
    return isinstance(value, dict) and isinstance(value.get("text"), str) and bool(value["text"].strip())


def is_numeric_key_object(value: JSONValue) -> bool:
    """Return True for a non-empty dict whose keys are all integer strings."""
    if not isinstance(value, dict) or not value:
        return False
    return all(isinstance(key, str) and key.isascii() and key.isdigit() for key in value)
