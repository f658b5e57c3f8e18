"""Cursor Chat Recovery.

Recovers AI chat history that Cursor persists in its per-workspace
``state.vscdb`` storage files:
- Scanner: locate storage files, decode gzip/base64 values, validate and
  classify chat payloads, normalize messages
- CLI: inspect workspaces, keys and extracted chats from the terminal
"""

__version__ = "0.1.0"

from .config import Settings
from .exceptions import DecodeError, RecoveryError, StorageConnectionError
from .scanner import (
    ExtractionOrchestrator,
    NormalizedMessage,
    RawChatItem,
    StorageConnection,
    StorageRecord,
    WorkspaceInfo,
    extract_message_array,
    extract_messages,
    find_candidate_stores,
    is_plausible_chat_payload,
    maybe_decode,
    normalize_message,
    resolve_nested,
)

__all__ = [
    "DecodeError",
    "ExtractionOrchestrator",
    "NormalizedMessage",
    "RawChatItem",
    "RecoveryError",
    "Settings",
    "StorageConnection",
    "StorageConnectionError",
    "StorageRecord",
    "WorkspaceInfo",
    "__version__",
    "extract_message_array",
    "extract_messages",
    "find_candidate_stores",
    "is_plausible_chat_payload",
    "maybe_decode",
    "normalize_message",
    "resolve_nested",
]
