"""Scanner package to find, decode and classify Cursor chat history.

Cursor keeps chat state in per-workspace ``state.vscdb`` SQLite files under
``workspaceStorage``. Data structures are informed by the keys Cursor writes
(``workbench.panel.aichat.view.aichat.chatData``, ``aiService.prompts``, ...).
"""

from .decoding import decompress_and_parse, is_compressed_key, maybe_decode
from .discovery import find_candidate_stores, find_storage_root, get_cursor_storage_paths
from .extraction import (
    ExtractionOrchestrator,
    derive_workspace_name,
    prompts_keys_superseded_by,
    resolve_workspace_display_name,
)
from .models import NormalizedMessage, RawChatItem, StorageRecord, WorkspaceInfo
from .normalize import extract_message_array, extract_messages, normalize_message, resolve_nested
from .storage import StorageConnection
from .validation import is_chat_data, is_numeric_key_object, is_plausible_chat_payload, is_prompt

__all__ = [
    "ExtractionOrchestrator",
    "NormalizedMessage",
    "RawChatItem",
    "StorageConnection",
    "StorageRecord",
    "WorkspaceInfo",
    "decompress_and_parse",
    "derive_workspace_name",
    "extract_message_array",
    "extract_messages",
    "find_candidate_stores",
    "find_storage_root",
    "get_cursor_storage_paths",
    "is_chat_data",
    "is_compressed_key",
    "is_numeric_key_object",
    "is_plausible_chat_payload",
    "is_prompt",
    "maybe_decode",
    "normalize_message",
    "prompts_keys_superseded_by",
    "resolve_nested",
    "resolve_workspace_display_name",
]
