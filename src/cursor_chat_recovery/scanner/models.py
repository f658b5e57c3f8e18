"""Data models for Cursor chat storage scanning."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Any value produced by orjson.loads: None, bool, int, float, str, list or dict.
JSONValue = Any


@dataclass
class WorkspaceInfo:
    """A workspace storage folder holding a non-trivial state.vscdb file."""

    folder_path: Path
    database_path: Path
    size_bytes: int

    @property
    def workspace_id(self) -> str:
        """Cursor's anonymized folder id (the directory name)."""
        return self.folder_path.name


@dataclass(frozen=True)
class StorageRecord:
    """One accepted row from a storage file's ItemTable.

    The value is already decoded text; raw binary never leaves the storage layer.
    """

    key: str
    value: str
    raw_size: int = 0


@dataclass(frozen=True)
class RawChatItem:
    """A classified chat payload ready for the model builder.

    ``data`` has passed structural validation. ``is_rich_chat_data`` marks full
    transcripts (user and assistant turns) as opposed to prompts-only fragments.
    """

    source_key: str
    data: JSONValue
    workspace_id: str
    workspace_display_name: str | None
    storage_path: str
    is_rich_chat_data: bool
    byte_size: int
    workspace_name: str | None = None  # Best-effort label derived from the payload or folder

    def to_dict(self) -> dict:
        """Serialize with the camelCase field names consumers expect."""
        return {
            "sourceKey": self.source_key,
            "data": self.data,
            "workspaceId": self.workspace_id,
            "workspaceDisplayName": self.workspace_display_name,
            "workspaceName": self.workspace_name,
            "storagePath": self.storage_path,
            "isRichChatData": self.is_rich_chat_data,
            "byteSize": self.byte_size,
        }


@dataclass(frozen=True)
class NormalizedMessage:
    """A single chat turn in canonical form.

    ``content`` is never empty and already stripped. ``timestamp`` is epoch
    milliseconds; when the source had none it is the observation time and should
    not be trusted for ordering.
    """

    content: str
    role: str  # 'user', 'assistant' or 'system'
    timestamp: int
