"""Extraction of classified chat items from every Cursor workspace."""

import logging
import re
from pathlib import Path
from urllib.parse import unquote

import orjson

from ..config import WORKSPACE_NAME_KEYS, Settings
from ..exceptions import StorageConnectionError
from .decoding import maybe_decode
from .discovery import find_candidate_stores
from .models import JSONValue, RawChatItem, StorageRecord, WorkspaceInfo
from .storage import StorageConnection
from .validation import is_chat_data, is_plausible_chat_payload

logger = logging.getLogger(__name__)

RICH_CHAT_KEY_PREFIX = "workbench.panel.aichat"
GLOBAL_PROMPTS_KEY = "aiService.prompts"

# Cursor's own anonymized folder ids
HASH_FOLDER_PATTERN = re.compile(r"^[a-f0-9]{32}$")
WORKSPACE_HASH_PATTERN = re.compile(r"^[a-f0-9]{8,}$")

_CHAT_DATA_SUFFIX = re.compile(r"\.chat[Dd]ata$")
_WINDOWS_DRIVE_PREFIX = re.compile(r"^/([a-zA-Z]):")

# Payload fields that may carry a human-readable workspace label
WORKSPACE_LABEL_FIELDS = ("workspaceName", "projectName", "folderName", "name")


def _name_from_value(value: JSONValue) -> str | None:
    """Turn a workspace key's value into a display name, if it holds one."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = maybe_decode(value)
    if not isinstance(value, str) or not value:
        return None

    if value.startswith("file://"):
        decoded_path = unquote(value[len("file://"):])
        normalized = _WINDOWS_DRIVE_PREFIX.sub(r"\1:", decoded_path)
        project_name = re.split(r"[/\\]", normalized)[-1]
        if project_name and not HASH_FOLDER_PATTERN.match(project_name):
            return project_name
        return None

    if HASH_FOLDER_PATTERN.match(value):
        return None
    return value


def resolve_workspace_display_name(
    connection: StorageConnection,
    keys: tuple[str, ...] = WORKSPACE_NAME_KEYS,
) -> str | None:
    """Look up a human-meaningful workspace name in the open storage file.

    Returns:
        The first usable name among the well-known workspace keys, or None.
    """
    try:
        for key in keys:
            rows = connection.execute_raw("SELECT value FROM ItemTable WHERE key = ?", [key])
            if rows and rows[0].get("value"):
                name = _name_from_value(rows[0]["value"])
                if name:
                    return name
    except Exception as e:
        logger.warning("Failed to extract workspace display name: %s", e)
    return None


def derive_workspace_name(folder_path: Path, data: JSONValue) -> str:
    """Pick a label for a workspace from the payload, falling back to its folder name."""
    if isinstance(data, dict):
        for field in WORKSPACE_LABEL_FIELDS:
            value = data.get(field)
            if isinstance(value, str) and len(value) > 1:
                return value

    folder_name = Path(folder_path).name
    if not WORKSPACE_HASH_PATTERN.match(folder_name):
        return folder_name
    return f"Project {folder_name[:8]}"


def prompts_keys_superseded_by(rich_key: str) -> set[str]:
    """Keys of prompts-only fragments that a rich record at ``rich_key`` replaces."""
    base_key = _CHAT_DATA_SUFFIX.sub("", rich_key)
    return {f"{base_key}.prompts", GLOBAL_PROMPTS_KEY}


class ExtractionOrchestrator:
    """Runs the extraction pipeline across every workspace storage file.

    The storage connection is injected so that callers (and tests) own exactly
    one pool and cache per process.
    """

    def __init__(self, connection: StorageConnection | None = None, settings: Settings | None = None):
        self.settings = settings or Settings()
        self.connection = connection or StorageConnection(
            chat_keys=self.settings.chat_keys,
            cache_size=self.settings.query_cache_size,
        )
        self.last_run_stats: dict[str, int] = {}

    def find_stores(self, storage_root: Path | None = None) -> list[WorkspaceInfo]:
        return find_candidate_stores(
            storage_root or self.settings.storage_root,
            min_size_bytes=self.settings.min_db_size_bytes,
            db_file_name=self.settings.db_file_name,
        )

    def extract_all(self, storage_root: Path | None = None) -> list[RawChatItem]:
        """Extract classified chat items from every candidate workspace.

        A workspace that fails is logged and skipped; the other workspaces'
        items are still returned. No workspaces means an empty list.
        """
        stores = self.find_stores(storage_root)
        stats = {"workspaces_found": len(stores), "workspaces_processed": 0, "workspaces_failed": 0}

        if not stores:
            logger.info("No workspace storage files found")
            self.last_run_stats = {**stats, "items": 0, "rich_items": 0, "prompt_items": 0}
            return []

        items: list[RawChatItem] = []
        for workspace in stores:
            try:
                workspace_items = self.extract_workspace(workspace)
            except StorageConnectionError as e:
                stats["workspaces_failed"] += 1
                logger.error("Skipping workspace %s: %s", workspace.folder_path, e)
                continue
            except Exception:
                stats["workspaces_failed"] += 1
                logger.exception("Error processing workspace folder %s", workspace.folder_path)
                continue

            stats["workspaces_processed"] += 1
            items.extend(workspace_items)

        rich = sum(1 for item in items if item.is_rich_chat_data)
        self.last_run_stats = {**stats, "items": len(items), "rich_items": rich, "prompt_items": len(items) - rich}
        logger.info(
            "Extracted %d chat items (%d rich) from %d of %d workspaces",
            len(items),
            rich,
            stats["workspaces_processed"],
            len(stores),
        )
        return items

    def extract_workspace(self, workspace: WorkspaceInfo) -> list[RawChatItem]:
        """Extract classified chat items from one workspace's storage file.

        The connection is always closed before returning or raising.

        Raises:
            StorageConnectionError: If the storage file cannot be opened or queried.
        """
        db_path = str(workspace.database_path)
        try:
            self.connection.open(db_path)
            display_name = resolve_workspace_display_name(self.connection, self.settings.workspace_name_keys)
            records = self.connection.query(self.settings.chat_keys)
            return self._classify(workspace, display_name, records)
        finally:
            self.connection.close()

    def _classify(
        self,
        workspace: WorkspaceInfo,
        display_name: str | None,
        records: list[StorageRecord],
    ) -> list[RawChatItem]:
        # Only rows after a rich record are suppressed; earlier prompts-only rows stay.
        superseded: set[str] = set()
        items = []

        for record in records:
            try:
                data = orjson.loads(record.value)
            except orjson.JSONDecodeError as e:
                logger.warning("JSON parse error for key %r: %s", record.key, e)
                continue

            if not is_plausible_chat_payload(data):
                logger.debug("Skipping key %r: payload is not chat data", record.key)
                continue

            is_rich = record.key.startswith(RICH_CHAT_KEY_PREFIX) and is_chat_data(data)
            if is_rich:
                logger.debug("Found rich chat data at %r", record.key)
                superseded |= prompts_keys_superseded_by(record.key)
            elif record.key in superseded:
                logger.debug("Skipping prompts-only key %r: superseded by rich chat data", record.key)
                continue

            items.append(
                RawChatItem(
                    source_key=record.key,
                    data=data,
                    workspace_id=workspace.workspace_id,
                    workspace_display_name=display_name,
                    storage_path=str(workspace.database_path),
                    is_rich_chat_data=is_rich,
                    byte_size=len(record.value.encode("utf-8")),
                    workspace_name=derive_workspace_name(workspace.folder_path, data),
                )
            )

        return items

    def get_statistics(self) -> dict[str, int]:
        """Counts from the most recent extract_all() run."""
        return dict(self.last_run_stats)

    def close(self) -> None:
        """Release every pooled connection."""
        self.connection.close_all()
