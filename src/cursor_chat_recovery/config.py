"""Runtime settings for the chat recovery pipeline.

Defaults mirror what Cursor writes to disk. A few values can be overridden from
the environment so the CLI and tests can point the pipeline elsewhere:

- ``CURSOR_WORKSPACE_STORAGE``: workspaceStorage directory to scan first
- ``CURSOR_MIN_DB_SIZE``: minimum ``state.vscdb`` size in bytes
- ``CURSOR_LOG_LEVEL``: log level name used by the CLI
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path

logger = logging.getLogger(__name__)

DB_FILE_NAME = "state.vscdb"
MIN_DB_SIZE_BYTES = 10_000
QUERY_CACHE_SIZE = 100

# Key prefixes that hold chat data. Lookups use LIKE 'prefix%' so that
# per-workspace suffixes are included.
CURSOR_CHAT_KEYS: tuple[str, ...] = (
    "workbench.panel.aichat.view.aichat.chatdata",
    "workbench.panel.aichat.view.aichat.chatData",
    "aiService.prompts",
    "cursorChat.conversations",
    "cursor.chatHistory",
    "composer.sessions",
    "aichat.messages",
)

# Keys that may name the workspace, in lookup order.
WORKSPACE_NAME_KEYS: tuple[str, ...] = (
    "workspace.rootUri",
    "workbench.workspace.folder",
    "workspace.name",
    "workspace.displayName",
)


@dataclass(frozen=True)
class Settings:
    """Settings shared by the locator, the storage connection and the orchestrator."""

    db_file_name: str = DB_FILE_NAME
    min_db_size_bytes: int = MIN_DB_SIZE_BYTES
    query_cache_size: int = QUERY_CACHE_SIZE
    chat_keys: tuple[str, ...] = CURSOR_CHAT_KEYS
    workspace_name_keys: tuple[str, ...] = WORKSPACE_NAME_KEYS
    storage_root: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from environment variables, keeping defaults for anything unset."""
        env = os.environ if environ is None else environ
        settings = cls()

        storage = env.get("CURSOR_WORKSPACE_STORAGE")
        if storage:
            settings = replace(settings, storage_root=Path(storage).expanduser())

        min_size = env.get("CURSOR_MIN_DB_SIZE")
        if min_size:
            try:
                settings = replace(settings, min_db_size_bytes=int(min_size))
            except ValueError:
                logger.warning("Ignoring CURSOR_MIN_DB_SIZE=%r: not an integer", min_size)

        level = env.get("CURSOR_LOG_LEVEL")
        if level:
            settings = replace(settings, log_level=level.upper())

        return settings

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
