"""Workspace storage discovery for Cursor."""

import logging
import os
import platform
from pathlib import Path

from ..config import DB_FILE_NAME, MIN_DB_SIZE_BYTES
from .models import WorkspaceInfo

logger = logging.getLogger(__name__)


def get_cursor_storage_paths() -> list[Path]:
    """Get the candidate paths to Cursor's workspaceStorage directory.

    Returns paths in lookup order; the first one that exists is used.
    """
    system = platform.system()
    home = Path.home()

    paths = []

    if system == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            paths.append(Path(appdata) / "Cursor" / "User" / "workspaceStorage")
        # Roaming profile when APPDATA is unset or redirected
        paths.append(home / "AppData" / "Roaming" / "Cursor" / "User" / "workspaceStorage")
    elif system == "Darwin":  # macOS
        paths.append(home / "Library" / "Application Support" / "Cursor" / "User" / "workspaceStorage")
    else:  # Linux and others
        paths.append(home / ".config" / "Cursor" / "User" / "workspaceStorage")

    override = os.environ.get("CURSOR_WORKSPACE_STORAGE")
    if override:
        paths.insert(0, Path(override).expanduser())

    return paths


def find_storage_root(candidates: list[Path] | None = None) -> Path | None:
    """Return the first existing storage directory, or None if there is none."""
    if candidates is None:
        candidates = get_cursor_storage_paths()

    for candidate in candidates:
        if candidate.is_dir():
            return candidate

    logger.info("No Cursor workspace storage found (checked %d locations)", len(candidates))
    return None


def find_candidate_stores(
    storage_root: Path | None = None,
    min_size_bytes: int = MIN_DB_SIZE_BYTES,
    db_file_name: str = DB_FILE_NAME,
) -> list[WorkspaceInfo]:
    """Find workspace folders whose storage file is worth opening.

    Args:
        storage_root: workspaceStorage directory to scan. If None, the first
                      existing default location is used.
        min_size_bytes: Storage files of this size or smaller are skipped; fresh
                        workspaces carry a near-empty database.
        db_file_name: Name of the per-workspace storage file.

    Returns:
        WorkspaceInfo for each qualifying workspace, ordered by folder name.
        An empty list when no storage root exists.
    """
    if storage_root is None:
        storage_root = find_storage_root()
        if storage_root is None:
            return []

    storage_dir = Path(storage_root)
    if not storage_dir.is_dir():
        return []

    try:
        entries = sorted(storage_dir.iterdir())
    except OSError as e:
        logger.warning("Could not list storage directory %s: %s", storage_dir, e)
        return []

    stores = []
    for workspace_dir in entries:
        try:
            if not workspace_dir.is_dir():
                continue

            db_path = workspace_dir / db_file_name
            if not db_path.is_file():
                continue

            size = db_path.stat().st_size
        except OSError:
            continue

        if size > min_size_bytes:
            stores.append(WorkspaceInfo(folder_path=workspace_dir, database_path=db_path, size_bytes=size))
        else:
            logger.debug("Skipping %s: %d bytes is below the %d byte threshold", db_path, size, min_size_bytes)

    logger.debug("Found %d candidate stores under %s", len(stores), storage_dir)
    return stores
