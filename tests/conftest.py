"""Pytest configuration and shared fixtures."""

import base64
import gzip
import json
import sqlite3
from pathlib import Path

import pytest

# Filler row that keeps test databases above the minimum size threshold.
PADDING_KEY = "test.padding"
PADDING_VALUE = "x" * 20_000

RICH_CHAT_KEY = "workbench.panel.aichat.view.aichat.chatData"
PROMPTS_KEY = "aiService.prompts"

RICH_CHAT_DATA = {
    "messages": [
        {"role": "user", "content": "How do I read a SQLite file in Python?", "timestamp": 1736935200000},
        {"role": "assistant", "content": "Use the sqlite3 module from the standard library.", "timestamp": 1736935201000},
    ]
}

PROMPTS_DATA = [
    {"text": "How do I read a SQLite file in Python?", "commandType": 4},
]


def gzip_b64(value) -> str:
    """Encode a JSON-serializable value the way Cursor stores compressed rows."""
    return base64.b64encode(gzip.compress(json.dumps(value).encode("utf-8"))).decode("ascii")


def make_state_db(path: Path, items: dict[str, str | bytes], padding: bool = True) -> Path:
    """Create a state.vscdb file with an ItemTable holding ``items`` in insertion order."""
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.execute("CREATE TABLE ItemTable (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)")
        for key, value in items.items():
            conn.execute("INSERT INTO ItemTable (key, value) VALUES (?, ?)", (key, value))
        if padding:
            conn.execute("INSERT INTO ItemTable (key, value) VALUES (?, ?)", (PADDING_KEY, PADDING_VALUE))
        conn.commit()
    finally:
        conn.close()
    return path


def add_row(path: Path, key: str, value: str | bytes) -> None:
    """Insert a row into an existing storage file through a separate writer."""
    conn = sqlite3.connect(str(path))
    try:
        conn.execute("INSERT INTO ItemTable (key, value) VALUES (?, ?)", (key, value))
        conn.commit()
    finally:
        conn.close()


def make_corrupt_db(path: Path) -> Path:
    """Create a file named like a storage file that is not a SQLite database."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"this is not a sqlite database\n" * 1000)
    return path


@pytest.fixture
def state_db(tmp_path):
    """A storage file with a rich transcript, a prompts list and some noise."""
    return make_state_db(
        tmp_path / "ws" / "state.vscdb",
        {
            RICH_CHAT_KEY: json.dumps(RICH_CHAT_DATA),
            PROMPTS_KEY: json.dumps(PROMPTS_DATA),
            "aichat.messages": gzip_b64({"messages": [{"role": "user", "content": "compressed hello"}]}),
            "cursor.chatHistory": "short",
            "workbench.explorer.treeViewState": json.dumps({"expanded": ["src"]}),
        },
    )


@pytest.fixture
def storage_root(tmp_path):
    """A workspaceStorage directory with two usable workspaces and some noise."""
    root = tmp_path / "workspaceStorage"
    make_state_db(
        root / "ws1-alpha" / "state.vscdb",
        {
            "workspace.rootUri": "file:///home/user/projects/alpha-app",
            RICH_CHAT_KEY: json.dumps(RICH_CHAT_DATA),
            PROMPTS_KEY: json.dumps(PROMPTS_DATA),
        },
    )
    make_state_db(
        root / "ws2-beta" / "state.vscdb",
        {PROMPTS_KEY: json.dumps([{"text": "Explain gzip magic bytes"}, {"text": "And base64?"}])},
    )
    # Freshly created workspace: storage file below the size threshold
    (root / "ws3-empty").mkdir()
    (root / "ws3-empty" / "state.vscdb").write_bytes(b"")
    # Folder without a storage file
    (root / "ws4-nodb").mkdir()
    return root
