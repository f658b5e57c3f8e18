"""Exceptions raised by the chat recovery pipeline."""


class RecoveryError(Exception):
    """Base class for chat recovery errors."""

    def __init__(self, message: str | None = None):
        self.message = message or "Chat recovery failed"
        super().__init__(self.message)


class StorageConnectionError(RecoveryError, ConnectionError):
    """Raised when a storage file cannot be opened or queried.

    Covers missing files, unreadable files, corrupt SQLite headers and use of a
    connection that is not open. Fatal for one workspace only.
    """

    def __init__(self, message: str | None = None, path: str | None = None):
        self.path = path
        super().__init__(
            f"Failed to connect to database: {message}" if message else "Failed to connect to database"
        )


class DecodeError(RecoveryError):
    """Raised by the low-level gzip/base64 helpers. Never escapes maybe_decode()."""

    pass
