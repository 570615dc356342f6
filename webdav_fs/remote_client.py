"""
Remote client protocol definition.

Defines the interface the FS adapter consumes. Every request method returns
a ``concurrent.futures.Future`` that settles with the result or the
transport error; the two stream constructors return streams immediately.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import IO, Any, Protocol, runtime_checkable


@runtime_checkable
class RemoteClient(Protocol):
    """Protocol defining the remote WebDAV client interface.

    Any class implementing these methods can back a WebDAVFS adapter,
    which lets tests substitute a fake client.
    """

    def create_read_stream(self, path: str, options: dict[str, Any] | None = None) -> IO[bytes]:
        """Return a readable stream for a remote file.

        Args:
            path: Remote path.
            options: Optional ``headers`` mapping and ``range`` dict with
                ``start``/``end`` byte offsets (inclusive).
        """
        ...

    def create_write_stream(self, path: str, options: dict[str, Any] | None = None) -> IO[bytes]:
        """Return a writable stream for a remote file."""
        ...

    def create_directory(self, path: str) -> Future:
        """Create a remote directory."""
        ...

    def get_directory_contents(self, path: str) -> Future:
        """List a directory. Resolves to a list of FileStat records."""
        ...

    def get_file_contents(self, path: str, format: str = "binary") -> Future:
        """Fetch file contents as bytes (``"binary"``) or str (``"text"``)."""
        ...

    def move_file(self, path: str, target_path: str) -> Future:
        """Move or rename a remote item."""
        ...

    def delete_file(self, path: str) -> Future:
        """Delete a remote file or directory."""
        ...

    def stat(self, path: str) -> Future:
        """Resolve to the FileStat record of a single remote item."""
        ...

    def put_file_contents(self, path: str, data: bytes | str) -> Future:
        """Upload data to a remote file, replacing it."""
        ...
