"""
Callback-style filesystem adapter over a WebDAV client.

Presents an ``fs``-shaped surface (``readdir``, ``read_file``, ``stat``, ...)
whose operations report through ``callback(error, result)``. Callbacks are
always delivered after the call that registered them has returned, and
client errors reach them untouched.
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from .client import FileStat, create_client
from .config import ClientOptions
from .remote_client import RemoteClient

logger = logging.getLogger(__name__)

# Discriminator key/value for downstream tools detecting fs-like adapters
TYPE_KEY = "@@fsType"
FS_TYPE = "webdav-fs"

READDIR_MODES = ("node", "stat")
DEFAULT_READDIR_MODE = "node"
DEFAULT_ENCODING = "text"
ENCODING_ALIASES = {"utf8": "text", "utf-8": "text"}

Callback = Callable[..., Any]


def _noop(*args) -> None:
    pass


def _passthrough(data):
    return data


def parse_timestamp(value: str | None) -> int:
    """Parse an ISO 8601 or RFC 1123 timestamp into epoch milliseconds."""
    if not value:
        return 0
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        parsed = parsedate_to_datetime(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


@dataclass
class RemoteEntryStat:
    """Stat object for one remote entry, shaped like a local stat result."""

    name: str
    size: int
    mtime: int
    type: str

    def is_directory(self) -> bool:
        return self.type == "directory"

    def is_file(self) -> bool:
        return self.type == "file"

    # os.DirEntry spelling
    is_dir = is_directory


def convert_stat(data: FileStat) -> RemoteEntryStat:
    return RemoteEntryStat(
        name=data.basename,
        size=data.size or 0,
        mtime=parse_timestamp(data.lastmod),
        type=data.type,
    )


def execute_callback_async(
    callback: Callback, *args, loop: asyncio.AbstractEventLoop | None = None
) -> None:
    """
    Run callback(*args) after the current call has returned.

    Uses the event loop's ready queue when a live loop is given, otherwise a
    zero-delay timer thread.
    """
    if loop is not None and not loop.is_closed():
        try:
            loop.call_soon_threadsafe(callback, *args)
            return
        except RuntimeError:
            # closed by another thread since the check
            logger.debug("Event loop closed, delivering on a timer thread")
    timer = threading.Timer(0, callback, args)
    timer.start()


def _resolve_overload(
    option_or_callback: Any, callback: Callback | None, default: str
) -> tuple[str, Callback]:
    """Split an ``option_or_callback, callback`` pair into (option, callback)."""
    if callable(option_or_callback):
        return default, option_or_callback
    option = option_or_callback if isinstance(option_or_callback, str) else default
    return option, callback if callable(callback) else _noop


def _resolve_encoding(encoding: str) -> str:
    return ENCODING_ALIASES.get(encoding, encoding)


class WebDAVFS:
    """
    Filesystem adapter for a remote WebDAV server.

    Holds one remote client for its lifetime and no other state. Every
    callback-style method issues exactly one client request and returns
    immediately.
    """

    fs_type = FS_TYPE

    def __init__(self, client: RemoteClient, loop: asyncio.AbstractEventLoop | None = None):
        self._client = client
        self._loop = loop

    def __getitem__(self, key: str) -> str:
        if key == TYPE_KEY:
            return self.fs_type
        raise KeyError(key)

    @property
    def client(self) -> RemoteClient:
        return self._client

    def _deliver(self, callback: Callback, *args) -> None:
        execute_callback_async(callback, *args, loop=self._loop)

    def _call(
        self,
        operation: str,
        callback: Callback,
        request: Callable,
        *args,
        transform: Callable | None = None,
    ) -> None:
        """
        Issue one client request and route its outcome to callback.

        With no transform the callback gets ``(None,)`` on success, otherwise
        ``(None, transform(result))``. Any exception, from the request, the
        future or the transform, is passed as the only argument.
        """
        logger.debug("%s", operation)
        try:
            future = request(*args)
        except Exception as e:
            logger.debug("%s failed: %s", operation, e)
            self._deliver(callback, e)
            return

        def _on_done(done) -> None:
            try:
                result = done.result()
                payload = (None,) if transform is None else (None, transform(result))
            except Exception as e:
                logger.debug("%s failed: %s", operation, e)
                self._deliver(callback, e)
                return
            self._deliver(callback, *payload)

        future.add_done_callback(_on_done)

    def create_read_stream(self, file_path: str, options: Mapping | None = None):
        """
        Create a read stream for a remote file.

        Args:
            file_path: The remote path.
            options: Optional ``start``/``end`` byte indices (inclusive) and
                ``headers`` overrides.

        Returns:
            A readable binary stream.
        """
        client_options: dict[str, Any] = {}
        if options:
            if isinstance(options.get("headers"), Mapping):
                client_options["headers"] = options["headers"]
            start = options.get("start")
            if isinstance(start, int) and not isinstance(start, bool):
                client_options["range"] = {"start": options["start"], "end": options.get("end")}
        logger.debug("create_read_stream(%s) options=%s", file_path, client_options)
        return self._client.create_read_stream(file_path, client_options)

    def create_write_stream(self, file_path: str, options: Mapping | None = None):
        """
        Create a write stream for a remote file.

        Args:
            file_path: The remote path.
            options: Optional ``headers`` overrides.

        Returns:
            A writable binary stream.
        """
        client_options: dict[str, Any] = {}
        if options and isinstance(options.get("headers"), Mapping):
            client_options["headers"] = options["headers"]
        logger.debug("create_write_stream(%s) options=%s", file_path, client_options)
        return self._client.create_write_stream(file_path, client_options)

    def mkdir(self, dir_path: str, callback: Callback) -> None:
        """Create a remote directory. Callback: ``callback(error)``."""
        self._call(f"mkdir({dir_path})", callback, self._client.create_directory, dir_path)

    def readdir(
        self,
        dir_path: str,
        mode_or_callback: str | Callback = DEFAULT_READDIR_MODE,
        callback: Callback | None = None,
    ) -> None:
        """
        Read a directory.

        In ``"node"`` mode the result is a list of entry names, in ``"stat"``
        mode a list of RemoteEntryStat objects. The mode may be omitted:
        ``readdir(path, callback)``.

        Callback: ``callback(error, entries)``
        """
        mode, callback = _resolve_overload(mode_or_callback, callback, DEFAULT_READDIR_MODE)

        def _map_entries(contents: list[FileStat]) -> list:
            if mode == "node":
                return [item.basename for item in contents]
            if mode == "stat":
                return [convert_stat(item) for item in contents]
            raise ValueError(f"Unknown mode: {mode}")

        self._call(
            f"readdir({dir_path}, mode={mode})",
            callback,
            self._client.get_directory_contents,
            dir_path,
            transform=_map_entries,
        )

    def read_file(
        self,
        filename: str,
        encoding_or_callback: str | Callback = DEFAULT_ENCODING,
        callback: Callback | None = None,
    ) -> None:
        """
        Read the contents of a remote file.

        ``encoding`` is ``"text"`` (default, alias ``"utf8"``) for a str or
        ``"binary"`` for bytes. Callback: ``callback(error, contents)``
        """
        encoding, callback = _resolve_overload(encoding_or_callback, callback, DEFAULT_ENCODING)
        encoding = _resolve_encoding(encoding)
        self._call(
            f"read_file({filename}, format={encoding})",
            callback,
            lambda path: self._client.get_file_contents(path, format=encoding),
            filename,
            transform=_passthrough,
        )

    def rename(self, file_path: str, target_path: str, callback: Callback) -> None:
        """Rename or move a remote item. Callback: ``callback(error)``."""
        self._call(
            f"rename({file_path}, {target_path})",
            callback,
            self._client.move_file,
            file_path,
            target_path,
        )

    def rmdir(self, target_path: str, callback: Callback) -> None:
        """
        Remove a remote directory. Callback: ``callback(error)``.

        The target is not checked to be a directory; this shares the delete
        request with ``unlink``.
        """
        self._call(f"rmdir({target_path})", callback, self._client.delete_file, target_path)

    def stat(self, remote_path: str, callback: Callback) -> None:
        """Stat a remote item. Callback: ``callback(error, stat)``."""
        self._call(
            f"stat({remote_path})",
            callback,
            self._client.stat,
            remote_path,
            transform=convert_stat,
        )

    def unlink(self, target_path: str, callback: Callback) -> None:
        """Delete a remote file. Callback: ``callback(error)``."""
        self._call(f"unlink({target_path})", callback, self._client.delete_file, target_path)

    def write_file(
        self,
        filename: str,
        data: bytes | str,
        encoding_or_callback: str | Callback = DEFAULT_ENCODING,
        callback: Callback | None = None,
    ) -> None:
        """
        Write data to a remote file.

        The encoding argument is accepted (``"text"``/``"utf8"``/``"binary"``)
        but the upload always sends ``data`` as given.
        Callback: ``callback(error)``
        """
        encoding, callback = _resolve_overload(encoding_or_callback, callback, DEFAULT_ENCODING)
        encoding = _resolve_encoding(encoding)
        # TODO: forward encoding once put_file_contents grows a format option
        self._call(
            f"write_file({filename}, encoding={encoding})",
            callback,
            self._client.put_file_contents,
            filename,
            data,
        )

    def close(self) -> None:
        """Release the remote client."""
        close = getattr(self._client, "close", None)
        if close is not None:
            close()


def create_webdav_fs(endpoint: str, options: ClientOptions | Mapping | None = None) -> WebDAVFS:
    """
    Create a new filesystem adapter for a WebDAV endpoint.

    Args:
        endpoint: The WebDAV server URL.
        options: ClientOptions (or a mapping of its fields). Callbacks are
            delivered on ``options.loop`` when set, else on the event loop
            running at construction time, else on timer threads. A bound
            loop must keep running: callbacks queued on a loop that is
            stopped but never closed are not delivered.
    """
    if options is None:
        options = ClientOptions()
    elif isinstance(options, Mapping):
        options = ClientOptions(**options)

    loop = options.loop
    if loop is None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

    return WebDAVFS(create_client(endpoint, options), loop=loop)
