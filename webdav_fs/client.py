"""
WebDAV client implementation using webdav4.

Runs the blocking webdav4/httpx calls on a thread pool and hands back
futures, so the FS adapter never waits on the network. Streams are built
lazily: nothing touches the server until the first read or the final close.
"""

import io
import logging
import posixpath
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx
from webdav4.client import Client

from .auth import TokenAuth
from .config import ClientOptions

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
STREAM_CHUNK_SIZE = 2**16
# Write streams spill to disk past this many buffered bytes
WRITE_SPOOL_SIZE = 8 * 2**20

CONTENT_FORMATS = ("binary", "text")


@dataclass
class FileStat:
    """Raw stat record for one remote item, as reported by the server."""

    filename: str
    basename: str
    lastmod: str | None
    size: int | None
    type: str  # "file" or "directory"
    etag: str | None = None
    mime: str | None = None

    @classmethod
    def from_info(cls, info: dict[str, Any]) -> "FileStat":
        """Build a FileStat from a webdav4 ``info``/``ls`` entry."""
        name = info.get("name") or ""
        filename = "/" + name.strip("/")
        modified = info.get("modified")
        if isinstance(modified, datetime):
            lastmod = modified.isoformat()
        else:
            lastmod = modified
        return cls(
            filename=filename,
            basename=posixpath.basename(filename),
            lastmod=lastmod,
            size=info.get("content_length"),
            type=info.get("type") or "file",
            etag=info.get("etag"),
            mime=info.get("content_type"),
        )


class RemoteReadStream(io.RawIOBase):
    """
    Readable binary stream over an HTTP GET.

    The request is only sent on the first read. HTTP errors raise from
    ``read`` rather than from the constructor.
    """

    def __init__(self, http: httpx.Client, url: str, headers: dict[str, str]):
        super().__init__()
        self._http = http
        self._url = url
        self._headers = headers
        self._response: httpx.Response | None = None
        self._chunks = None
        self._pending = b""

    def readable(self) -> bool:
        return True

    def _open(self) -> None:
        logger.debug("Opening read stream: %s (headers=%s)", self._url, self._headers)
        request = self._http.build_request("GET", self._url, headers=self._headers)
        response = self._http.send(request, stream=True)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError:
            response.close()
            raise
        self._response = response
        self._chunks = response.iter_bytes(STREAM_CHUNK_SIZE)

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        if self._response is None:
            self._open()

        if not self._pending:
            self._pending = next(self._chunks, b"")
        if not self._pending:
            return 0

        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        if self._response is not None:
            self._response.close()
        super().close()


class RemoteWriteStream(io.RawIOBase):
    """
    Writable binary stream that uploads with a single PUT on close.

    Data is buffered in a spooled temporary file. Upload errors raise from
    ``close``. Leaving a ``with`` block on an exception, or dropping the
    stream without closing it, discards the buffer and sends nothing.
    """

    def __init__(self, http: httpx.Client, url: str, headers: dict[str, str]):
        super().__init__()
        self._http = http
        self._url = url
        self._headers = headers
        self._buffer = tempfile.SpooledTemporaryFile(max_size=WRITE_SPOOL_SIZE)

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        return self._buffer.write(data)

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._buffer.seek(0)
            content = iter(lambda: self._buffer.read(STREAM_CHUNK_SIZE), b"")
            logger.debug("Uploading write stream: %s", self._url)
            response = self._http.put(self._url, content=content, headers=self._headers)
            response.raise_for_status()
        finally:
            self._buffer.close()
            super().close()

    def abort(self) -> None:
        """Close the stream and drop buffered data without uploading."""
        if self.closed:
            return
        logger.debug("Discarding write stream: %s", self._url)
        self._buffer.close()
        super().close()

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.abort()
        else:
            self.close()

    def __del__(self):
        # IOBase would close (and upload) here
        if hasattr(self, "_buffer"):
            self.abort()


class WebDAVClient:
    """
    Future-returning WebDAV client.

    Wraps a webdav4 ``Client``; each request runs on a worker thread and
    its outcome (result or exception) settles the returned future.
    """

    def __init__(self, dav: Client, max_workers: int | None = None):
        self._dav = dav
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or DEFAULT_MAX_WORKERS,
            thread_name_prefix="webdav",
        )

    @property
    def http(self) -> httpx.Client:
        return self._dav.http

    def _url(self, path: str) -> str:
        base = str(self._dav.base_url).rstrip("/")
        return base + "/" + quote(path.lstrip("/"))

    def _submit(self, operation: str, func, *args, **kwargs) -> Future:
        logger.debug("Submitting %s", operation)
        return self._executor.submit(func, *args, **kwargs)

    def create_read_stream(self, path: str, options: dict[str, Any] | None = None) -> RemoteReadStream:
        options = options or {}
        headers = dict(options.get("headers") or {})
        byte_range = options.get("range")
        if byte_range is not None:
            end = byte_range.get("end")
            end_text = "" if end is None else str(end)
            headers["Range"] = f"bytes={byte_range['start']}-{end_text}"
        return RemoteReadStream(self.http, self._url(path), headers)

    def create_write_stream(self, path: str, options: dict[str, Any] | None = None) -> RemoteWriteStream:
        options = options or {}
        headers = dict(options.get("headers") or {})
        return RemoteWriteStream(self.http, self._url(path), headers)

    def create_directory(self, path: str) -> Future:
        return self._submit(f"create_directory({path})", self._dav.mkdir, path)

    def get_directory_contents(self, path: str) -> Future:
        def _list_dir_internal() -> list[FileStat]:
            entries = self._dav.ls(path, detail=True)
            results = [FileStat.from_info(entry) for entry in entries]
            logger.debug("Listed %d entries in %s", len(results), path)
            return results

        return self._submit(f"get_directory_contents({path})", _list_dir_internal)

    def get_file_contents(self, path: str, format: str = "binary") -> Future:
        def _read_file_internal() -> bytes | str:
            if format not in CONTENT_FORMATS:
                raise ValueError(f"Unknown format: {format}")
            buffer = io.BytesIO()
            self._dav.download_fileobj(path, buffer)
            data = buffer.getvalue()
            logger.debug("Read %d bytes from %s", len(data), path)
            if format == "text":
                return data.decode("utf-8")
            return data

        return self._submit(f"get_file_contents({path})", _read_file_internal)

    def move_file(self, path: str, target_path: str) -> Future:
        return self._submit(
            f"move_file({path}, {target_path})",
            self._dav.move,
            path,
            target_path,
            overwrite=True,
        )

    def delete_file(self, path: str) -> Future:
        return self._submit(f"delete_file({path})", self._dav.remove, path)

    def stat(self, path: str) -> Future:
        def _stat_internal() -> FileStat:
            return FileStat.from_info(self._dav.info(path))

        return self._submit(f"stat({path})", _stat_internal)

    def put_file_contents(self, path: str, data: bytes | str, overwrite: bool = True) -> Future:
        def _write_file_internal() -> None:
            payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
            self._dav.upload_fileobj(io.BytesIO(payload), path, overwrite=overwrite)
            logger.debug("Wrote %d bytes to %s", len(payload), path)

        return self._submit(f"put_file_contents({path})", _write_file_internal)

    def close(self) -> None:
        """Stop the worker pool and close the HTTP connection."""
        self._executor.shutdown(wait=True)
        self.http.close()
        logger.debug("WebDAV client closed")


def create_client(endpoint: str, options: ClientOptions | None = None) -> WebDAVClient:
    """
    Create a WebDAV client for an endpoint.

    Args:
        endpoint: The WebDAV server URL.
        options: Connection options; absent fields use webdav4 defaults.
    """
    options = options or ClientOptions()

    auth = None
    if options.token is not None:
        auth = TokenAuth(options.token)
    elif options.username is not None:
        auth = (options.username, options.password or "")

    if options.http_client is not None:
        # webdav4 ignores auth/timeout/verify when given its own transport
        if auth is not None:
            options.http_client.auth = auth
        dav = Client(endpoint, http_client=options.http_client)
    else:
        kwargs: dict[str, Any] = {"auth": auth, "verify": options.verify_ssl}
        if options.timeout_seconds is not None:
            kwargs["timeout"] = options.timeout_seconds
        dav = Client(endpoint, **kwargs)

    logger.debug("Created WebDAV client for %s", endpoint)
    return WebDAVClient(dav, max_workers=options.max_workers)
