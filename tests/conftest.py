"""
Shared pytest fixtures for webdav-fs tests.
"""

import threading
from collections.abc import Generator
from concurrent.futures import Future
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from webdav_fs.adapter import WebDAVFS
from webdav_fs.client import FileStat, WebDAVClient
from webdav_fs.config import AppConfig, ConnectionConfig, LogConfig, WebDAVConfig


class CallbackRecorder:
    """Adapter callback that records every invocation and the thread it ran on."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.threads: list[int] = []
        self._event = threading.Event()

    def __call__(self, *args):
        self.calls.append(args)
        self.threads.append(threading.get_ident())
        self._event.set()

    def wait(self, timeout: float = 2.0) -> tuple:
        """Block until the first invocation and return its arguments."""
        assert self._event.wait(timeout), "callback was not invoked"
        return self.calls[0]


def settled_future(result=None, error: Exception | None = None) -> Future:
    """Create a future that has already resolved (or rejected)."""
    future = Future()
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)
    return future


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[webdav]
endpoint = https://dav.example.com/remote.php/webdav
username = testuser
password = testpass
token_file = /tmp/token.json
verify_ssl = false

[connection]
timeout_seconds = 45
max_workers = 8

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def minimal_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a minimal INI configuration file with only required fields.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[webdav]
endpoint = http://localhost:8080/
"""
    config_path = tmp_path / "minimal_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def file_stat() -> FileStat:
    """Raw stat record for a 10 byte file."""
    return FileStat(
        filename="/a.txt",
        basename="a.txt",
        lastmod="2024-01-01T00:00:00Z",
        size=10,
        type="file",
        etag='"abc123"',
        mime="text/plain",
    )


@pytest.fixture
def dir_stat() -> FileStat:
    """Raw stat record for a directory (servers omit the size)."""
    return FileStat(
        filename="/sub",
        basename="sub",
        lastmod="Mon, 01 Jan 2024 12:00:00 GMT",
        size=None,
        type="directory",
    )


@pytest.fixture
def mock_remote_client(file_stat: FileStat, dir_stat: FileStat) -> Generator[MagicMock, None, None]:
    """
    Creates a fully mocked WebDAVClient whose futures are already settled.

    Returns:
        Mocked client with every request method stubbed to succeed.
    """
    mock = MagicMock(spec=WebDAVClient)

    mock.create_directory.return_value = settled_future()
    mock.get_directory_contents.return_value = settled_future([file_stat, dir_stat])
    mock.get_file_contents.return_value = settled_future("file contents")
    mock.move_file.return_value = settled_future()
    mock.delete_file.return_value = settled_future()
    mock.stat.return_value = settled_future(file_stat)
    mock.put_file_contents.return_value = settled_future()

    yield mock


@pytest.fixture
def webdav_fs(mock_remote_client: MagicMock) -> WebDAVFS:
    """Adapter over the mocked client, delivering callbacks on timer threads."""
    return WebDAVFS(mock_remote_client)


@pytest.fixture
def callback() -> CallbackRecorder:
    return CallbackRecorder()


@pytest.fixture
def make_callback():
    """Factory for extra recorders when a test needs more than one."""
    return CallbackRecorder


@pytest.fixture
def make_future():
    """Factory for already-settled futures."""
    return settled_future


@pytest.fixture
def app_config() -> AppConfig:
    """Creates a complete AppConfig for testing."""
    return AppConfig(
        webdav=WebDAVConfig(
            endpoint="https://dav.example.com/webdav",
            username="testuser",
            password="testpass",
        ),
        connection=ConnectionConfig(timeout_seconds=30, max_workers=2),
        logging=LogConfig(level="DEBUG", file="", console=False),
    )
