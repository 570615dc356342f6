"""
Unit tests for the webdav-fs command line interface.

Tests cover:
- Argument parsing
- Each command driving one adapter operation
- Error reporting and exit codes
- Adapter construction from configuration (basic auth and token file)
"""

import io
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from webdav_fs import __main__ as cli
from webdav_fs.adapter import RemoteEntryStat, WebDAVFS
from webdav_fs.client import RemoteWriteStream
from webdav_fs.config import ClientOptions

ENDPOINT = ["--endpoint", "https://dav.example.com/webdav"]

# 2024-01-01T00:00:00Z
JAN_1_2024_MS = 1704067200000


def _with_callback(result=None, error=None, has_result=True):
    """Side effect that answers an adapter call through its trailing callback."""

    def _answer(*args):
        callback = args[-1]
        if error is not None:
            callback(error)
        elif has_result:
            callback(None, result)
        else:
            callback(None)

    return _answer


@pytest.fixture
def mock_fs():
    """Mocked adapter returned by create_webdav_fs."""
    fs = MagicMock(spec=WebDAVFS)
    with patch("webdav_fs.__main__.create_webdav_fs", return_value=fs) as factory:
        fs.factory = factory
        yield fs


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep CLI runs from reconfiguring the root logger or writing log files."""
    with patch("webdav_fs.__main__.setup_logging"):
        yield


class TestParseArgs:
    """Tests for argument parsing."""

    def test_global_options_and_command(self):
        args = cli.parse_args(
            ["--endpoint", "https://x", "--user", "u", "--password", "p", "ls", "--long", "/docs"]
        )

        assert args.endpoint == "https://x"
        assert args.user == "u"
        assert args.password == "p"
        assert args.command == "ls"
        assert args.long is True
        assert args.path == "/docs"

    def test_ls_defaults_to_root(self):
        args = cli.parse_args(["ls"])

        assert args.path == "/"
        assert args.long is False

    def test_get_range(self):
        args = cli.parse_args(["get", "/a.bin", "a.bin", "--start", "10", "--end", "20"])

        assert (args.start, args.end) == (10, 20)


class TestCommands:
    """Each command issues a single adapter operation."""

    def test_ls(self, mock_fs, capsys):
        mock_fs.readdir.side_effect = _with_callback(["a.txt", "sub"])

        assert cli.main(ENDPOINT + ["ls", "/docs"]) == 0

        assert capsys.readouterr().out.splitlines() == ["a.txt", "sub"]
        path, _ = mock_fs.readdir.call_args[0]
        assert path == "/docs"

    def test_ls_long(self, mock_fs, capsys):
        mock_fs.readdir.side_effect = _with_callback(
            [
                RemoteEntryStat(name="a.txt", size=10, mtime=JAN_1_2024_MS, type="file"),
                RemoteEntryStat(name="sub", size=0, mtime=JAN_1_2024_MS, type="directory"),
            ]
        )

        assert cli.main(ENDPOINT + ["ls", "--long", "/"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("- ")
        assert lines[0].endswith("2024-01-01 00:00:00 a.txt")
        assert lines[1].startswith("d ")
        assert mock_fs.readdir.call_args[0][1] == "stat"

    def test_stat(self, mock_fs, capsys):
        mock_fs.stat.side_effect = _with_callback(
            RemoteEntryStat(name="a.txt", size=10, mtime=JAN_1_2024_MS, type="file")
        )

        assert cli.main(ENDPOINT + ["stat", "/a.txt"]) == 0

        out = capsys.readouterr().out
        assert "Name:  a.txt" in out
        assert "Type:  file" in out
        assert "Size:  10" in out

    def test_cat_reads_binary(self, mock_fs, capsysbinary):
        mock_fs.read_file.side_effect = _with_callback(b"hello\n")

        assert cli.main(ENDPOINT + ["cat", "/a.txt"]) == 0

        assert capsysbinary.readouterr().out == b"hello\n"
        path, encoding, _ = mock_fs.read_file.call_args[0]
        assert (path, encoding) == ("/a.txt", "binary")

    def test_get_streams_to_local_file(self, mock_fs, tmp_path):
        mock_fs.create_read_stream.return_value = io.BytesIO(b"remote bytes")
        target = tmp_path / "out.bin"

        assert cli.main(ENDPOINT + ["get", "/a.bin", str(target), "--start", "0", "--end", "11"]) == 0

        assert target.read_bytes() == b"remote bytes"
        mock_fs.create_read_stream.assert_called_once_with("/a.bin", {"start": 0, "end": 11})

    def test_put_streams_from_local_file(self, mock_fs, tmp_path):
        class Capture(io.BytesIO):
            def close(self):
                self.captured = self.getvalue()
                super().close()

        stream = Capture()
        mock_fs.create_write_stream.return_value = stream
        source = tmp_path / "in.txt"
        source.write_bytes(b"local bytes")

        assert cli.main(ENDPOINT + ["put", str(source), "/in.txt"]) == 0

        assert stream.captured == b"local bytes"
        mock_fs.create_write_stream.assert_called_once_with("/in.txt")

    def test_put_missing_local_file_never_opens_stream(self, mock_fs, capsys, tmp_path):
        assert cli.main(ENDPOINT + ["put", str(tmp_path / "missing.txt"), "/important.txt"]) == 1

        assert "[ERROR] put failed" in capsys.readouterr().out
        mock_fs.create_write_stream.assert_not_called()

    def test_put_copy_error_does_not_upload(self, mock_fs, tmp_path):
        http = MagicMock(spec=httpx.Client)
        mock_fs.create_write_stream.return_value = RemoteWriteStream(
            http, "https://dav.example.com/webdav/important.txt", {}
        )
        source = tmp_path / "in.txt"
        source.write_bytes(b"local bytes")

        with patch("webdav_fs.__main__.shutil.copyfileobj", side_effect=OSError("read error")):
            assert cli.main(ENDPOINT + ["put", str(source), "/important.txt"]) == 1

        http.put.assert_not_called()

    @pytest.mark.parametrize(
        "argv, method, expected_args",
        [
            (["mkdir", "/new"], "mkdir", ("/new",)),
            (["mv", "/a", "/b"], "rename", ("/a", "/b")),
            (["rm", "/a.txt"], "unlink", ("/a.txt",)),
            (["rmdir", "/sub"], "rmdir", ("/sub",)),
        ],
    )
    def test_simple_commands(self, mock_fs, capsys, argv, method, expected_args):
        getattr(mock_fs, method).side_effect = _with_callback(has_result=False)

        assert cli.main(ENDPOINT + argv) == 0

        assert capsys.readouterr().out.startswith("[OK]")
        call_args = getattr(mock_fs, method).call_args[0]
        assert call_args[:-1] == expected_args

    def test_client_is_closed(self, mock_fs):
        mock_fs.mkdir.side_effect = _with_callback(has_result=False)

        cli.main(ENDPOINT + ["mkdir", "/new"])

        mock_fs.close.assert_called_once_with()


class TestErrors:
    """Errors are reported with an exit code of 1."""

    def test_operation_error(self, mock_fs, capsys):
        mock_fs.unlink.side_effect = _with_callback(error=OSError("404 Not Found"))

        assert cli.main(ENDPOINT + ["rm", "/missing"]) == 1

        assert "[ERROR] rm failed: 404 Not Found" in capsys.readouterr().out
        mock_fs.close.assert_called_once_with()

    def test_operation_value_error_is_not_a_config_error(self, mock_fs, capsys):
        mock_fs.stat.side_effect = _with_callback(error=ValueError("Invalid timestamp: yesterday"))

        assert cli.main(ENDPOINT + ["stat", "/a.txt"]) == 1

        out = capsys.readouterr().out
        assert "[ERROR] stat failed: Invalid timestamp: yesterday" in out
        assert "Configuration error" not in out
        mock_fs.close.assert_called_once_with()

    def test_missing_endpoint(self, mock_fs, capsys):
        assert cli.main(["ls"]) == 1

        assert "[ERROR] Configuration error" in capsys.readouterr().out
        mock_fs.factory.assert_not_called()

    def test_missing_config_file(self, mock_fs, capsys, tmp_path):
        assert cli.main(["--config", str(tmp_path / "nope.ini"), "ls"]) == 1

        assert "Configuration file not found" in capsys.readouterr().out

    def test_no_command_prints_usage(self, capsys):
        assert cli.main([]) == 1

        assert "Usage: webdav-fs" in capsys.readouterr().out


class TestBuildFS:
    """Tests for adapter construction from the CLI configuration."""

    def test_basic_auth_options(self, mock_fs):
        mock_fs.mkdir.side_effect = _with_callback(has_result=False)

        cli.main(ENDPOINT + ["--user", "u", "--password", "p", "mkdir", "/new"])

        endpoint, options = mock_fs.factory.call_args[0]
        assert endpoint == "https://dav.example.com/webdav"
        assert isinstance(options, ClientOptions)
        assert (options.username, options.password, options.token) == ("u", "p", None)

    def test_token_file_is_loaded(self, mock_fs, tmp_path):
        token_path = tmp_path / "token.json"
        token_path.write_text(json.dumps({"access_token": "abc"}), encoding="utf-8")
        mock_fs.mkdir.side_effect = _with_callback(has_result=False)

        cli.main(ENDPOINT + ["--token-file", str(token_path), "mkdir", "/new"])

        _, options = mock_fs.factory.call_args[0]
        assert options.token == {"access_token": "abc"}


class TestCallbackWaiter:
    """Tests for the blocking callback helper."""

    def test_returns_result(self):
        waiter = cli.CallbackWaiter()
        waiter(None, ["a"])

        assert waiter.wait() == ["a"]

    def test_raises_error(self):
        waiter = cli.CallbackWaiter()
        waiter(OSError("boom"))

        with pytest.raises(OSError, match="boom"):
            waiter.wait()
