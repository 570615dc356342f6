"""
webdav-fs - Main Entry Point

This module provides the CLI interface: it loads configuration, builds a
WebDAVFS adapter and runs one filesystem operation against the server.
"""

import argparse
import logging
import shutil
import sys
import threading
from datetime import datetime, timezone

from .adapter import WebDAVFS, create_webdav_fs
from .auth import load_token
from .config import AppConfig, ClientOptions, load_config
from .logger import setup_logging

logger = logging.getLogger(__name__)


class CallbackWaiter:
    """Callback that records ``(error, result)`` and lets the caller block on it."""

    def __init__(self):
        self._event = threading.Event()
        self.error = None
        self.result = None

    def __call__(self, error, result=None):
        self.error = error
        self.result = result
        self._event.set()

    def wait(self):
        self._event.wait()
        if self.error is not None:
            raise self.error
        return self.result


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="webdav-fs",
        description="webdav-fs - Filesystem operations on a WebDAV server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  webdav-fs --endpoint https://dav.example.com/remote.php/webdav --user me ls /
  webdav-fs --config webdav-fs.ini ls --long /photos
  webdav-fs --config webdav-fs.ini get /photos/cat.jpg cat.jpg
  webdav-fs --config webdav-fs.ini put notes.txt /notes.txt
        """,
    )
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--endpoint", help="WebDAV server URL")
    parser.add_argument("--user", help="Username for basic auth")
    parser.add_argument("--password", help="Password for basic auth")
    parser.add_argument("--token-file", help="Path to a saved OAuth token (JSON)")
    parser.add_argument(
        "--insecure", action="store_true", help="Skip TLS certificate verification"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ls_parser = subparsers.add_parser("ls", help="List a remote directory")
    ls_parser.add_argument("path", nargs="?", default="/", help="Remote directory")
    ls_parser.add_argument("--long", action="store_true", help="Show type, size and mtime")

    stat_parser = subparsers.add_parser("stat", help="Show metadata for a remote item")
    stat_parser.add_argument("path", help="Remote path")

    cat_parser = subparsers.add_parser("cat", help="Print a remote file")
    cat_parser.add_argument("path", help="Remote file")

    get_parser = subparsers.add_parser("get", help="Download a remote file")
    get_parser.add_argument("remote", help="Remote file")
    get_parser.add_argument("local", help="Local destination")
    get_parser.add_argument("--start", type=int, help="First byte to fetch (inclusive)")
    get_parser.add_argument("--end", type=int, help="Last byte to fetch (inclusive)")

    put_parser = subparsers.add_parser("put", help="Upload a local file")
    put_parser.add_argument("local", help="Local file")
    put_parser.add_argument("remote", help="Remote destination")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a remote directory")
    mkdir_parser.add_argument("path", help="Remote directory")

    mv_parser = subparsers.add_parser("mv", help="Rename or move a remote item")
    mv_parser.add_argument("source", help="Remote source path")
    mv_parser.add_argument("target", help="Remote target path")

    rm_parser = subparsers.add_parser("rm", help="Delete a remote file")
    rm_parser.add_argument("path", help="Remote file")

    rmdir_parser = subparsers.add_parser("rmdir", help="Delete a remote directory")
    rmdir_parser.add_argument("path", help="Remote directory")

    return parser.parse_args(argv)


def build_fs(config: AppConfig) -> WebDAVFS:
    """Create the adapter described by config."""
    token = None
    if config.webdav.token_file:
        token = load_token(config.webdav.token_file)
    options = ClientOptions.from_config(config, token=token)
    return create_webdav_fs(config.webdav.endpoint, options)


def _format_mtime(mtime_ms: int) -> str:
    return datetime.fromtimestamp(mtime_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def cmd_ls(fs: WebDAVFS, args) -> int:
    waiter = CallbackWaiter()
    if args.long:
        fs.readdir(args.path, "stat", waiter)
        for entry in waiter.wait():
            kind = "d" if entry.is_directory() else "-"
            print(f"{kind} {entry.size:>12} {_format_mtime(entry.mtime)} {entry.name}")
    else:
        fs.readdir(args.path, waiter)
        for name in waiter.wait():
            print(name)
    return 0


def cmd_stat(fs: WebDAVFS, args) -> int:
    waiter = CallbackWaiter()
    fs.stat(args.path, waiter)
    entry = waiter.wait()
    print(f"Name:  {entry.name}")
    print(f"Type:  {'directory' if entry.is_directory() else 'file'}")
    print(f"Size:  {entry.size}")
    print(f"Mtime: {_format_mtime(entry.mtime)}")
    return 0


def cmd_cat(fs: WebDAVFS, args) -> int:
    waiter = CallbackWaiter()
    fs.read_file(args.path, "binary", waiter)
    sys.stdout.buffer.write(waiter.wait())
    sys.stdout.buffer.flush()
    return 0


def cmd_get(fs: WebDAVFS, args) -> int:
    options = {}
    if args.start is not None:
        options["start"] = args.start
        options["end"] = args.end
    stream = fs.create_read_stream(args.remote, options)
    with stream, open(args.local, "wb") as f:
        shutil.copyfileobj(stream, f)
    print(f"[OK] Downloaded {args.remote} -> {args.local}")
    return 0


def cmd_put(fs: WebDAVFS, args) -> int:
    with open(args.local, "rb") as f:
        with fs.create_write_stream(args.remote) as stream:
            shutil.copyfileobj(f, stream)
    print(f"[OK] Uploaded {args.local} -> {args.remote}")
    return 0


def cmd_mkdir(fs: WebDAVFS, args) -> int:
    waiter = CallbackWaiter()
    fs.mkdir(args.path, waiter)
    waiter.wait()
    print(f"[OK] Created {args.path}")
    return 0


def cmd_mv(fs: WebDAVFS, args) -> int:
    waiter = CallbackWaiter()
    fs.rename(args.source, args.target, waiter)
    waiter.wait()
    print(f"[OK] Moved {args.source} -> {args.target}")
    return 0


def cmd_rm(fs: WebDAVFS, args) -> int:
    waiter = CallbackWaiter()
    fs.unlink(args.path, waiter)
    waiter.wait()
    print(f"[OK] Deleted {args.path}")
    return 0


def cmd_rmdir(fs: WebDAVFS, args) -> int:
    waiter = CallbackWaiter()
    fs.rmdir(args.path, waiter)
    waiter.wait()
    print(f"[OK] Removed {args.path}")
    return 0


COMMANDS = {
    "ls": cmd_ls,
    "stat": cmd_stat,
    "cat": cmd_cat,
    "get": cmd_get,
    "put": cmd_put,
    "mkdir": cmd_mkdir,
    "mv": cmd_mv,
    "rm": cmd_rm,
    "rmdir": cmd_rmdir,
}


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        print("Usage: webdav-fs [options] <command> [args]")
        print()
        print("Commands:")
        print("  ls      List a remote directory")
        print("  stat    Show metadata for a remote item")
        print("  cat     Print a remote file")
        print("  get     Download a remote file")
        print("  put     Upload a local file")
        print("  mkdir   Create a remote directory")
        print("  mv      Rename or move a remote item")
        print("  rm      Delete a remote file")
        print("  rmdir   Delete a remote directory")
        print()
        print("Run 'webdav-fs <command> --help' for more information.")
        return 1

    try:
        config = load_config(
            config_path=args.config,
            endpoint=args.endpoint,
            username=args.user,
            password=args.password,
            token_file=args.token_file,
            insecure=args.insecure,
            debug=args.verbose,
        )
        setup_logging(config.logging)
        from . import __version__

        logger.info("Starting webdav-fs v%s against %s", __version__, config.webdav.endpoint)

        fs = build_fs(config)
    except ValueError as e:
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except FileNotFoundError as e:
        print(f"[ERROR] {e}")
        return 1
    except Exception as e:
        logger.exception("Failed to create client: %s", e)
        print(f"[ERROR] Failed to create client: {e}")
        return 1

    try:
        return handler(fs, args)
    except Exception as e:
        logger.exception("%s failed: %s", args.command, e)
        print(f"[ERROR] {args.command} failed: {e}")
        return 1
    finally:
        try:
            fs.close()
        except Exception as e:
            logger.warning("Error closing client: %s", e)


if __name__ == "__main__":
    sys.exit(main() or 0)
