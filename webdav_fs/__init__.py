__version__ = "3.0.0"

# Public API exports
from .adapter import (
    FS_TYPE,
    TYPE_KEY,
    RemoteEntryStat,
    WebDAVFS,
    convert_stat,
    create_webdav_fs,
    execute_callback_async,
)
from .client import FileStat, RemoteReadStream, RemoteWriteStream, WebDAVClient, create_client
from .config import (
    AppConfig,
    ClientOptions,
    ConnectionConfig,
    LogConfig,
    WebDAVConfig,
    load_config,
)
from .remote_client import RemoteClient

__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "ClientOptions",
    "ConnectionConfig",
    "LogConfig",
    "WebDAVConfig",
    "load_config",
    # Clients
    "RemoteClient",
    "WebDAVClient",
    "FileStat",
    "RemoteReadStream",
    "RemoteWriteStream",
    "create_client",
    # Adapter
    "TYPE_KEY",
    "FS_TYPE",
    "WebDAVFS",
    "RemoteEntryStat",
    "convert_stat",
    "execute_callback_async",
    "create_webdav_fs",
]
