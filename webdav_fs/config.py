import asyncio
import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class WebDAVConfig:
    endpoint: str
    username: str | None = None
    password: str | None = None
    token_file: str | None = None  # Saved OAuth authorized-user token (JSON)
    verify_ssl: bool = True


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30
    max_workers: int = 4  # Threads serving remote requests


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = "webdav-fs.log"
    console: bool = True


@dataclass
class AppConfig:
    webdav: WebDAVConfig
    connection: ConnectionConfig
    logging: LogConfig


@dataclass
class ClientOptions:
    """
    Connection options for the remote client.

    Every field is optional; absent fields fall back to the client's own
    defaults. ``http_client`` overrides the transport (an ``httpx.Client``),
    ``token`` is an OAuth token mapping (``access_token``/``token_type``)
    or a google-auth credentials object, and ``loop`` binds callback
    delivery to an asyncio event loop.
    """

    username: str | None = None
    password: str | None = None
    http_client: Any = None
    token: Any = None
    timeout_seconds: int | None = None
    verify_ssl: bool = True
    max_workers: int | None = None
    loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def from_config(cls, config: AppConfig, token: Any = None) -> "ClientOptions":
        return cls(
            username=config.webdav.username,
            password=config.webdav.password,
            token=token,
            timeout_seconds=config.connection.timeout_seconds,
            verify_ssl=config.webdav.verify_ssl,
            max_workers=config.connection.max_workers,
        )


def _parse_int(section: configparser.SectionProxy, key: str) -> int:
    value = section.get(key)
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid {key} value in config: '{value}' - must be an integer")


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.
    CLI arguments take precedence over config file.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If the endpoint is missing or a value is malformed.
    """
    webdav_config = {
        "endpoint": None,
        "username": None,
        "password": None,
        "token_file": None,
        "verify_ssl": True,
    }
    connection_config = {
        "timeout_seconds": 30,
        "max_workers": 4,
    }
    log_config = {
        "level": "INFO",
        "file": "webdav-fs.log",
        "console": True,
    }

    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        if parser.has_section("webdav"):
            webdav_section = parser["webdav"]
            for key in ("endpoint", "username", "password", "token_file"):
                if webdav_section.get(key):
                    webdav_config[key] = webdav_section.get(key)
            if webdav_section.get("verify_ssl"):
                webdav_config["verify_ssl"] = _parse_bool(webdav_section.get("verify_ssl"))

        if parser.has_section("connection"):
            conn_section = parser["connection"]
            for key in ("timeout_seconds", "max_workers"):
                if conn_section.get(key):
                    connection_config[key] = _parse_int(conn_section, key)

        if parser.has_section("logging"):
            log_section = parser["logging"]
            if log_section.get("level"):
                log_config["level"] = log_section.get("level")
            # An empty file value disables the file handler
            if "file" in log_section:
                log_config["file"] = log_section.get("file")
            if log_section.get("console"):
                log_config["console"] = _parse_bool(log_section.get("console"))

    # Override with CLI arguments (cli_args take precedence)
    for key in ("endpoint", "username", "password", "token_file"):
        if cli_args.get(key) is not None:
            webdav_config[key] = cli_args[key] or None
    if cli_args.get("insecure"):
        webdav_config["verify_ssl"] = False
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    endpoint = webdav_config["endpoint"]
    if not endpoint:
        raise ValueError("Missing required configuration fields: endpoint")
    if not endpoint.startswith(("http://", "https://")):
        raise ValueError(f"Invalid endpoint: {endpoint}. Must start with http:// or https://")

    if connection_config["max_workers"] < 1:
        raise ValueError(
            f"Invalid max_workers value: {connection_config['max_workers']} - must be at least 1"
        )

    return AppConfig(
        webdav=WebDAVConfig(
            endpoint=endpoint,
            username=webdav_config["username"],
            password=webdav_config["password"],
            token_file=webdav_config["token_file"],
            verify_ssl=webdav_config["verify_ssl"],
        ),
        connection=ConnectionConfig(
            timeout_seconds=connection_config["timeout_seconds"],
            max_workers=connection_config["max_workers"],
        ),
        logging=LogConfig(
            level=log_config["level"],
            file=log_config["file"],
            console=log_config["console"],
        ),
    )
