"""
OAuth bearer-token support for WebDAV requests.

A token is either a plain mapping (``{"access_token": ..., "token_type": ...}``)
or a google-auth credentials object. Saved tokens can be loaded from disk;
expired authorized-user credentials are refreshed when a refresh token is
available.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TYPE = "Bearer"


class TokenAuth(httpx.Auth):
    """httpx auth flow that stamps an OAuth token onto every request."""

    def __init__(self, token: Any):
        self._token = token

    def header_value(self) -> str:
        if isinstance(self._token, Mapping):
            token_type = self._token.get("token_type") or DEFAULT_TOKEN_TYPE
            return f"{token_type} {self._token['access_token']}"

        # google-auth credentials know how to render their own header
        headers: dict[str, str] = {}
        self._token.apply(headers)
        return headers["authorization"]

    def auth_flow(self, request: httpx.Request):
        request.headers["Authorization"] = self.header_value()
        yield request


def load_token(token_file: str) -> Mapping | Credentials:
    """
    Load a saved OAuth token from disk.

    Files holding an ``access_token`` key are returned as plain mappings.
    Anything else is treated as google-auth authorized-user info and
    refreshed if it has expired.

    Raises:
        FileNotFoundError: If token_file doesn't exist.
        ValueError: If the file is not a usable token.
    """
    token_path = Path(token_file)
    if not token_path.exists():
        raise FileNotFoundError(f"Token file not found: {token_file}")

    try:
        info = json.loads(token_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Token file is not valid JSON: {token_file}") from e

    if not isinstance(info, dict):
        raise ValueError(f"Token file must contain a JSON object: {token_file}")

    if "access_token" in info:
        logger.debug("Loaded bearer token from %s", token_path)
        return info

    creds = Credentials.from_authorized_user_info(info)
    logger.debug("Loaded authorized-user credentials from %s", token_path)

    if creds.expired and creds.refresh_token:
        creds.refresh(Request())
        token_path.write_text(creds.to_json(), encoding="utf-8")
        logger.info("Refreshed access token and saved it to %s", token_path)

    return creds
