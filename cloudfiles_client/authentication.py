import logging
from typing import Mapping, Optional

import requests
from aiohttp_requests import requests as async_requests

from .config import AuthContext
from .exceptions import AuthFailedException

log = logging.getLogger(__name__)

default_auth_url = "https://auth.api.rackspacecloud.com/v1.0"


def _auth_headers(username: str, api_key: str) -> dict:
    return {"X-Auth-User": username, "X-Auth-Key": api_key}


def _context_from_response(status: int, headers: Mapping[str, str]) -> AuthContext:
    # A 401 means the credentials themselves were rejected
    if status == 401:
        raise AuthFailedException("Authentication failed: credentials were not accepted")
    if status // 100 != 2:
        raise AuthFailedException(f"Authentication failed with status {status}")

    storage_url: Optional[str] = headers.get("X-Storage-Url")
    auth_token: Optional[str] = headers.get("X-Auth-Token") or headers.get("X-Storage-Token")
    if not (storage_url and auth_token):
        raise AuthFailedException("Invalid response from the authentication service")
    return AuthContext(auth_token=auth_token, storage_url=storage_url.rstrip("/"))


def authenticate(username: str, api_key: str, auth_url: str = default_auth_url) -> AuthContext:
    """
    Run the v1.0 auth handshake and return the token and storage URL it hands back.
    """
    log.debug("Authenticating %s against %s", username, auth_url)
    resp = requests.get(auth_url, headers=_auth_headers(username, api_key))
    return _context_from_response(resp.status_code, resp.headers)


async def async_authenticate(username: str, api_key: str, auth_url: str = default_auth_url) -> AuthContext:
    log.debug("Authenticating %s against %s", username, auth_url)
    resp = await async_requests.get(auth_url, headers=_auth_headers(username, api_key))
    try:
        return _context_from_response(resp.status, resp.headers)
    finally:
        # Only the headers are needed, hand the connection back to the pool
        resp.release()
