import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import NoStorageUrlFoundException, NoTokenFoundException

TOKEN_ENV = "CLOUDFILES_AUTH_TOKEN"
STORAGE_URL_ENV = "CLOUDFILES_STORAGE_URL"


def storage_url(base_url: str, *segments: str) -> str:
    """Join the storage base URL and path segments with single slashes, in order"""
    return "/".join([base_url, *segments])


@dataclass(frozen=True)
class AuthContext:
    auth_token: str
    storage_url: str

    @classmethod
    def from_env(cls, token: Optional[str] = None, base_url: Optional[str] = None) -> "AuthContext":
        # Fall back to the environment for anything that isn't passed explicitly
        token = token or os.getenv(TOKEN_ENV)
        if not token:
            raise NoTokenFoundException(f"No auth token provided and {TOKEN_ENV} is not set")
        base_url = base_url or os.getenv(STORAGE_URL_ENV)
        if not base_url:
            raise NoStorageUrlFoundException(f"No storage URL provided and {STORAGE_URL_ENV} is not set")
        return cls(auth_token=token, storage_url=base_url.rstrip("/"))

    def storage_path(self, *segments: str) -> str:
        return storage_url(self.storage_url, *segments)
