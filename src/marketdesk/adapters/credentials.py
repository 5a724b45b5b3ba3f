"""Marketplace credential storage, injected into clients and providers."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Protocol

from marketdesk.core.models import Platform


@dataclass(frozen=True, slots=True)
class PlatformCredentials:
    """Resolved credentials for one marketplace."""

    platform: Platform
    access_token: str
    user_id: str | None = None
    refresh_token: str | None = None
    token_expires_at: int | None = None


class CredentialStore(Protocol):
    def get_credentials(self, platform: Platform) -> PlatformCredentials | None: ...


def is_connected(store: CredentialStore, platform: Platform) -> bool:
    """True when the platform has a usable access token."""
    credentials = store.get_credentials(platform)
    return bool(credentials and credentials.access_token)


class InMemoryCredentialStore:
    """Dict-backed store for programmatic use and tests."""

    def __init__(self, credentials: list[PlatformCredentials] | None = None) -> None:
        self._credentials: dict[Platform, PlatformCredentials] = {
            cred.platform: cred for cred in credentials or []
        }

    def get_credentials(self, platform: Platform) -> PlatformCredentials | None:
        return self._credentials.get(platform)

    def save_credentials(self, credentials: PlatformCredentials) -> None:
        self._credentials[credentials.platform] = credentials

    def delete_credentials(self, platform: Platform) -> None:
        self._credentials.pop(platform, None)


class EnvCredentialStore:
    """Reads tokens from the environment.

    - ML_ACCESS_TOKEN (optional ML_USER_ID)
    - BM_API_TOKEN
    """

    def get_credentials(self, platform: Platform) -> PlatformCredentials | None:
        if platform == "mercadolibre":
            token = os.getenv("ML_ACCESS_TOKEN", "").strip()
            if not token:
                return None
            user_id = os.getenv("ML_USER_ID", "").strip() or None
            return PlatformCredentials(platform, access_token=token, user_id=user_id)
        token = os.getenv("BM_API_TOKEN", "").strip()
        if not token:
            return None
        return PlatformCredentials(platform, access_token=token)


class ChainedCredentialStore:
    """Returns the first credentials found across several stores."""

    def __init__(self, *stores: CredentialStore) -> None:
        self._stores = stores

    def get_credentials(self, platform: Platform) -> PlatformCredentials | None:
        for store in self._stores:
            credentials = store.get_credentials(platform)
            if credentials and credentials.access_token:
                return credentials
        return None
