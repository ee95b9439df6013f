"""
Credential storage for the sync service.

Holds the bearer token and the cached remote backup id. The sync service
never inspects the token beyond passing it through request headers.
"""

import json
import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """What the sync service needs from a credential backend."""

    def get_token(self) -> str | None: ...

    def set_token(self, token: str | None) -> None: ...

    def get_remote_id(self) -> str | None: ...

    def set_remote_id(self, remote_id: str | None) -> None: ...


class MemoryCredentialStore:
    """Session-only credentials (nothing touches disk)."""

    def __init__(self, token: str | None = None, remote_id: str | None = None):
        self._token = token
        self._remote_id = remote_id

    def get_token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        self._token = token

    def get_remote_id(self) -> str | None:
        return self._remote_id

    def set_remote_id(self, remote_id: str | None) -> None:
        self._remote_id = remote_id


class FileCredentialStore:
    """
    Credentials persisted to a small JSON file readable only by the owner.

    Used by the CLI, where every command runs in a fresh process.
    """

    TOKEN_KEY = "token"
    REMOTE_ID_KEY = "gist_id"

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable credentials file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not data:
            self.path.unlink(missing_ok=True)
            return
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def _set(self, key: str, value: str | None) -> None:
        data = self._load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
        self._save(data)

    def get_token(self) -> str | None:
        return self._load().get(self.TOKEN_KEY)

    def set_token(self, token: str | None) -> None:
        self._set(self.TOKEN_KEY, token)

    def get_remote_id(self) -> str | None:
        return self._load().get(self.REMOTE_ID_KEY)

    def set_remote_id(self, remote_id: str | None) -> None:
        self._set(self.REMOTE_ID_KEY, remote_id)
