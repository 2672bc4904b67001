"""Credential resolution for issuevault.

A token is looked up, in order, in the config file, the environment (after
loading ``.env`` through python-dotenv) and the persistent credential store
written by ``issuevault login``. The authenticated login (needed for the
"only my issues" filter) is cached alongside the token or fetched from
``GET /user`` on demand.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import keyring
from dotenv import load_dotenv
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import ConfigurationError, GitHubAPIError
from .github_api import GitHubClient
from .logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from .config import SyncConfig

TOKEN_ENV_VARS = ("ISSUEVAULT_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")
_KEYRING_SERVICE = "issuevault"
_KEYRING_ACCOUNT = "github"
_DOTENV_LOCATIONS = (".env", ".env.local")


@dataclass
class AuthState:
    token: str
    username: str | None = None
    source: str = "config"


class CredentialStore(Protocol):  # pragma: no cover - interface only
    def get(self) -> AuthState | None: ...

    def set(self, token: str, username: str | None = None) -> None: ...

    def clear(self) -> None: ...


def _payload(token: str, username: str | None) -> str:
    return json.dumps(
        {
            "token": token,
            "username": username,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }
    )


def _parse_payload(raw: str, source: str) -> AuthState | None:
    try:
        data = json.loads(raw)
    except ValueError:
        get_logger().warning(f"Ignoring unreadable credentials from {source}")
        return None
    token = data.get("token") if isinstance(data, dict) else None
    if not isinstance(token, str) or not token:
        return None
    username = data.get("username")
    return AuthState(
        token=token, username=username if isinstance(username, str) else None, source=source
    )


class FileCredentialStore:
    """JSON file readable by the owner only."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def get(self) -> AuthState | None:
        if not self.path.exists():
            return None
        return _parse_payload(self.path.read_text(encoding="utf-8"), "file")

    def set(self, token: str, username: str | None = None) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(_payload(token, username))
        os.chmod(self.path, 0o600)
        get_logger().debug("Stored credentials", path=str(self.path))

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            get_logger().debug("Removed stored credentials", path=str(self.path))


class KeyringCredentialStore:
    """Credentials kept in the system keyring."""

    def __init__(self, service: str = _KEYRING_SERVICE, account: str = _KEYRING_ACCOUNT):
        self.service = service
        self.account = account

    def get(self) -> AuthState | None:
        try:
            secret = keyring.get_password(self.service, self.account)
        except KeyringError as exc:  # pragma: no cover - platform dependent
            get_logger().debug("Keyring unavailable", error=str(exc))
            return None
        if not isinstance(secret, str) or not secret:
            return None
        return _parse_payload(secret, "keyring")

    def set(self, token: str, username: str | None = None) -> None:
        try:
            keyring.set_password(self.service, self.account, _payload(token, username))
        except KeyringError as exc:
            raise ConfigurationError(f"Could not store token in keyring: {exc}") from exc

    def clear(self) -> None:
        try:
            keyring.delete_password(self.service, self.account)
        except PasswordDeleteError:
            return
        except KeyringError as exc:  # pragma: no cover - platform dependent
            get_logger().debug("Failed to remove keyring token", error=str(exc))


def build_credential_store(config: SyncConfig) -> CredentialStore:
    if config.auth_store == "keyring":
        return KeyringCredentialStore()
    return FileCredentialStore(config.auth_token_file)


def load_env_file(dotenv_path: str | None = None) -> bool:
    """Load the first ``.env`` file found; existing variables are kept."""
    candidates = [dotenv_path] if dotenv_path else list(_DOTENV_LOCATIONS)
    for location in candidates:
        env_file = Path(location).expanduser()
        if env_file.exists():
            load_dotenv(env_file)
            get_logger().debug(f"Loaded environment variables from {env_file}")
            return True
    return False


def token_from_env() -> tuple[str, str] | None:
    for var in TOKEN_ENV_VARS:
        token = os.getenv(var)
        if token:
            return token, var
    return None


def resolve_auth(config: SyncConfig, store: CredentialStore | None = None) -> AuthState:
    """Return the credential to use, or raise before any network call."""
    stored = store.get() if store is not None else None
    if config.token:
        username = stored.username if stored and stored.token == config.token else None
        return AuthState(token=config.token, username=username, source="config")
    if config.auth_load_dotenv:
        load_env_file(config.auth_dotenv_path)
    env = token_from_env()
    if env is not None:
        token, var = env
        get_logger().debug(f"Found GitHub token in {var}")
        username = stored.username if stored and stored.token == token else None
        return AuthState(token=token, username=username, source=f"env:{var}")
    if stored is not None:
        return stored
    raise ConfigurationError(
        "Not authenticated. Run 'issuevault login --token <token>' or set "
        f"one of {', '.join(TOKEN_ENV_VARS)}."
    )


def fetch_login(client: GitHubClient) -> str:
    """The login of the user owning the token (``GET /user``)."""
    _, data = client.rest("GET", "user")
    login = data.get("login") if isinstance(data, dict) else None
    if not isinstance(login, str) or not login:
        raise GitHubAPIError("GET /user returned no login", transient=False)
    return login


def ensure_login(auth: AuthState, client: GitHubClient) -> str:
    if not auth.username:
        auth.username = fetch_login(client)
    return auth.username


__all__ = [
    "AuthState",
    "CredentialStore",
    "FileCredentialStore",
    "KeyringCredentialStore",
    "TOKEN_ENV_VARS",
    "build_credential_store",
    "ensure_login",
    "fetch_login",
    "load_env_file",
    "resolve_auth",
    "token_from_env",
]
