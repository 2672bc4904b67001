"""issuevault - two-way sync between a GitHub Project and a markdown vault.

High-level public API:

from issuevault import FileSystemStore, GitHubClient, load_config, pull, resolve_auth

cfg = load_config("issuevault.config.yaml")
auth = resolve_auth(cfg)
client = GitHubClient(token=auth.token, base_host=cfg.base_url, retry=cfg.retry)
result = pull(cfg, client, FileSystemStore(cfg.vault_root), auth, archive=True)
print(result.issue_count, result.archived_count)

The CLI (``issuevault pull|push|cleanup|open|login|logout|whoami``) is a thin
layer over these functions.
"""

from __future__ import annotations

from .auth import AuthState, resolve_auth
from .config import SyncConfig, load_config
from .errors import (
    ConfigurationError,
    IssueVaultError,
    LocalShapeError,
    RemoteShapeError,
    RemoteUnavailableError,
)
from .github_api import GitHubClient
from .orchestrator import PullResult, PushResult, cleanup, open_url, pull, push
from .store import FileSystemStore

# Version constant (keep in sync with pyproject.toml)
__version__ = "0.3.0"

__all__ = [
    "AuthState",
    "ConfigurationError",
    "FileSystemStore",
    "GitHubClient",
    "IssueVaultError",
    "LocalShapeError",
    "PullResult",
    "PushResult",
    "RemoteShapeError",
    "RemoteUnavailableError",
    "SyncConfig",
    "__version__",
    "cleanup",
    "load_config",
    "open_url",
    "pull",
    "push",
    "resolve_auth",
]
