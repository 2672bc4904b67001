from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .concurrency import ConcurrencyConfig
from .errors import ConfigurationError
from .retry import RetryConfig
from .store import join_path, normalize_path

DEFAULT_CONFIG_FILE = "issuevault.config.yaml"
DEFAULT_SYNC_FOLDER = "GitHub Issues"
DEFAULT_INDEX_FILE = "Board"
DEFAULT_ISSUES_FOLDER = "_issues"
DEFAULT_ARCHIVE_FOLDER = "_archive"
DEFAULT_IMAGE_BRANCH = "main"
DEFAULT_TOKEN_FILE = "~/.config/issuevault/credentials.json"


class ConfigError(ConfigurationError):
    pass


@dataclass
class SyncConfig:
    source_file: Path | None
    # GitHub
    base_url: str
    project_url: str
    token: str | None
    # Vault layout
    vault_root: Path
    sync_folder: str
    index_file: str
    issues_folder: str
    archive_folder: str
    # Sync behaviour
    only_my_issues: bool
    archive_on_pull: bool
    # Image hosting
    image_repo: str | None
    image_branch: str
    # Concurrency configuration
    concurrency_enabled: bool
    concurrency_max_workers: int
    # Retry configuration
    retry_attempts: int
    retry_base_delay: float
    # Logging configuration
    logging_json_enabled: bool
    logging_level: str
    # Credential storage
    auth_store: str
    auth_token_file: str
    auth_load_dotenv: bool
    auth_dotenv_path: str | None

    @property
    def issues_path(self) -> str:
        """Vault-relative folder holding one file per issue."""
        return join_path(self.sync_folder, self.issues_folder)

    @property
    def archive_path(self) -> str:
        return join_path(self.issues_path, self.archive_folder)

    @property
    def index_path(self) -> str:
        return join_path(self.sync_folder, f"{self.index_file}.md")

    @property
    def concurrency(self) -> ConcurrencyConfig:
        return ConcurrencyConfig(
            enabled=self.concurrency_enabled, max_workers=self.concurrency_max_workers
        )

    @property
    def retry(self) -> RetryConfig:
        return RetryConfig(attempts=self.retry_attempts, base_delay=self.retry_base_delay)


def _resolve_env_var(value: Any, env_var_name: str | None = None) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith("$"):
        env_name = env_var_name or value[1:]
        return os.getenv(env_name) or None
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return cast(dict[str, Any], value)


def _folder_name(value: Any, default: str, key: str) -> str:
    name = normalize_path(str(value)) if value is not None else default
    if not name:
        raise ConfigError(f"Config value '{key}' must not be empty")
    return name


def build_config(raw: dict[str, Any], source_file: Path | None = None) -> SyncConfig:
    """Turn a parsed mapping into a :class:`SyncConfig` (no file access)."""
    gh = _section(raw, "github")
    vault = _section(raw, "vault")
    sync = _section(raw, "sync")
    images = _section(raw, "images")
    concurrency_config = _section(raw, "concurrency")
    retry_config = _section(raw, "retry")
    logging_config = _section(raw, "logging")
    auth = _section(raw, "auth")

    base_dir = source_file.parent if source_file is not None else Path.cwd()
    vault_root = Path(os.path.expanduser(str(vault.get("root", "."))))
    if not vault_root.is_absolute():
        vault_root = base_dir / vault_root

    default_retry = RetryConfig()
    auth_store = str(auth.get("store", "file")).lower()
    if auth_store not in ("file", "keyring"):
        raise ConfigError(f"Unknown auth store '{auth_store}' (expected file or keyring)")

    return SyncConfig(
        source_file=source_file,
        base_url=str(gh.get("base_url") or ""),
        project_url=str(gh.get("project_url") or ""),
        token=_resolve_env_var(gh.get("token")),
        vault_root=vault_root,
        sync_folder=_folder_name(vault.get("sync_folder"), DEFAULT_SYNC_FOLDER, "sync_folder"),
        index_file=_folder_name(vault.get("index_file"), DEFAULT_INDEX_FILE, "index_file"),
        issues_folder=_folder_name(
            vault.get("issues_folder"), DEFAULT_ISSUES_FOLDER, "issues_folder"
        ),
        archive_folder=_folder_name(
            vault.get("archive_folder"), DEFAULT_ARCHIVE_FOLDER, "archive_folder"
        ),
        only_my_issues=bool(sync.get("only_my_issues", False)),
        archive_on_pull=bool(sync.get("archive_on_pull", False)),
        image_repo=_resolve_env_var(images.get("repo")) or None,
        image_branch=str(images.get("branch") or DEFAULT_IMAGE_BRANCH),
        concurrency_enabled=bool(concurrency_config.get("enabled", True)),
        concurrency_max_workers=int(concurrency_config.get("max_workers", 4)),
        retry_attempts=int(retry_config.get("attempts", default_retry.attempts)),
        retry_base_delay=float(retry_config.get("base_delay", default_retry.base_delay)),
        logging_json_enabled=bool(logging_config.get("json_enabled", False)),
        logging_level=str(logging_config.get("level", "INFO")),
        auth_store=auth_store,
        auth_token_file=str(auth.get("token_file") or DEFAULT_TOKEN_FILE),
        auth_load_dotenv=bool(auth.get("load_dotenv", True)),
        auth_dotenv_path=auth.get("dotenv_path"),
    )


def load_config(path: str | Path) -> SyncConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}")
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {p}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root must be a mapping: {p}")
    return build_config(cast(dict[str, Any], raw), source_file=p.resolve())


__all__ = ["ConfigError", "DEFAULT_CONFIG_FILE", "SyncConfig", "build_config", "load_config"]
