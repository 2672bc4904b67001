"""Runtime helpers for issuevault CLI orchestration."""

from __future__ import annotations

import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from .config import SyncConfig, build_config, load_config
from .errors import IssueVaultError, classify_error
from .logging import configure_logging, get_logger

CONFIG_OPTIONAL_COMMANDS = frozenset({"login", "logout", "whoami"})


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any, *, loader: Callable[[str], SyncConfig] = load_config
) -> SyncConfig:
    """Load the SyncConfig for the given argparse namespace and apply overrides."""
    if not hasattr(args, "config"):
        raise AttributeError("Command namespace is missing 'config' attribute")
    if getattr(args, "cmd", None) in CONFIG_OPTIONAL_COMMANDS and not Path(args.config).exists():
        cfg = build_config({})
    else:
        cfg = loader(args.config)
    vault_override = getattr(args, "vault", None)
    if vault_override:
        cfg.vault_root = Path(vault_override).expanduser().resolve()
    configure_logging(json_logging=cfg.logging_json_enabled, level=cfg.logging_level)
    if getattr(args, "quiet", False):
        get_logger().set_level("WARNING")
    return cfg


def report_error(exc: BaseException) -> None:
    info = classify_error(exc)
    print(f"[issuevault] {info.category}: {info.message}", file=sys.stderr)


def execute_command(handler: _HandlerCallable, args: Any, command: str) -> int:
    """Run a command handler, timing it and mapping issuevault errors to exit 1."""
    logger = get_logger()
    start = time.perf_counter()
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
    except IssueVaultError as exc:
        logger.debug("Command failed", command=command, error=exc.__class__.__name__)
        report_error(exc)
        exit_code = 1
    logger.log_performance(
        f"command_{command}", (time.perf_counter() - start) * 1000, exit_code=exit_code
    )
    return exit_code


__all__ = ["execute_command", "prepare_config", "report_error"]
