"""Centralized retry / backoff helpers.

Provides ``run_with_retries`` which wraps a thunk in bounded exponential
backoff. Only failures tagged transient (see :func:`issuevault.errors.is_transient`)
are retried; anything else propagates on the first attempt.

Delays double from ``base_delay`` with no jitter: a single caller syncing one
vault gains nothing from spreading retries out.

Environment overrides:
  ISSUEVAULT_RETRY_ATTEMPTS (default 5)
  ISSUEVAULT_RETRY_BASE (seconds base, default 1.0)
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .errors import RemoteUnavailableError, is_transient
from .logging import get_logger

T = TypeVar("T")


def _env_attempts() -> int:
    return int(os.environ.get("ISSUEVAULT_RETRY_ATTEMPTS", "5"))


def _env_base_delay() -> float:
    return float(os.environ.get("ISSUEVAULT_RETRY_BASE", "1.0"))


@dataclass
class RetryConfig:
    attempts: int = field(default_factory=_env_attempts)
    base_delay: float = field(default_factory=_env_base_delay)


def compute_delay(attempt: int, cfg: RetryConfig) -> float:
    """Delay to wait after failed attempt ``attempt`` (1-based)."""
    return cfg.base_delay * (2 ** (attempt - 1))


def _describe(exc: BaseException) -> str:
    status = getattr(exc, "status", None)
    if status is not None:
        return f"status {status}"
    return str(exc) or exc.__class__.__name__


def run_with_retries(fn: Callable[[], T], *, cfg: RetryConfig | None = None) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    logger = get_logger()
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as exc:
            if not is_transient(exc):
                raise
            if attempt >= attempts:
                raise RemoteUnavailableError(exc, attempts) from exc
            delay = compute_delay(attempt, cfg)
            logger.warning(
                f"GitHub request failed ({_describe(exc)}), retrying "
                f"(attempt {attempt}/{attempts}) in {delay:.2f}s",
                attempt=attempt,
                attempts=attempts,
                error=_describe(exc),
            )
            time.sleep(delay)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "compute_delay", "run_with_retries"]
