"""Error taxonomy & redaction.

Every failure the sync engine surfaces derives from ``IssueVaultError`` so the
CLI can report it uniformly. The hierarchy mirrors the kinds of failure a user
can act on:

- ``ConfigurationError``: bad/missing project URL, missing credential, missing
  asset repository. Raised before any network call.
- ``GitHubAPIError``: a transport level failure. ``transient`` is a typed tag
  derived from the HTTP status, consumed by :mod:`issuevault.retry`.
- ``RemoteUnavailableError``: transient failures persisted past the retry bound.
- ``RemoteShapeError``: the remote object graph lacks something we need
  (owner, project, fields, status field, issue).
- ``LocalShapeError``: a local file is not a managed record.

Public helpers:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import requests

TRANSIENT_STATUS_CODES = frozenset({429, 502, 503, 504})

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # classic tokens
    re.compile(r"gho_[A-Za-z0-9]{20,40}"),  # OAuth tokens
    re.compile(r"github_pat_\w{20,}"),  # fine-grained tokens
    re.compile(r"(?i)bearer\s+[A-Za-z0-9_\-\.]{20,}"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class IssueVaultError(RuntimeError):
    """Base class for all errors raised by issuevault."""

    category = "generic"


class ConfigurationError(IssueVaultError):
    category = "configuration"


class GitHubAPIError(IssueVaultError):
    """Raised when the GitHub REST/GraphQL API returns an error."""

    category = "remote"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
        transient: bool | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text
        if transient is None:
            transient = status in TRANSIENT_STATUS_CODES
        self.transient = transient


class GraphQLError(GitHubAPIError):
    """A 200 response whose payload carries a populated ``errors`` list."""

    def __init__(self, errors: list[Any]):
        messages = ", ".join(
            str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
        )
        super().__init__(f"GraphQL errors: {messages}", status=200, transient=False)
        self.errors = errors


class RemoteUnavailableError(GitHubAPIError):
    category = "remote.unavailable"

    def __init__(self, last_error: BaseException, attempts: int):
        status = getattr(last_error, "status", None)
        super().__init__(
            f"GitHub API unavailable after {attempts} attempts: {last_error}",
            status=status,
            response_text=getattr(last_error, "response_text", None),
            transient=True,
        )
        self.last_error = last_error
        self.attempts = attempts


class RemoteShapeError(IssueVaultError):
    category = "remote.shape"

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind


class LocalShapeError(IssueVaultError):
    category = "local.shape"


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact credential-looking substrings in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def is_transient(exc: BaseException) -> bool:
    """Return True for failures worth retrying.

    The decision is made from the exception type and its status tag; the
    message text is never inspected.
    """
    if isinstance(exc, GitHubAPIError):
        return exc.transient
    return isinstance(exc, (requests.Timeout, requests.ConnectionError))


def classify_error(exc: BaseException) -> ErrorInfo:
    msg = redact(str(exc)) if exc else ""
    name = exc.__class__.__name__
    if isinstance(exc, RemoteShapeError):
        return ErrorInfo(exc.category, msg, name, details={"kind": exc.kind})
    if isinstance(exc, GitHubAPIError):
        details = {"status": exc.status} if exc.status is not None else None
        category = exc.category
        if exc.status == 429:
            category = "remote.rate_limit"
        return ErrorInfo(category, msg, name, transient=exc.transient, details=details)
    if isinstance(exc, IssueVaultError):
        return ErrorInfo(exc.category, msg, name)
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return ErrorInfo("network", msg, name, transient=True)
    if isinstance(exc, OSError):
        return ErrorInfo("local.io", msg, name)
    return ErrorInfo("generic", msg, name)


__all__ = [
    "ConfigurationError",
    "ErrorInfo",
    "GitHubAPIError",
    "GraphQLError",
    "IssueVaultError",
    "LocalShapeError",
    "RemoteShapeError",
    "RemoteUnavailableError",
    "TRANSIENT_STATUS_CODES",
    "classify_error",
    "is_transient",
    "redact",
]
