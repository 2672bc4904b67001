from __future__ import annotations

import requests

from issuevault.errors import (
    ConfigurationError,
    GitHubAPIError,
    GraphQLError,
    LocalShapeError,
    RemoteShapeError,
    RemoteUnavailableError,
    classify_error,
    is_transient,
    redact,
)


def test_transient_tag_comes_from_status_not_message():
    assert GitHubAPIError("x", status=503).transient is True
    assert GitHubAPIError("rate limit exceeded", status=403).transient is False
    assert GraphQLError([{"message": "timeout"}]).transient is False
    assert is_transient(requests.Timeout())
    assert not is_transient(RuntimeError("503 Service Unavailable"))


def test_classify_rate_limit():
    info = classify_error(GitHubAPIError("slow down", status=429))
    assert info.category == "remote.rate_limit"
    assert info.transient is True
    assert info.details == {"status": 429}


def test_classify_shape_errors_keep_kind():
    info = classify_error(RemoteShapeError("missing_status_field", "Could not find Status field"))
    assert info.category == "remote.shape"
    assert info.details == {"kind": "missing_status_field"}
    assert classify_error(LocalShapeError("no header")).category == "local.shape"
    assert classify_error(ConfigurationError("bad url")).category == "configuration"


def test_classify_unavailable():
    err = RemoteUnavailableError(GitHubAPIError("gateway", status=502), attempts=5)
    info = classify_error(err)
    assert info.category == "remote.unavailable"
    assert info.details == {"status": 502}


def test_classify_network_and_generic():
    assert classify_error(requests.ConnectionError("reset")).category == "network"
    assert classify_error(FileNotFoundError("x.md")).category == "local.io"
    assert classify_error(ValueError("Some other problem")).category == "generic"


def test_redact_tokens():
    sample = (
        "Token ghp_ABCDEFGHIJKLMNOPQRSTUVWX plus github_pat_1234567890abcdefghijkl "
        "and header Bearer abcdefghijklmnopqrstuvwxyz123456"
    )
    out = redact(sample)
    assert "ghp_" not in out
    assert "github_pat_" not in out
    assert "abcdefghijklmnopqrstuvwxyz123456" not in out
    assert "<redacted>" in out


def test_classify_redacts_message():
    info = classify_error(ConfigurationError("token ghp_ABCDEFGHIJKLMNOPQRSTUVWX rejected"))
    assert "ghp_" not in info.message
