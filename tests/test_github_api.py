from __future__ import annotations

import pytest
from fakes import _DummyResponse, _DummySession

from issuevault.errors import ConfigurationError, GitHubAPIError, GraphQLError
from issuevault.github_api import GitHubClient, api_urls, normalize_host
from issuevault.retry import RetryConfig


def _client(responses: list) -> tuple[GitHubClient, _DummySession]:
    session = _DummySession(responses)
    client = GitHubClient(
        token="tkn", session=session, retry=RetryConfig(attempts=5, base_delay=1.0)
    )
    return client, session


def test_missing_token_fails_before_any_request():
    session = _DummySession([])
    with pytest.raises(ConfigurationError):
        GitHubClient(token="", session=session)
    assert session.request_log == []


def test_api_urls_for_github_and_enterprise():
    assert api_urls("") == ("https://api.github.com", "https://api.github.com/graphql")
    assert api_urls("https://github.com/") == (
        "https://api.github.com",
        "https://api.github.com/graphql",
    )
    assert api_urls("ghe.example.com") == (
        "https://ghe.example.com/api/v3",
        "https://ghe.example.com/api/graphql",
    )
    assert normalize_host("http://ghe.example.com/") == "ghe.example.com"


def test_graphql_returns_data_and_sends_bearer():
    client, session = _client([_DummyResponse(200, {"data": {"viewer": {"login": "octo"}}})])
    data = client.graphql("query { viewer { login } }", {"x": 1})
    assert data == {"viewer": {"login": "octo"}}
    method, url, extra = session.request_log[0]
    assert (method, url) == ("POST", "https://api.github.com/graphql")
    assert extra["headers"]["Authorization"] == "Bearer tkn"
    assert extra["json"] == {"query": "query { viewer { login } }", "variables": {"x": 1}}


def test_graphql_error_payload_raises_without_retry(no_sleep):
    client, session = _client(
        [_DummyResponse(200, {"errors": [{"message": "Could not resolve to a User"}]})]
    )
    with pytest.raises(GraphQLError) as excinfo:
        client.graphql("query { x }")
    assert "Could not resolve" in str(excinfo.value)
    assert len(session.request_log) == 1
    assert no_sleep == []


def test_transient_status_is_retried_then_succeeds(no_sleep):
    client, session = _client(
        [
            _DummyResponse(503, {"message": "unavailable"}),
            _DummyResponse(504, {"message": "timeout"}),
            _DummyResponse(200, {"data": {"ok": True}}),
        ]
    )
    assert client.graphql("query { ok }") == {"ok": True}
    assert len(session.request_log) == 3
    assert no_sleep == [1.0, 2.0]


def test_malformed_json_is_not_retried(no_sleep):
    client, session = _client([_DummyResponse(200, ValueError("<html>oops</html>"))])
    with pytest.raises(GitHubAPIError) as excinfo:
        client.graphql("query { x }")
    assert excinfo.value.transient is False
    assert len(session.request_log) == 1


def test_rest_allowed_status_is_returned():
    client, session = _client([_DummyResponse(404, {"message": "Not Found"})])
    status, payload = client.rest(
        "GET", "repos/acme/assets/contents/images/a.png", allow_status=(404,)
    )
    assert (status, payload) == (404, None)
    assert session.request_log[0][1] == "https://api.github.com/repos/acme/assets/contents/images/a.png"


def test_rest_error_status_raises(no_sleep):
    client, _ = _client([_DummyResponse(401, {"message": "Bad credentials"})])
    with pytest.raises(GitHubAPIError) as excinfo:
        client.rest("GET", "user")
    assert excinfo.value.status == 401


def test_enterprise_client_uses_enterprise_endpoints():
    session = _DummySession([_DummyResponse(200, {"login": "me"})])
    client = GitHubClient(token="tkn", base_host="https://ghe.example.com", session=session)
    client.rest("GET", "user")
    assert session.request_log[0][1] == "https://ghe.example.com/api/v3/user"
    assert client.host == "ghe.example.com"
