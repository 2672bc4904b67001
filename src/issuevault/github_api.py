from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests

from .errors import ConfigurationError, GitHubAPIError, GraphQLError
from .retry import RetryConfig, run_with_retries

GITHUB_HOST = "github.com"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
USER_AGENT = "issuevault/0.3.0"
HTTP_OK = 200
HTTP_ERROR_STATUS = 400
REQUEST_TIMEOUT = 30


def normalize_host(base_host: str | None) -> str:
    """Return the bare web host (``github.com`` or an Enterprise hostname)."""
    host = (base_host or "").strip()
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            host = host[len(prefix):]
    host = host.rstrip("/")
    return host or GITHUB_HOST


def api_urls(base_host: str | None) -> tuple[str, str]:
    """Return ``(rest_base, graphql_url)`` for github.com or an Enterprise host."""
    host = normalize_host(base_host)
    if host == GITHUB_HOST:
        return DEFAULT_API_URL, DEFAULT_GRAPHQL_URL
    return f"https://{host}/api/v3", f"https://{host}/api/graphql"


@dataclass
class GitHubClient:
    """Resilient REST/GraphQL client.

    Every request goes through :func:`issuevault.retry.run_with_retries`. A
    response with a retryable status becomes a transient ``GitHubAPIError``
    inside the retried thunk; any other failing status, an undecodable body, or
    a GraphQL ``errors`` list is raised immediately.
    """

    token: str
    base_host: str = ""
    session: requests.Session | None = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    _session: requests.Session = field(init=False, repr=False)
    _rest_base: str = field(init=False, repr=False)
    _graphql_url: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.token:
            raise ConfigurationError("Not authenticated. Provide a GitHub token first.")
        self._rest_base, self._graphql_url = api_urls(self.base_host)
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    @property
    def host(self) -> str:
        return normalize_host(self.base_host)

    # ---- transport ----------------------------------------------------
    def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
        allow_status: tuple[int, ...] = (),
    ) -> requests.Response:
        def _run() -> requests.Response:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )
            status = response.status_code
            if status >= HTTP_ERROR_STATUS and status not in allow_status:
                raise GitHubAPIError(
                    f"GitHub API {method} {url} failed with {status}",
                    status=status,
                    response_text=response.text,
                )
            return response

        return run_with_retries(_run, cfg=self.retry)

    @staticmethod
    def _decode(response: requests.Response, method: str, url: str) -> Any:
        if not response.text:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GitHubAPIError(
                f"GitHub API {method} {url} returned malformed JSON",
                status=response.status_code,
                response_text=response.text,
                transient=False,
            ) from exc

    # ---- REST ---------------------------------------------------------
    def rest(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
        allow_status: tuple[int, ...] = (),
    ) -> tuple[int, Any]:
        """Issue a REST call; returns ``(status, decoded_json)``.

        Statuses listed in ``allow_status`` are returned instead of raised,
        which lets callers treat e.g. 404 as an answer rather than a failure.
        """
        url = path if path.startswith("http") else f"{self._rest_base}/{path.lstrip('/')}"
        response = self._send(
            method, url, params=params, json_body=json_body, allow_status=allow_status
        )
        if response.status_code >= HTTP_ERROR_STATUS:
            return response.status_code, None
        return response.status_code, self._decode(response, method, url)

    # ---- GraphQL ------------------------------------------------------
    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = {"query": query, "variables": variables or {}}
        response = self._send("POST", self._graphql_url, json_body=payload)
        data = self._decode(response, "POST", self._graphql_url)
        if not isinstance(data, dict):
            raise GitHubAPIError(
                "GraphQL response was not a JSON object",
                status=response.status_code,
                response_text=response.text,
                transient=False,
            )
        errors = data.get("errors")
        if errors:
            raise GraphQLError(errors if isinstance(errors, list) else [errors])
        result = data.get("data")
        return result if isinstance(result, dict) else {}


__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_GRAPHQL_URL",
    "GITHUB_HOST",
    "GitHubClient",
    "api_urls",
    "normalize_host",
]
