"""Scripted stand-ins for the GitHub HTTP API used across the test suite."""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass
from typing import Any


@dataclass
class _DummyResponse:
    status_code: int
    payload: Any

    def json(self) -> Any:
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    @property
    def text(self) -> str:
        payload = self.payload
        if payload is None:
            return ""
        if isinstance(payload, (dict, list)):
            return json.dumps(payload)
        return str(payload)


class _DummySession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: list[Any]):
        self._responses = responses
        self.request_log: list[tuple[str, str, dict[str, Any]]] = []
        self.headers: dict[str, str] = {}

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: Any | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> _DummyResponse:
        self.request_log.append((method, url, {"headers": headers, "json": json, "params": params}))
        if not self._responses:
            raise AssertionError("No response queued for request")
        nxt = self._responses.pop(0)
        if isinstance(nxt, BaseException):
            raise nxt
        return nxt


def status_field(names: list[str]) -> dict[str, Any]:
    return {
        "id": "F_status",
        "name": "Status",
        "options": [{"id": f"opt_{i}", "name": n, "color": "GRAY"} for i, n in enumerate(names)],
    }


def iteration_field(iterations: list[tuple[str, str, str, int]]) -> dict[str, Any]:
    """``iterations`` holds ``(id, title, startDate, duration)`` tuples."""
    return {
        "id": "F_iter",
        "name": "Sprint",
        "configuration": {
            "iterations": [
                {"id": i, "title": t, "startDate": s, "duration": d} for i, t, s, d in iterations
            ]
        },
    }


def metadata_data(
    fields: list[dict[str, Any]],
    *,
    root: str = "organization",
    title: str = "Roadmap",
) -> dict[str, Any]:
    return {root: {"projectV2": {"id": "PVT_1", "title": title, "fields": {"nodes": fields}}}}


def item_node(
    number: int,
    title: str,
    *,
    body: str = "",
    status: str | None = None,
    repo: str = "acme/widgets",
    iteration_id: str | None = None,
    assignees: tuple[str, ...] = (),
    host: str = "github.com",
) -> dict[str, Any]:
    values: list[dict[str, Any]] = []
    if status is not None:
        values.append({"name": status, "field": {"name": "Status"}})
    if iteration_id is not None:
        values.append({"title": "Sprint", "iterationId": iteration_id, "field": {"name": "Sprint"}})
    return {
        "id": f"PVTI_{number}",
        "fieldValues": {"nodes": values},
        "content": {
            "number": number,
            "title": title,
            "body": body,
            "url": f"https://{host}/{repo}/issues/{number}",
            "state": "OPEN",
            "repository": {"nameWithOwner": repo},
            "assignees": {"nodes": [{"login": a} for a in assignees]},
            "labels": {"nodes": []},
        },
    }


def draft_node() -> dict[str, Any]:
    return {"id": "PVTI_draft", "fieldValues": {"nodes": []}, "content": {"title": "Draft idea"}}


def items_data(
    nodes: list[dict[str, Any]],
    *,
    root: str = "organization",
    end_cursor: str | None = None,
) -> dict[str, Any]:
    return {
        root: {
            "projectV2": {
                "items": {
                    "pageInfo": {"hasNextPage": end_cursor is not None, "endCursor": end_cursor},
                    "nodes": nodes,
                }
            }
        }
    }


class FakeGitHubSession:
    """Routes GraphQL operations and REST paths to an in-memory GitHub."""

    def __init__(
        self,
        *,
        metadata: dict[str, Any] | None = None,
        item_pages: list[list[dict[str, Any]]] | None = None,
        root: str = "organization",
        login: str = "octocat",
    ) -> None:
        self.headers: dict[str, str] = {}
        self.root = root
        self.metadata = metadata
        self.item_pages = item_pages or [[]]
        self.login = login
        self.calls: list[tuple[str, str, Any, Any]] = []
        self.updates: list[dict[str, Any]] = []
        self.assets: dict[str, bytes] = {}
        self.uploads: list[str] = []

    # -- helpers ------------------------------------------------------
    @property
    def operations(self) -> list[str]:
        ops = []
        for method, url, body, _ in self.calls:
            if url.endswith("/graphql"):
                query = body["query"]
                ops.append(query.split("(")[0].split()[-1])
            else:
                ops.append(f"{method} {url.split('/api.github.com/')[-1]}")
        return ops

    def _gql(self, data: Any) -> _DummyResponse:
        return _DummyResponse(200, {"data": data})

    def _graphql(self, body: dict[str, Any]) -> _DummyResponse:
        query = body["query"]
        variables = body.get("variables") or {}
        if "GetProjectMetadata" in query:
            return self._gql(self.metadata)
        if "GetProjectItems" in query:
            cursor = variables.get("cursor")
            index = 0 if cursor is None else int(cursor.removeprefix("page"))
            nxt = f"page{index + 1}" if index + 1 < len(self.item_pages) else None
            return self._gql(items_data(self.item_pages[index], root=self.root, end_cursor=nxt))
        if "GetIssue" in query:
            return self._gql(
                {"repository": {"issue": {"id": f"I_{variables['number']}", "number": variables["number"]}}}
            )
        if "UpdateIssue" in query:
            self.updates.append(variables)
            return self._gql({"updateIssue": {"issue": {"id": variables["issueId"]}}})
        raise AssertionError(f"Unexpected GraphQL document: {query[:40]}")

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: Any | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> _DummyResponse:
        self.calls.append((method, url, json, params))
        if url.endswith("/graphql"):
            return self._graphql(json)
        if url.endswith("/user"):
            return _DummyResponse(200, {"login": self.login})
        if "/contents/images/" in url:
            filename = url.rsplit("/", 1)[-1]
            if method == "GET":
                if filename not in self.assets:
                    return _DummyResponse(404, {"message": "Not Found"})
                data = self.assets[filename]
                sha = hashlib.sha1(f"blob {len(data)}\0".encode() + data).hexdigest()
                return _DummyResponse(200, {"name": filename, "sha": sha})
            if method == "PUT":
                self.assets[filename] = base64.b64decode(json["content"])
                self.uploads.append(filename)
                return _DummyResponse(201, {"content": {"name": filename}})
        raise AssertionError(f"Unexpected request {method} {url}")
