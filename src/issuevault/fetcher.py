from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import RemoteShapeError
from .github_api import GitHubClient
from .logging import get_logger
from .models import NO_STATUS, ProjectRef, RemoteIssue
from .project import STATUS_FIELD_NAME
from .queries import GET_ISSUE, UPDATE_ISSUE, project_items_query


def _nodes(payload: Any) -> list[Any]:
    if isinstance(payload, Mapping):
        nodes = payload.get("nodes")
        if isinstance(nodes, list):
            return nodes
    return []


def _extract_facets(item: Mapping[str, Any]) -> tuple[str, str | None]:
    """Return ``(status, iteration_id)`` from an item's field values."""
    status = NO_STATUS
    iteration_id: str | None = None
    for value in _nodes(item.get("fieldValues")):
        if not isinstance(value, Mapping):
            continue
        field_info = value.get("field")
        field_name = field_info.get("name") if isinstance(field_info, Mapping) else None
        name = value.get("name")
        if (
            isinstance(field_name, str)
            and field_name.casefold() == STATUS_FIELD_NAME
            and isinstance(name, str)
            and name
        ):
            status = name
        if isinstance(value.get("iterationId"), str):
            iteration_id = value["iterationId"]
    return status, iteration_id


def parse_item(item: Mapping[str, Any]) -> tuple[RemoteIssue, str | None] | None:
    """Build a RemoteIssue from a project item node.

    Returns None for items without issue content (drafts, pull requests).
    """
    content = item.get("content")
    if not isinstance(content, Mapping) or not content.get("number"):
        return None
    status, iteration_id = _extract_facets(item)
    repository = content.get("repository")
    issue = RemoteIssue(
        number=int(content["number"]),
        title=str(content.get("title") or ""),
        body=str(content.get("body") or ""),
        repository=str(repository.get("nameWithOwner") or "")
        if isinstance(repository, Mapping)
        else "",
        url=str(content.get("url") or ""),
        status=status,
        state=str(content.get("state") or "OPEN"),
        assignees=[
            str(a["login"])
            for a in _nodes(content.get("assignees"))
            if isinstance(a, Mapping) and a.get("login")
        ],
        labels=[
            str(lbl["name"])
            for lbl in _nodes(content.get("labels"))
            if isinstance(lbl, Mapping) and lbl.get("name")
        ],
    )
    return issue, iteration_id


def fetch_project_issues(
    client: GitHubClient, ref: ProjectRef, iteration_id: str | None = None
) -> list[RemoteIssue]:
    """Walk every page of project items, one page at a time."""
    logger = get_logger()
    query = project_items_query(ref.root_field)
    issues: list[RemoteIssue] = []
    cursor: str | None = None
    page = 0
    while True:
        data = client.graphql(
            query, {"owner": ref.owner, "projectNumber": ref.number, "cursor": cursor}
        )
        owner_payload = data.get(ref.root_field)
        project = owner_payload.get("projectV2") if isinstance(owner_payload, Mapping) else None
        items = project.get("items") if isinstance(project, Mapping) else None
        if not isinstance(items, Mapping):
            raise RemoteShapeError(
                "missing_project",
                f"Project #{ref.number} items are not readable for {ref.owner}",
            )
        page += 1
        for node in _nodes(items):
            if not isinstance(node, Mapping):
                continue
            parsed = parse_item(node)
            if parsed is None:
                continue
            issue, item_iteration = parsed
            if iteration_id and item_iteration != iteration_id:
                continue
            issues.append(issue)
        page_info = items.get("pageInfo")
        if not isinstance(page_info, Mapping) or not page_info.get("hasNextPage"):
            break
        cursor = page_info.get("endCursor")
        if not cursor:
            break
    logger.debug("Fetched project items", pages=page, issue_count=len(issues))
    return issues


def fetch_issue_node_id(client: GitHubClient, owner: str, repo: str, number: int) -> str:
    data = client.graphql(GET_ISSUE, {"owner": owner, "repo": repo, "number": number})
    repository = data.get("repository")
    issue = repository.get("issue") if isinstance(repository, Mapping) else None
    node_id = issue.get("id") if isinstance(issue, Mapping) else None
    if not isinstance(node_id, str) or not node_id:
        raise RemoteShapeError(
            "missing_issue", f"Could not find issue {owner}/{repo}#{number}"
        )
    return node_id


def update_issue(
    client: GitHubClient,
    owner: str,
    repo: str,
    number: int,
    title: str,
    body: str,
) -> str:
    """Update an issue's title and body; returns the issue node id."""
    node_id = fetch_issue_node_id(client, owner, repo, number)
    client.graphql(UPDATE_ISSUE, {"issueId": node_id, "title": title, "body": body})
    return node_id


__all__ = ["fetch_issue_node_id", "fetch_project_issues", "parse_item", "update_issue"]
