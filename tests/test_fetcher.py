from __future__ import annotations

import pytest
from fakes import (
    FakeGitHubSession,
    _DummyResponse,
    _DummySession,
    draft_node,
    item_node,
    items_data,
)

from issuevault.errors import RemoteShapeError
from issuevault.fetcher import fetch_issue_node_id, fetch_project_issues, parse_item, update_issue
from issuevault.github_api import GitHubClient
from issuevault.models import NO_STATUS, ProjectRef

REF = ProjectRef(owner_type="organization", owner="acme", number=7)


def test_parse_item_defaults():
    node = item_node(5, "Bare")
    node["content"].pop("assignees")
    node["content"].pop("labels")
    node["content"].pop("state")
    issue, iteration = parse_item(node)
    assert issue.status == NO_STATUS
    assert issue.assignees == []
    assert issue.labels == []
    assert issue.state == "OPEN"
    assert issue.repository == "acme/widgets"
    assert iteration is None


def test_parse_item_skips_non_issue_content():
    assert parse_item(draft_node()) is None
    assert parse_item({"id": "x", "content": None}) is None


def test_pagination_walks_every_page_sequentially():
    session = FakeGitHubSession(
        item_pages=[
            [item_node(1, "One", status="Todo"), draft_node()],
            [item_node(2, "Two", status="Done", assignees=("Alice",))],
            [item_node(3, "Three")],
        ]
    )
    issues = fetch_project_issues(GitHubClient(token="tkn", session=session), REF)
    assert [i.number for i in issues] == [1, 2, 3]
    assert [i.status for i in issues] == ["Todo", "Done", NO_STATUS]
    assert issues[1].assignees == ["Alice"]
    cursors = [call[2]["variables"]["cursor"] for call in session.calls]
    assert cursors == [None, "page1", "page2"]


def test_iteration_filter_keeps_matching_items_only():
    session = FakeGitHubSession(
        item_pages=[
            [
                item_node(1, "Now", iteration_id="it_b"),
                item_node(2, "Before", iteration_id="it_a"),
                item_node(3, "Unplanned"),
            ]
        ]
    )
    issues = fetch_project_issues(GitHubClient(token="tkn", session=session), REF, "it_b")
    assert [i.number for i in issues] == [1]


def test_unreadable_items_raise_shape_error():
    session = _DummySession([_DummyResponse(200, {"data": {"organization": {"projectV2": None}}})])
    with pytest.raises(RemoteShapeError) as excinfo:
        fetch_project_issues(GitHubClient(token="tkn", session=session), REF)
    assert excinfo.value.kind == "missing_project"


def test_items_query_uses_page_size_100():
    session = _DummySession([_DummyResponse(200, {"data": items_data([])})])
    fetch_project_issues(GitHubClient(token="tkn", session=session), REF)
    assert "items(first: 100, after: $cursor)" in session.request_log[0][2]["json"]["query"]


def test_issue_node_lookup_missing_issue():
    session = _DummySession([_DummyResponse(200, {"data": {"repository": {"issue": None}}})])
    with pytest.raises(RemoteShapeError) as excinfo:
        fetch_issue_node_id(GitHubClient(token="tkn", session=session), "acme", "widgets", 9)
    assert excinfo.value.kind == "missing_issue"
    assert "acme/widgets#9" in str(excinfo.value)


def test_update_issue_looks_up_id_then_mutates():
    session = FakeGitHubSession()
    node_id = update_issue(
        GitHubClient(token="tkn", session=session), "acme", "widgets", 12, "New title", "Body"
    )
    assert node_id == "I_12"
    assert session.updates == [{"issueId": "I_12", "title": "New title", "body": "Body"}]
    lookup = session.calls[0][2]["variables"]
    assert lookup == {"owner": "acme", "repo": "widgets", "number": 12}
