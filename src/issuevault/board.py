"""Index ("board") rendering: issue links grouped under one heading per status."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

from .header import issue_filename
from .models import NO_STATUS, RemoteIssue, StatusOption
from .store import LocalStore, join_path

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def group_by_status(
    issues: Iterable[RemoteIssue], status_options: Sequence[StatusOption]
) -> dict[str, list[RemoteIssue]]:
    """Declared statuses first (remote order), then ``No Status``, then unknown
    statuses in first-seen order. Empty groups are dropped."""
    groups: dict[str, list[RemoteIssue]] = {opt.name: [] for opt in status_options}
    groups.setdefault(NO_STATUS, [])
    for issue in issues:
        groups.setdefault(issue.status or NO_STATUS, []).append(issue)
    return {status: members for status, members in groups.items() if members}


def issue_link(issue: RemoteIssue, issues_folder: str, stem: str | None = None) -> str:
    target = join_path(issues_folder, stem or issue_filename(issue))
    return f"- [[{target}|{issue.title}]]"


def render_index(
    issues: Iterable[RemoteIssue],
    status_options: Sequence[StatusOption],
    project_title: str,
    iteration_title: str | None,
    issues_folder: str,
    now: datetime | None = None,
    filenames: Mapping[tuple[str, int], str] | None = None,
) -> str:
    stems = filenames or {}
    lines = [f"# {project_title}"]
    if iteration_title:
        lines.append(f"**Current Iteration:** {iteration_title}")
    lines.append("")
    lines.append(f"*Last synced: {(now or datetime.now()).strftime(TIMESTAMP_FORMAT)}*")
    lines.append("")
    for status, members in group_by_status(issues, status_options).items():
        lines.append(f"## {status}")
        lines.append("")
        lines.extend(
            issue_link(issue, issues_folder, stems.get(issue.identity)) for issue in members
        )
        lines.append("")
    return "\n".join(lines)


def write_index(store: LocalStore, path: str, content: str) -> str:
    store.write_text(path, content)
    return path


__all__ = ["group_by_status", "issue_link", "render_index", "write_index"]
