"""Local file header codec.

A managed file starts with a fenced block carrying exactly one field::

    ---
    url: "https://github.com/acme/widgets/issues/42"
    ---

    <body>

Repository and issue number are derived from the URL, never stored, so the
header cannot go stale. Decoding never raises: files without a parseable
header are simply not ours.
"""

from __future__ import annotations

import json
import re
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

import yaml

from .models import LocalIssueRecord, RemoteIssue

_HEADER_BLOCK = re.compile(r"\A---\n(.*?)\n---(?:\n|\Z)", re.DOTALL)
_BODY_AFTER_HEADER = re.compile(r"\A---\n.*?\n---(?:\n\n?|\Z)(.*)\Z", re.DOTALL)
_ISSUE_URL = re.compile(r"/([^/\s]+)/([^/\s]+)/issues/(\d+)/?(?:[?#].*)?$")

INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
WINDOWS_RESERVED_NAMES = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$", re.IGNORECASE)
MAX_FILENAME_LENGTH = 200

_LEADING_NUMBER = re.compile(r"^\(\d+\)\s*")


def parse_issue_url(url: str) -> LocalIssueRecord | None:
    m = _ISSUE_URL.search(url.strip())
    if not m:
        return None
    return LocalIssueRecord(
        url=url.strip(), owner=m.group(1), repo=m.group(2), number=int(m.group(3))
    )


def _load_header_fields(block: str) -> dict[str, Any] | None:
    try:
        fields = yaml.safe_load(block)
    except yaml.YAMLError:
        return None
    return fields if isinstance(fields, dict) else None


def parse_header(content: str) -> LocalIssueRecord | None:
    """Decode the header of ``content``; None when absent or unparseable."""
    if not content:
        return None
    m = _HEADER_BLOCK.match(content.replace("\r\n", "\n"))
    if not m:
        return None
    fields = _load_header_fields(m.group(1))
    if fields is None:
        return None
    url = fields.get("url")
    if not isinstance(url, str):
        return None
    return parse_issue_url(url)


def render_header(url: str) -> str:
    # JSON string escaping is a valid YAML double-quoted scalar
    return f"---\nurl: {json.dumps(url)}\n---"


def render_issue_file(url: str, body: str) -> str:
    return f"{render_header(url)}\n\n{body}"


def extract_body(content: str) -> str:
    """Return everything after the header block (or the whole content)."""
    m = _BODY_AFTER_HEADER.match(content.replace("\r\n", "\n"))
    return m.group(1) if m else content


def sanitize_filename(name: str) -> str:
    sanitized = INVALID_FILENAME_CHARS.sub("-", name)
    sanitized = re.sub(r"-+", "-", sanitized)
    sanitized = sanitized.strip("- \t\n")
    if WINDOWS_RESERVED_NAMES.match(sanitized):
        sanitized = f"{sanitized}_"
    if not sanitized:
        sanitized = "untitled"
    return sanitized[:MAX_FILENAME_LENGTH]


def issue_filename(issue: RemoteIssue, *, with_repository: bool = False) -> str:
    """File stem for an issue: ``"Title (123)"``.

    ``with_repository`` inserts ``[owner-repo]`` before the number, used when
    issues from different repositories would otherwise share a stem.
    """
    title = sanitize_filename(issue.title)
    if with_repository:
        return f"{title} [{sanitize_filename(issue.repository)}] ({issue.number})"
    return f"{title} ({issue.number})"


def issue_filenames(issues: Iterable[RemoteIssue]) -> dict[tuple[str, int], str]:
    """Map each issue identity to a file stem that no other issue uses."""
    issues = list(issues)
    owners: dict[str, set[tuple[str, int]]] = defaultdict(set)
    for issue in issues:
        owners[issue_filename(issue).casefold()].add(issue.identity)
    stems: dict[tuple[str, int], str] = {}
    for issue in issues:
        shared = len(owners[issue_filename(issue).casefold()]) > 1
        stems[issue.identity] = issue_filename(issue, with_repository=shared)
    return stems


def title_from_filename(
    stem: str, number: int | None = None, repository: str | None = None
) -> str:
    """Recover an issue title from a file's display name.

    Strips a leading ``(N)`` prefix, and the trailing `` (N)`` suffix written
    by :func:`issue_filename` when it matches ``number``. A ``[owner-repo]``
    marker left before that suffix is stripped when it matches ``repository``.
    """
    title = _LEADING_NUMBER.sub("", stem)
    if number is not None:
        suffix = f"({number})"
        if title.endswith(suffix):
            title = title[: -len(suffix)].rstrip()
            if repository is not None:
                marker = f"[{sanitize_filename(repository)}]"
                if title.endswith(marker):
                    title = title[: -len(marker)]
    return title.strip()


__all__ = [
    "extract_body",
    "issue_filename",
    "issue_filenames",
    "parse_header",
    "parse_issue_url",
    "render_header",
    "render_issue_file",
    "sanitize_filename",
    "title_from_filename",
]
