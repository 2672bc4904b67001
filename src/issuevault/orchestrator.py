"""Reconciliation engine: pull, push and archive-only cleanup.

Pull runs FetchingMetadata -> FetchingIssues -> WritingFiles -> WritingIndex
-> [Archiving]. Nothing is written before both fetches succeed. The store is
only ever written to or renamed in; files are never deleted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath

from .auth import AuthState, ensure_login
from .board import render_index, write_index
from .concurrency import run_bounded
from .config import SyncConfig
from .errors import ConfigurationError, LocalShapeError
from .fetcher import fetch_project_issues, update_issue
from .github_api import GitHubClient
from .header import (
    extract_body,
    issue_filename,
    issue_filenames,
    parse_header,
    parse_issue_url,
    render_issue_file,
    title_from_filename,
)
from .images import AssetHost, has_local_images, push_images, restore_local_images
from .logging import get_logger
from .models import LocalIssueRecord, ProjectMetadata, ProjectRef, RemoteIssue
from .project import fetch_project_metadata, parse_project_url
from .store import LocalStore, join_path, normalize_path, unique_path

ISSUE_FILE_SUFFIX = ".md"


@dataclass
class PullResult:
    issue_count: int
    archived_count: int
    index_path: str
    project_title: str = ""
    iteration_title: str | None = None
    written: list[str] = field(default_factory=list)
    archived: list[str] = field(default_factory=list)


@dataclass
class PushResult:
    number: int
    repository: str
    title: str
    uploaded: int = 0
    skipped: int = 0
    images_warning: bool = False


def project_ref(config: SyncConfig) -> ProjectRef:
    ref = parse_project_url(config.project_url)
    if ref is None:
        raise ConfigurationError(
            f"Invalid project URL {config.project_url!r}. Expected "
            "https://github.com/orgs/ORG/projects/N or https://github.com/users/USER/projects/N"
        )
    return ref


def issue_identity(issue: RemoteIssue) -> tuple[str, int]:
    record = parse_issue_url(issue.url) if issue.url else None
    return record.identity if record is not None else issue.identity


def fetch_scope(
    config: SyncConfig,
    client: GitHubClient,
    auth: AuthState,
    now: datetime | None = None,
) -> tuple[ProjectMetadata, list[RemoteIssue]]:
    """Metadata plus the issues in sync scope (current iteration, assignee)."""
    ref = project_ref(config)
    logger = get_logger()

    logger.log_operation("fetching_metadata", project=config.project_url)
    metadata = fetch_project_metadata(client, ref, now)
    iteration_id = metadata.current_iteration.id if metadata.current_iteration else None
    if metadata.has_iterations and iteration_id is None:
        logger.warning("Project has iterations but none is current; syncing all items")

    logger.log_operation("fetching_issues", iteration=iteration_id)
    issues = fetch_project_issues(client, ref, iteration_id)

    if config.only_my_issues:
        login = ensure_login(auth, client).casefold()
        issues = [i for i in issues if any(a.casefold() == login for a in i.assignees)]
        logger.debug("Filtered to assigned issues", login=login, issue_count=len(issues))
    return metadata, issues


def write_issue_file(
    store: LocalStore, folder: str, issue: RemoteIssue, stem: str | None = None
) -> str:
    path = join_path(folder, (stem or issue_filename(issue)) + ISSUE_FILE_SUFFIX)
    store.write_text(path, render_issue_file(issue.url, restore_local_images(issue.body)))
    get_logger().log_issue_action("written", f"#{issue.number}", path=path)
    return path


def list_managed_files(
    store: LocalStore, config: SyncConfig
) -> list[tuple[str, LocalIssueRecord]]:
    """Managed issue files directly inside the issues folder.

    Files without a valid header, non-markdown files and the index are skipped.
    """
    managed: list[tuple[str, LocalIssueRecord]] = []
    for path in store.list_files(config.issues_path):
        if not path.endswith(ISSUE_FILE_SUFFIX) or path == config.index_path:
            continue
        record = parse_header(store.read_text(path))
        if record is not None:
            managed.append((path, record))
    return managed


def archive_stale(
    store: LocalStore, config: SyncConfig, keep: set[tuple[str, int]]
) -> list[str]:
    """Move managed files whose identity is not in ``keep`` into the archive."""
    logger = get_logger()
    moved: list[str] = []
    for path, record in list_managed_files(store, config):
        if record.identity in keep:
            continue
        store.ensure_folder(config.archive_path)
        target = unique_path(store, join_path(config.archive_path, PurePosixPath(path).name))
        store.rename(path, target)
        logger.log_issue_action("archived", f"{record.repository}#{record.number}", path=target)
        moved.append(target)
    return moved


def pull(
    config: SyncConfig,
    client: GitHubClient,
    store: LocalStore,
    auth: AuthState,
    archive: bool | None = None,
    now: datetime | None = None,
) -> PullResult:
    archive = config.archive_on_pull if archive is None else archive
    logger = get_logger()
    with logger.timed_operation("pull", project=config.project_url):
        metadata, issues = fetch_scope(config, client, auth, now)

        logger.log_operation("writing_files", issue_count=len(issues))
        store.ensure_folder(config.issues_path)
        folder = config.issues_path
        stems = issue_filenames(issues)
        written = run_bounded(
            issues,
            lambda issue: write_issue_file(store, folder, issue, stems[issue.identity]),
            config.concurrency,
        )

        logger.log_operation("writing_index", path=config.index_path)
        iteration_title = metadata.current_iteration.title if metadata.current_iteration else None
        content = render_index(
            issues,
            metadata.status_options,
            metadata.title,
            iteration_title,
            config.issues_folder,
            now,
            stems,
        )
        write_index(store, config.index_path, content)

        archived: list[str] = []
        if archive:
            logger.log_operation("archiving")
            archived = archive_stale(store, config, {issue_identity(i) for i in issues})

    return PullResult(
        issue_count=len(issues),
        archived_count=len(archived),
        index_path=config.index_path,
        project_title=metadata.title,
        iteration_title=iteration_title,
        written=written,
        archived=archived,
    )


def cleanup(
    config: SyncConfig,
    client: GitHubClient,
    store: LocalStore,
    auth: AuthState,
    now: datetime | None = None,
) -> int:
    """Archive managed files that dropped out of the sync scope; writes nothing else."""
    logger = get_logger()
    with logger.timed_operation("cleanup", project=config.project_url):
        _, issues = fetch_scope(config, client, auth, now)
        archived = archive_stale(store, config, {issue_identity(i) for i in issues})
    return len(archived)


def read_record(store: LocalStore, path: str) -> tuple[LocalIssueRecord, str]:
    content = store.read_text(path)
    record = parse_header(content)
    if record is None:
        raise LocalShapeError(
            f"{path} does not appear to be a synced issue: missing or invalid url header"
        )
    return record, content


def push(
    config: SyncConfig,
    client: GitHubClient,
    store: LocalStore,
    path: str,
) -> PushResult:
    """Send one file's title and body to its issue, then rewrite the file."""
    logger = get_logger()
    record, content = read_record(store, path)
    original_body = extract_body(content)
    remote_body = original_body
    result = PushResult(number=record.number, repository=record.repository, title="")

    if has_local_images(original_body):
        if config.image_repo:
            host = AssetHost(client, config.image_repo, config.image_branch)
            images = push_images(original_body, store, host)
            remote_body = images.content
            result.uploaded = images.uploaded_count
            result.skipped = images.skipped_count
        else:
            result.images_warning = True
            logger.warning(
                "Local images found but no image hosting repo configured. "
                "Images will not display on GitHub.",
                path=path,
            )

    title = title_from_filename(PurePosixPath(path).stem, record.number, record.repository)
    if not title:
        raise LocalShapeError(f"Cannot derive an issue title from file name {path!r}")
    result.title = title

    with logger.timed_operation("push", issue=f"{record.repository}#{record.number}"):
        update_issue(client, record.owner, record.repo, record.number, title, remote_body)

    store.write_text(path, render_issue_file(record.url, original_body))
    logger.log_issue_action("pushed", f"{record.repository}#{record.number}", path=path)
    return result


def open_url(store: LocalStore, path: str) -> str:
    record, _ = read_record(store, path)
    return record.url


def vault_relative(config: SyncConfig, raw: str) -> str:
    """Map a command line path (absolute, cwd-relative or vault-relative) into the vault."""
    root = config.vault_root.resolve()
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        cwd_candidate = Path.cwd() / candidate
        if not cwd_candidate.exists():
            return normalize_path(raw)
        candidate = cwd_candidate
    resolved = candidate.resolve()
    if resolved != root and root not in resolved.parents:
        raise LocalShapeError(f"{raw} is outside the vault {root}")
    return resolved.relative_to(root).as_posix()


__all__ = [
    "PullResult",
    "PushResult",
    "archive_stale",
    "cleanup",
    "fetch_scope",
    "issue_identity",
    "list_managed_files",
    "open_url",
    "project_ref",
    "pull",
    "push",
    "read_record",
    "vault_relative",
    "write_issue_file",
]
