"""GitHub Project (v2) metadata resolution.

Turns the raw field list of a project into the ordered status options the
board is grouped by, plus the iteration list and the iteration that is
current "now".
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from .errors import RemoteShapeError
from .github_api import GitHubClient
from .logging import get_logger
from .models import Iteration, ProjectMetadata, ProjectRef, StatusOption
from .queries import project_metadata_query

_ORG_PROJECT = re.compile(r"/orgs/([^/]+)/projects/(\d+)")
_USER_PROJECT = re.compile(r"/users/([^/]+)/projects/(\d+)")

STATUS_FIELD_NAME = "status"


def parse_project_url(url: str | None) -> ProjectRef | None:
    """Parse ``https://{host}/orgs/{org}/projects/{n}`` (or ``/users/``)."""
    if not url:
        return None
    m = _ORG_PROJECT.search(url)
    if m:
        return ProjectRef(owner_type="organization", owner=m.group(1), number=int(m.group(2)))
    m = _USER_PROJECT.search(url)
    if m:
        return ProjectRef(owner_type="user", owner=m.group(1), number=int(m.group(2)))
    return None


def _as_utc(moment: datetime | date) -> datetime:
    if isinstance(moment, datetime):
        return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
    return datetime.combine(moment, time.min, tzinfo=timezone.utc)


def iteration_span(iteration: Iteration) -> tuple[datetime, datetime]:
    start = _as_utc(iteration.start_date)
    return start, start + timedelta(days=iteration.duration)


def select_current_iteration(
    iterations: Iterable[Iteration], now: datetime | date | None = None
) -> Iteration | None:
    """Pick the iteration whose span contains ``now``.

    When spans overlap the latest start wins; equal starts keep the first
    declared iteration.
    """
    moment = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    active = [
        it
        for it in iterations
        if iteration_span(it)[0] <= moment <= iteration_span(it)[1]
    ]
    if not active:
        return None
    return max(active, key=lambda it: it.start_date)


def _parse_iteration(node: Mapping[str, Any]) -> Iteration | None:
    raw_start = node.get("startDate")
    iteration_id = node.get("id")
    if not isinstance(raw_start, str) or not isinstance(iteration_id, str):
        return None
    try:
        start = date.fromisoformat(raw_start[:10])
    except ValueError:
        get_logger().warning(f"Ignoring iteration with invalid start date {raw_start!r}")
        return None
    return Iteration(
        id=iteration_id,
        title=str(node.get("title") or ""),
        start_date=start,
        duration=int(node.get("duration") or 0),
    )


def _owner_label(ref: ProjectRef) -> str:
    return "organization" if ref.owner_type == "organization" else "user"


def parse_project_metadata(
    data: Mapping[str, Any], ref: ProjectRef, now: datetime | date | None = None
) -> ProjectMetadata:
    owner_payload = data.get(ref.root_field)
    if not isinstance(owner_payload, Mapping):
        raise RemoteShapeError(
            "missing_owner",
            f'Could not find {_owner_label(ref)} "{ref.owner}". Make sure the token '
            f"has access to this {_owner_label(ref)}.",
        )
    project = owner_payload.get("projectV2")
    if not isinstance(project, Mapping):
        raise RemoteShapeError(
            "missing_project",
            f'Could not find project #{ref.number} for {_owner_label(ref)} "{ref.owner}". '
            'Make sure the project exists and the token has "Projects" read permission.',
        )
    fields_payload = project.get("fields")
    nodes = fields_payload.get("nodes") if isinstance(fields_payload, Mapping) else None
    if not isinstance(nodes, list):
        raise RemoteShapeError(
            "missing_fields",
            'Could not read project fields. Make sure the token has "Projects" read permission.',
        )

    status_field_id: str | None = None
    status_options: list[StatusOption] = []
    iteration_field_id: str | None = None
    iterations: list[Iteration] = []
    for node in nodes:
        if not isinstance(node, Mapping):
            continue
        name = node.get("name")
        options = node.get("options")
        if (
            isinstance(options, list)
            and isinstance(name, str)
            and name.casefold() == STATUS_FIELD_NAME
        ):
            status_field_id = str(node.get("id"))
            status_options = [
                StatusOption(id=str(opt.get("id")), name=str(opt.get("name")), color=opt.get("color"))
                for opt in options
                if isinstance(opt, Mapping) and opt.get("name")
            ]
        configuration = node.get("configuration")
        if isinstance(configuration, Mapping) and isinstance(
            configuration.get("iterations"), list
        ):
            iteration_field_id = str(node.get("id"))
            iterations = [
                it
                for it in (
                    _parse_iteration(raw)
                    for raw in configuration["iterations"]
                    if isinstance(raw, Mapping)
                )
                if it is not None
            ]

    if status_field_id is None:
        raise RemoteShapeError("missing_status_field", "Could not find Status field in project")

    return ProjectMetadata(
        id=str(project.get("id")),
        title=str(project.get("title") or ""),
        status_field_id=status_field_id,
        status_options=status_options,
        iteration_field_id=iteration_field_id,
        iterations=iterations,
        current_iteration=select_current_iteration(iterations, now) if iterations else None,
    )


def fetch_project_metadata(
    client: GitHubClient, ref: ProjectRef, now: datetime | date | None = None
) -> ProjectMetadata:
    data = client.graphql(
        project_metadata_query(ref.root_field),
        {"owner": ref.owner, "projectNumber": ref.number},
    )
    metadata = parse_project_metadata(data, ref, now)
    get_logger().debug(
        "Resolved project metadata",
        project=metadata.title,
        statuses=[s.name for s in metadata.status_options],
        iteration=metadata.current_iteration.title if metadata.current_iteration else None,
    )
    return metadata


__all__ = [
    "fetch_project_metadata",
    "iteration_span",
    "parse_project_metadata",
    "parse_project_url",
    "select_current_iteration",
]
