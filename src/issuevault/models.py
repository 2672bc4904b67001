from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

NO_STATUS = "No Status"


@dataclass(frozen=True)
class ProjectRef:
    """A parsed project URL: ``.../orgs/{owner}/projects/{number}`` or ``/users/``."""

    owner_type: str  # organization | user
    owner: str
    number: int

    @property
    def root_field(self) -> str:
        return "organization" if self.owner_type == "organization" else "user"


@dataclass(frozen=True)
class StatusOption:
    id: str
    name: str
    color: str | None = None


@dataclass(frozen=True)
class Iteration:
    id: str
    title: str
    start_date: date
    duration: int  # days


@dataclass
class ProjectMetadata:
    id: str
    title: str
    status_field_id: str
    status_options: list[StatusOption]
    iteration_field_id: str | None = None
    iterations: list[Iteration] = field(default_factory=list)
    current_iteration: Iteration | None = None

    @property
    def has_iterations(self) -> bool:
        return self.iteration_field_id is not None


@dataclass
class RemoteIssue:
    """One project item backed by an issue, rebuilt fresh on every fetch."""

    number: int
    title: str
    body: str
    repository: str  # owner/name
    url: str
    status: str = NO_STATUS
    state: str = "OPEN"
    assignees: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    @property
    def identity(self) -> tuple[str, int]:
        return self.repository.lower(), self.number


@dataclass(frozen=True)
class LocalIssueRecord:
    """What a local file's header tells us: only the URL is persisted."""

    url: str
    owner: str
    repo: str
    number: int

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def identity(self) -> tuple[str, int]:
        return self.repository.lower(), self.number


__all__ = [
    "Iteration",
    "LocalIssueRecord",
    "NO_STATUS",
    "ProjectMetadata",
    "ProjectRef",
    "RemoteIssue",
    "StatusOption",
]
