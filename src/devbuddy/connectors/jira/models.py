"""Normalized, deployment-agnostic tracker entities and write inputs.

These are the only shapes that cross the client boundary; raw REST payloads
never leave devbuddy.connectors.jira.normalize.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .rich_text import Document

__all__ = [
    "CreateIssueInput",
    "IssueLink",
    "IssueLinkType",
    "IssueReference",
    "JiraBoard",
    "JiraComment",
    "JiraIssue",
    "JiraIssueType",
    "JiraPriority",
    "JiraProject",
    "JiraSprint",
    "JiraStatus",
    "JiraTransition",
    "JiraUser",
    "LinkDirection",
    "StatusCategory",
    "UpdateIssueInput",
]


class LinkDirection(str, Enum):
    INWARD = "inward"
    OUTWARD = "outward"


@dataclass
class JiraUser:
    """A tracker user. On self-hosted Jira ``account_id`` is the username."""

    account_id: str
    display_name: str
    email_address: str | None = None
    avatar_url: str | None = None
    active: bool = True
    time_zone: str | None = None


@dataclass
class JiraProject:
    id: str
    key: str
    name: str
    description: str | None = None
    avatar_url: str | None = None
    project_type_key: str = "software"
    lead: JiraUser | None = None


@dataclass
class StatusCategory:
    id: int
    key: str  # "new", "indeterminate", "done"
    color_name: str = ""
    name: str = ""


@dataclass
class JiraStatus:
    id: str
    name: str
    status_category: StatusCategory
    description: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status_category.key == "done"


@dataclass
class JiraIssueType:
    id: str
    name: str
    description: str | None = None
    icon_url: str | None = None
    subtask: bool = False


@dataclass
class JiraPriority:
    id: str
    name: str
    icon_url: str | None = None


@dataclass
class JiraTransition:
    id: str
    name: str
    to: JiraStatus
    has_screen: bool = False


@dataclass
class JiraComment:
    id: str
    body: str
    author: JiraUser | None
    created: str
    updated: str


@dataclass
class IssueLinkType:
    id: str
    name: str
    inward: str
    outward: str


@dataclass
class IssueReference:
    """Compact issue shape used for subtasks, parents and link targets."""

    id: str
    key: str
    summary: str
    status: JiraStatus | None = None
    issue_type: JiraIssueType | None = None


@dataclass
class IssueLink:
    id: str
    type: IssueLinkType
    direction: LinkDirection
    linked_issue: IssueReference


@dataclass
class JiraBoard:
    id: int
    name: str
    type: str  # "scrum" | "kanban" | "simple"
    project_id: str | None = None
    project_key: str | None = None
    project_name: str | None = None


@dataclass
class JiraSprint:
    id: int
    name: str
    state: str  # "future" | "active" | "closed"
    start_date: str | None = None
    end_date: str | None = None
    complete_date: str | None = None
    goal: str | None = None


@dataclass
class JiraIssue:
    """A normalized issue. ``description`` is inline markup (Markdown)."""

    id: str
    key: str
    summary: str
    description: str | None
    issue_type: JiraIssueType
    status: JiraStatus
    priority: JiraPriority | None
    assignee: JiraUser | None
    reporter: JiraUser | None
    project: JiraProject
    labels: list[str] = field(default_factory=list)
    created: str = ""
    updated: str = ""
    due_date: str | None = None
    url: str = ""
    story_points: float | None = None
    epic_key: str | None = None
    sprint: JiraSprint | None = None
    parent: IssueReference | None = None
    subtasks: list[IssueReference] = field(default_factory=list)
    issue_links: list[IssueLink] = field(default_factory=list)


@dataclass
class CreateIssueInput:
    """Fields for a new issue.

    ``description`` is inline markup; ``description_document`` is a structured
    rich-text tree (or ADF JSON) and wins when both are given.
    """

    project_key: str
    summary: str
    issue_type_id: str
    description: str | None = None
    description_document: Document | dict[str, Any] | None = None
    priority_id: str | None = None
    assignee_id: str | None = None
    labels: list[str] = field(default_factory=list)
    parent_key: str | None = None
    epic_key: str | None = None
    sprint_id: int | None = None
    story_points: float | None = None
    due_date: str | None = None
    custom_fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class UpdateIssueInput:
    """Partial update; None means "leave unchanged".

    ``assignee_id=""`` unassigns the issue.
    """

    summary: str | None = None
    description: str | None = None
    description_document: Document | dict[str, Any] | None = None
    priority_id: str | None = None
    assignee_id: str | None = None
    labels: list[str] | None = None
    epic_key: str | None = None
    sprint_id: int | None = None
    story_points: float | None = None
    due_date: str | None = None
    custom_fields: dict[str, Any] = field(default_factory=dict)
