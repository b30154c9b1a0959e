"""The TicketClient interface shared by the Jira deployment clients.

Each deployment client is a separate concrete type composed from an injected
transport, cache and retry policy; there is no shared base-class state. UI
and summarization layers depend on this interface only.

Read operations return empty lists or None on failure; write operations raise
TrackerClientError when the mutation did not happen.
"""

from typing import Any, Protocol, runtime_checkable

from .jql import SearchOptions
from .models import (
    CreateIssueInput,
    IssueLinkType,
    JiraBoard,
    JiraComment,
    JiraIssue,
    JiraIssueType,
    JiraPriority,
    JiraProject,
    JiraSprint,
    JiraStatus,
    JiraTransition,
    JiraUser,
    UpdateIssueInput,
)

__all__ = ["TicketClient"]


@runtime_checkable
class TicketClient(Protocol):
    """Deployment-agnostic query and mutation surface."""

    deployment_type: str

    def is_configured(self) -> bool: ...

    async def test_connection(self) -> dict[str, Any]: ...

    # Issues
    async def get_issue(self, key: str) -> JiraIssue | None: ...

    async def search_issues(self, options: SearchOptions) -> list[JiraIssue]: ...

    async def get_my_issues(self) -> list[JiraIssue]: ...

    async def create_issue(self, data: CreateIssueInput) -> JiraIssue | None: ...

    async def update_issue(self, key: str, data: UpdateIssueInput) -> bool: ...

    async def delete_issue(self, key: str) -> bool: ...

    # Workflow and comments
    async def get_transitions(self, key: str) -> list[JiraTransition]: ...

    async def transition_issue(self, key: str, transition_id: str) -> bool: ...

    async def get_comments(self, key: str) -> list[JiraComment]: ...

    async def add_comment(self, key: str, body: str) -> JiraComment: ...

    # Links
    async def get_issue_link_types(self) -> list[IssueLinkType]: ...

    async def create_issue_link(
        self, source_key: str, target_key: str, link_type: str, outward: bool = True
    ) -> bool: ...

    async def delete_issue_link(self, link_id: str) -> bool: ...

    # Metadata
    async def get_projects(self) -> list[JiraProject]: ...

    async def get_current_user(self) -> JiraUser | None: ...

    async def search_users(self, query: str, project_key: str | None = None) -> list[JiraUser]: ...

    async def get_statuses(self, project_key: str) -> list[JiraStatus]: ...

    async def get_priorities(self) -> list[JiraPriority]: ...

    async def get_issue_types(self, project_key: str) -> list[JiraIssueType]: ...

    # Agile
    async def get_boards(self, project_key: str | None = None) -> list[JiraBoard]: ...

    async def get_sprints(self, board_id: int) -> list[JiraSprint]: ...

    async def get_sprint_issues(self, sprint_id: int) -> list[JiraIssue]: ...

    async def close(self) -> None: ...
