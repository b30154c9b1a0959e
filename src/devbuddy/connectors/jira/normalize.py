"""Raw self-hosted Jira REST v2 payloads -> normalized entities.

All functions are tolerant of missing optional sub-objects (priority, status
category, avatars), which older servers and restricted permission schemes
omit. Descriptions and comment bodies arrive as wiki markup and leave as
inline markup.
"""

import logging
import re
from typing import Any

from .fields import FieldMapping
from .models import (
    IssueLink,
    IssueLinkType,
    IssueReference,
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
    LinkDirection,
    StatusCategory,
)
from .rich_text import adf_to_text
from .wiki_markup import wiki_to_markdown

logger = logging.getLogger("devbuddy.jira.normalize")

AVATAR_SIZE = "48x48"

# Server sprint fields are serialized Java objects:
# com.atlassian.greenhopper.service.sprint.Sprint@1a2b[id=7,rapidViewId=3,state=ACTIVE,name=Sprint 7,...]
_LEGACY_SPRINT_RE = re.compile(r"(\w+)=([^,\]]*)")


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _avatar(raw: dict[str, Any]) -> str | None:
    return (raw.get("avatarUrls") or {}).get(AVATAR_SIZE)


def extract_description(value: Any) -> str | None:
    """Wiki text -> inline markup; ADF documents -> readable text."""
    if not value:
        return None
    if isinstance(value, str):
        return wiki_to_markdown(value)
    if isinstance(value, dict) and value.get("type") == "doc":
        return adf_to_text(value)
    return None


def normalize_user(raw: dict[str, Any] | None) -> JiraUser | None:
    if not raw:
        return None
    return JiraUser(
        account_id=_str(raw.get("name") or raw.get("accountId") or raw.get("key")),
        display_name=_str(raw.get("displayName") or raw.get("name")),
        email_address=raw.get("emailAddress"),
        avatar_url=_avatar(raw),
        active=raw.get("active") is not False,
        time_zone=raw.get("timeZone"),
    )


def normalize_project(raw: dict[str, Any]) -> JiraProject:
    return JiraProject(
        id=_str(raw.get("id")),
        key=_str(raw.get("key")),
        name=_str(raw.get("name")),
        description=raw.get("description") or None,
        avatar_url=_avatar(raw),
        project_type_key=raw.get("projectTypeKey") or "software",
        lead=normalize_user(raw.get("lead")),
    )


def normalize_status(raw: dict[str, Any] | None) -> JiraStatus:
    raw = raw or {}
    category = raw.get("statusCategory") or {}
    return JiraStatus(
        id=_str(raw.get("id")),
        name=_str(raw.get("name")) or "Unknown",
        description=raw.get("description") or None,
        status_category=StatusCategory(
            id=int(category.get("id") or 0),
            key=_str(category.get("key")) or "undefined",
            color_name=_str(category.get("colorName")),
            name=_str(category.get("name")),
        ),
    )


def normalize_issue_type(raw: dict[str, Any] | None) -> JiraIssueType:
    raw = raw or {}
    return JiraIssueType(
        id=_str(raw.get("id")),
        name=_str(raw.get("name")) or "Unknown",
        description=raw.get("description") or None,
        icon_url=raw.get("iconUrl"),
        subtask=bool(raw.get("subtask", False)),
    )


def normalize_priority(raw: dict[str, Any] | None) -> JiraPriority | None:
    if not raw:
        return None
    return JiraPriority(id=_str(raw.get("id")), name=_str(raw.get("name")), icon_url=raw.get("iconUrl"))


def normalize_transition(raw: dict[str, Any]) -> JiraTransition:
    return JiraTransition(
        id=_str(raw.get("id")),
        name=_str(raw.get("name")),
        to=normalize_status(raw.get("to")),
        has_screen=bool(raw.get("hasScreen", False)),
    )


def normalize_comment(raw: dict[str, Any]) -> JiraComment:
    return JiraComment(
        id=_str(raw.get("id")),
        body=extract_description(raw.get("body")) or "",
        author=normalize_user(raw.get("author")),
        created=_str(raw.get("created")),
        updated=_str(raw.get("updated") or raw.get("created")),
    )


def normalize_link_type(raw: dict[str, Any]) -> IssueLinkType:
    return IssueLinkType(
        id=_str(raw.get("id")),
        name=_str(raw.get("name")),
        inward=_str(raw.get("inward")),
        outward=_str(raw.get("outward")),
    )


def normalize_reference(raw: dict[str, Any]) -> IssueReference:
    fields = raw.get("fields") or {}
    return IssueReference(
        id=_str(raw.get("id")),
        key=_str(raw.get("key")),
        summary=_str(fields.get("summary")),
        status=normalize_status(fields.get("status")) if fields.get("status") else None,
        issue_type=normalize_issue_type(fields.get("issuetype")) if fields.get("issuetype") else None,
    )


def normalize_issue_links(raw_links: list[dict[str, Any]] | None) -> list[IssueLink]:
    links = []
    for raw in raw_links or []:
        if raw.get("inwardIssue"):
            direction, linked = LinkDirection.INWARD, raw["inwardIssue"]
        elif raw.get("outwardIssue"):
            direction, linked = LinkDirection.OUTWARD, raw["outwardIssue"]
        else:
            continue
        links.append(
            IssueLink(
                id=_str(raw.get("id")),
                type=normalize_link_type(raw.get("type") or {}),
                direction=direction,
                linked_issue=normalize_reference(linked),
            )
        )
    return links


def normalize_board(raw: dict[str, Any]) -> JiraBoard:
    location = raw.get("location") or {}
    return JiraBoard(
        id=int(raw.get("id") or 0),
        name=_str(raw.get("name")),
        type=_str(raw.get("type")) or "scrum",
        project_id=_str(location.get("projectId")) or None,
        project_key=location.get("projectKey"),
        project_name=location.get("projectName") or location.get("name"),
    )


def normalize_sprint(raw: dict[str, Any]) -> JiraSprint:
    return JiraSprint(
        id=int(raw.get("id") or 0),
        name=_str(raw.get("name")),
        state=_str(raw.get("state")).lower() or "future",
        start_date=raw.get("startDate") or None,
        end_date=raw.get("endDate") or None,
        complete_date=raw.get("completeDate") or None,
        goal=raw.get("goal") or None,
    )


def parse_sprint_field(value: Any) -> JiraSprint | None:
    """Pick the current sprint from a sprint field value.

    The value is a dict (agile API), a list of dicts (9.x) or a list of
    serialized sprint strings (8.x). The active sprint wins, otherwise the
    last one listed.
    """
    if not value:
        return None
    entries = value if isinstance(value, list) else [value]
    sprints: list[JiraSprint] = []
    for entry in entries:
        if isinstance(entry, dict):
            sprints.append(normalize_sprint(entry))
        elif isinstance(entry, str) and "[" in entry:
            attrs = {k: v for k, v in _LEGACY_SPRINT_RE.findall(entry[entry.index("[") + 1 :])}
            if attrs.get("id", "").isdigit():
                sprints.append(
                    normalize_sprint(
                        {
                            "id": attrs["id"],
                            "name": attrs.get("name"),
                            "state": attrs.get("state"),
                            "startDate": None if attrs.get("startDate") == "<null>" else attrs.get("startDate"),
                            "endDate": None if attrs.get("endDate") == "<null>" else attrs.get("endDate"),
                            "goal": None if attrs.get("goal") == "<null>" else attrs.get("goal"),
                        }
                    )
                )
    if not sprints:
        return None
    active = [s for s in sprints if s.state == "active"]
    return active[0] if active else sprints[-1]


def _story_points(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_issue(
    raw: dict[str, Any],
    base_url: str,
    field_mapping: FieldMapping | None = None,
) -> JiraIssue:
    """Normalize an issue from /issue, /search or the agile API.

    Args:
        raw: Issue payload
        base_url: Server URL used to build the browse link
        field_mapping: Discovered custom field ids for the issue's project
    """
    fields = raw.get("fields") or {}
    mapping = field_mapping or FieldMapping()
    key = _str(raw.get("key"))

    epic_key = None
    if mapping.epic_link and isinstance(fields.get(mapping.epic_link), str):
        epic_key = fields[mapping.epic_link]
    elif isinstance(fields.get("epic"), dict):
        epic_key = fields["epic"].get("key")

    sprint_value = fields.get("sprint")
    if not sprint_value and mapping.sprint:
        sprint_value = fields.get(mapping.sprint)

    return JiraIssue(
        id=_str(raw.get("id")),
        key=key,
        summary=_str(fields.get("summary")),
        description=extract_description(fields.get("description")),
        issue_type=normalize_issue_type(fields.get("issuetype")),
        status=normalize_status(fields.get("status")),
        priority=normalize_priority(fields.get("priority")),
        assignee=normalize_user(fields.get("assignee")),
        reporter=normalize_user(fields.get("reporter")),
        project=normalize_project(fields.get("project") or {}),
        labels=list(fields.get("labels") or []),
        created=_str(fields.get("created")),
        updated=_str(fields.get("updated")),
        due_date=fields.get("duedate") or None,
        url=f"{base_url.rstrip('/')}/browse/{key}",
        story_points=_story_points(fields.get(mapping.story_points)) if mapping.story_points else None,
        epic_key=epic_key,
        sprint=parse_sprint_field(sprint_value),
        parent=normalize_reference(fields["parent"]) if fields.get("parent") else None,
        subtasks=[normalize_reference(st) for st in fields.get("subtasks") or []],
        issue_links=normalize_issue_links(fields.get("issuelinks")),
    )
