"""Unit tests for REST v2 payload normalization."""

from src.devbuddy.connectors.jira.fields import FieldMapping
from src.devbuddy.connectors.jira.models import LinkDirection
from src.devbuddy.connectors.jira.normalize import (
    extract_description,
    normalize_board,
    normalize_comment,
    normalize_issue,
    normalize_issue_links,
    normalize_priority,
    normalize_sprint,
    normalize_status,
    normalize_user,
    parse_sprint_field,
)
from tests.jira_fixtures import BASE_URL, issue_payload, myself_payload

MAPPING = FieldMapping(epic_link="customfield_10000", story_points="customfield_10002", sprint="customfield_10100")

LEGACY_SPRINT = (
    "com.atlassian.greenhopper.service.sprint.Sprint@1a2b[id=7,rapidViewId=3,state=ACTIVE,"
    "name=Sprint 7,startDate=2026-01-05T10:00:00.000Z,endDate=<null>,goal=<null>]"
)


class TestNormalizeUser:
    def test_server_user(self):
        user = normalize_user(myself_payload())

        assert user.account_id == "jdoe"
        assert user.display_name == "Jane Doe"
        assert user.email_address == "jdoe@example.com"
        assert user.avatar_url.endswith("owner=jdoe")
        assert user.active is True

    def test_missing_user(self):
        assert normalize_user(None) is None
        assert normalize_user({}) is None

    def test_account_id_fallbacks(self):
        assert normalize_user({"key": "JIRAUSER1"}).account_id == "JIRAUSER1"
        assert normalize_user({"accountId": "abc", "key": "k"}).account_id == "abc"


class TestNormalizeStatus:
    def test_missing_category(self):
        status = normalize_status({"id": "1", "name": "Open"})
        assert status.status_category.key == "undefined"
        assert status.is_done is False

    def test_done(self):
        status = normalize_status({"id": "6", "name": "Closed", "statusCategory": {"id": 3, "key": "done"}})
        assert status.is_done is True

    def test_none(self):
        assert normalize_status(None).name == "Unknown"


class TestDescription:
    def test_wiki_converted(self):
        assert extract_description("h2. Steps\n* *run* {{make}}") == "## Steps\n- **run** `make`"

    def test_adf_rendered(self):
        adf = {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "hi"}]}]}
        assert extract_description(adf) == "hi"

    def test_empty(self):
        assert extract_description(None) is None
        assert extract_description("") is None
        assert extract_description(42) is None


class TestSprints:
    def test_normalize_sprint_lowercases_state(self):
        sprint = normalize_sprint({"id": 7, "name": "Sprint 7", "state": "ACTIVE"})
        assert sprint.state == "active"

    def test_legacy_string(self):
        sprint = parse_sprint_field([LEGACY_SPRINT])

        assert sprint.id == 7
        assert sprint.name == "Sprint 7"
        assert sprint.state == "active"
        assert sprint.start_date == "2026-01-05T10:00:00.000Z"
        assert sprint.end_date is None

    def test_active_sprint_wins(self):
        sprint = parse_sprint_field(
            [
                {"id": 1, "name": "Old", "state": "closed"},
                {"id": 2, "name": "Now", "state": "active"},
                {"id": 3, "name": "Next", "state": "future"},
            ]
        )
        assert sprint.id == 2

    def test_last_sprint_without_active(self):
        sprint = parse_sprint_field([{"id": 1, "state": "closed"}, {"id": 3, "state": "future"}])
        assert sprint.id == 3

    def test_dict_value(self):
        assert parse_sprint_field({"id": 4, "state": "active"}).id == 4

    def test_empty(self):
        assert parse_sprint_field(None) is None
        assert parse_sprint_field(["garbage"]) is None


class TestNormalizeIssue:
    def test_core_fields(self):
        issue = normalize_issue(issue_payload("ENG-1"), BASE_URL + "/")

        assert issue.key == "ENG-1"
        assert issue.summary == "Fix login"
        assert issue.description == "## Steps\n- **run** `make`"
        assert issue.status.name == "In Progress"
        assert issue.priority.name == "High"
        assert issue.assignee.account_id == "jdoe"
        assert issue.project.key == "ENG"
        assert issue.labels == ["backend"]
        assert issue.url == f"{BASE_URL}/browse/ENG-1"

    def test_mapped_custom_fields(self):
        raw = issue_payload(
            "ENG-2",
            customfield_10000="ENG-100",
            customfield_10002=5,
            customfield_10100=[LEGACY_SPRINT],
        )

        issue = normalize_issue(raw, BASE_URL, MAPPING)

        assert issue.epic_key == "ENG-100"
        assert issue.story_points == 5.0
        assert issue.sprint.id == 7

    def test_custom_fields_ignored_without_mapping(self):
        raw = issue_payload("ENG-2", customfield_10002=5)
        issue = normalize_issue(raw, BASE_URL)
        assert issue.story_points is None
        assert issue.epic_key is None

    def test_agile_epic_and_sprint_fields(self):
        raw = issue_payload("ENG-3", epic={"key": "ENG-50"}, sprint={"id": 9, "state": "active", "name": "S9"})
        issue = normalize_issue(raw, BASE_URL)

        assert issue.epic_key == "ENG-50"
        assert issue.sprint.id == 9

    def test_missing_optional_objects(self):
        raw = {"id": "1", "key": "ENG-4", "fields": {"summary": "bare"}}
        issue = normalize_issue(raw, BASE_URL)

        assert issue.priority is None
        assert issue.assignee is None
        assert issue.description is None
        assert issue.issue_type.name == "Unknown"

    def test_subtasks_parent_and_links(self):
        raw = issue_payload(
            "ENG-5",
            parent={"id": "9", "key": "ENG-9", "fields": {"summary": "Parent"}},
            subtasks=[{"id": "11", "key": "ENG-11", "fields": {"summary": "Sub"}}],
            issuelinks=[
                {
                    "id": "300",
                    "type": {"id": "1", "name": "Blocks", "inward": "is blocked by", "outward": "blocks"},
                    "outwardIssue": {"id": "12", "key": "ENG-12", "fields": {"summary": "Other"}},
                }
            ],
        )

        issue = normalize_issue(raw, BASE_URL)

        assert issue.parent.key == "ENG-9"
        assert [s.key for s in issue.subtasks] == ["ENG-11"]
        assert issue.issue_links[0].direction == LinkDirection.OUTWARD
        assert issue.issue_links[0].linked_issue.key == "ENG-12"


class TestOtherEntities:
    def test_links_without_target_skipped(self):
        assert normalize_issue_links([{"id": "1", "type": {}}]) == []

    def test_priority_missing(self):
        assert normalize_priority(None) is None

    def test_comment_body_converted(self):
        comment = normalize_comment({"id": "5", "body": "*done*", "author": myself_payload(), "created": "t1"})

        assert comment.body == "**done**"
        assert comment.updated == "t1"
        assert comment.author.account_id == "jdoe"

    def test_board_location(self):
        board = normalize_board(
            {"id": 3, "name": "ENG board", "type": "scrum", "location": {"projectId": 100, "projectKey": "ENG", "name": "Engineering"}}
        )
        assert board.project_id == "100"
        assert board.project_key == "ENG"
        assert board.project_name == "Engineering"
