"""Unit tests for custom field discovery from creation metadata."""

from src.devbuddy.connectors.jira.fields import (
    FieldMapping,
    FieldMappingStore,
    declared_fields,
    discover_field_mapping,
)


def legacy_createmeta(*issue_types: dict) -> dict:
    """issue/createmeta?expand=projects.issuetypes.fields response."""
    return {"projects": [{"key": "ENG", "issuetypes": list(issue_types)}]}


def issue_type(name: str, fields: dict[str, str]) -> dict:
    return {
        "name": name,
        "fields": {fid: {"name": fname, "required": False} for fid, fname in fields.items()},
    }


def paged_fields(fields: dict[str, str]) -> dict:
    """issue/createmeta/{project}/issuetypes/{id} response (9.x)."""
    return {
        "maxResults": 50,
        "startAt": 0,
        "total": len(fields),
        "isLast": True,
        "values": [{"fieldId": fid, "name": fname, "required": False} for fid, fname in fields.items()],
    }


class TestDeclaredFields:
    def test_legacy_shape(self):
        payload = legacy_createmeta(
            issue_type("Story", {"summary": "Summary", "customfield_10002": "Story Points"}),
            issue_type("Bug", {"summary": "Summary", "customfield_10100": "Sprint"}),
        )

        assert declared_fields(payload) == [
            ("summary", "Summary"),
            ("customfield_10002", "Story Points"),
            ("customfield_10100", "Sprint"),
        ]

    def test_paged_shape_and_list_of_pages(self):
        pages = [paged_fields({"customfield_1": "Epic Link"}), paged_fields({"customfield_2": "Sprint"})]
        assert declared_fields(pages) == [("customfield_1", "Epic Link"), ("customfield_2", "Sprint")]

    def test_key_used_when_field_id_missing(self):
        payload = {"fields": [{"key": "customfield_7", "name": "Sprint"}]}
        assert declared_fields(payload) == [("customfield_7", "Sprint")]

    def test_garbage_ignored(self):
        assert declared_fields(None) == []
        assert declared_fields({"projects": [{"issuetypes": [{"fields": {"x": "not a dict"}}]}]}) == []


class TestDiscoverFieldMapping:
    def test_finds_all_concepts(self):
        payload = legacy_createmeta(
            issue_type(
                "Story",
                {
                    "customfield_10000": "Epic Link",
                    "customfield_10002": "Story Points",
                    "customfield_10100": "Sprint",
                },
            )
        )

        assert discover_field_mapping(payload) == FieldMapping(
            epic_link="customfield_10000",
            story_points="customfield_10002",
            sprint="customfield_10100",
        )

    def test_exact_match_beats_substring(self):
        payload = paged_fields({"customfield_1": "Sprint Goal", "customfield_2": "sprint"})
        assert discover_field_mapping(payload).sprint == "customfield_2"

    def test_substring_match_when_no_exact(self):
        payload = paged_fields({"customfield_9": "Team Sprint"})
        assert discover_field_mapping(payload).sprint == "customfield_9"

    def test_story_points_label_priority(self):
        payload = paged_fields({"customfield_1": "Original Estimate", "customfield_2": "Story Point Estimate"})
        assert discover_field_mapping(payload).story_points == "customfield_2"

    def test_story_points_falls_back_to_estimate(self):
        payload = paged_fields({"customfield_1": "Estimate"})
        assert discover_field_mapping(payload).story_points == "customfield_1"

    def test_missing_concepts_stay_none(self):
        mapping = discover_field_mapping(paged_fields({"summary": "Summary"}))

        assert mapping == FieldMapping()
        assert mapping.empty

    def test_scans_every_issue_type(self):
        payload = legacy_createmeta(
            issue_type("Bug", {"summary": "Summary"}),
            issue_type("Epic", {"customfield_10000": "Epic Link"}),
        )
        assert discover_field_mapping(payload).epic_link == "customfield_10000"


class TestFieldMappingStore:
    def test_keys_case_insensitive(self):
        store = FieldMappingStore()
        store.set("eng", FieldMapping(sprint="customfield_1"))

        assert "ENG" in store
        assert store.get("Eng").sprint == "customfield_1"
        assert store.get("OPS") is None

    def test_clear(self):
        store = FieldMappingStore()
        store.set("ENG", FieldMapping())
        store.clear()
        assert store.as_dict() == {}
