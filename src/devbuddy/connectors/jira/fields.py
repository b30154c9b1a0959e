"""Per-project discovery of custom field ids for epic link, story points and sprint.

Self-hosted instances assign these concepts arbitrary ``customfield_NNNNN``
ids. The ids are found by scanning the field names declared in creation
metadata for known labels. Labels are tried in priority order; for each label
an exact (case-insensitive) name match beats a substring match, and the first
field that matches wins. A concept with no match stays None and is left out
of writes.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any

logger = logging.getLogger("devbuddy.jira.fields")

__all__ = [
    "CONCEPT_LABELS",
    "FieldMapping",
    "FieldMappingStore",
    "declared_fields",
    "discover_field_mapping",
]

CONCEPT_LABELS: dict[str, tuple[str, ...]] = {
    "epic_link": ("Epic Link",),
    "story_points": ("Story Points", "Story Point Estimate", "Estimate"),
    "sprint": ("Sprint",),
}


@dataclass(frozen=True)
class FieldMapping:
    epic_link: str | None = None
    story_points: str | None = None
    sprint: str | None = None

    @property
    def empty(self) -> bool:
        return not (self.epic_link or self.story_points or self.sprint)

    def as_dict(self) -> dict[str, str | None]:
        return asdict(self)


def declared_fields(payload: Any) -> list[tuple[str, str]]:
    """Extract (field_id, field_name) pairs from creation metadata.

    Accepts the legacy ``issue/createmeta?expand=projects.issuetypes.fields``
    shape, the paged ``issue/createmeta/{project}/issuetypes/{id}`` shape, or a
    list of either.
    """
    found: list[tuple[str, str]] = []
    seen: set[str] = set()

    def add(field_id: Any, name: Any) -> None:
        if isinstance(field_id, str) and isinstance(name, str) and field_id not in seen:
            seen.add(field_id)
            found.append((field_id, name))

    pages = payload if isinstance(payload, list) else [payload]
    for page in pages:
        if not isinstance(page, dict):
            continue
        for project in page.get("projects") or []:
            for issue_type in project.get("issuetypes") or []:
                for field_id, field in (issue_type.get("fields") or {}).items():
                    if isinstance(field, dict):
                        add(field_id, field.get("name"))
        entries = page.get("values")
        if entries is None:
            entries = page.get("fields")
        if isinstance(entries, list):
            for field in entries:
                if isinstance(field, dict):
                    add(field.get("fieldId") or field.get("key"), field.get("name"))
    return found


def _match(fields: list[tuple[str, str]], labels: tuple[str, ...]) -> str | None:
    for label in labels:
        needle = label.lower()
        for field_id, name in fields:
            if name.strip().lower() == needle:
                return field_id
        for field_id, name in fields:
            if needle in name.lower():
                return field_id
    return None


def discover_field_mapping(payload: Any) -> FieldMapping:
    """Scan creation metadata for the concept labels in CONCEPT_LABELS."""
    fields = declared_fields(payload)
    mapping = FieldMapping(**{concept: _match(fields, labels) for concept, labels in CONCEPT_LABELS.items()})
    logger.debug(
        "jira_field_mapping_discovered",
        extra={"fields_scanned": len(fields), **mapping.as_dict()},
    )
    return mapping


class FieldMappingStore:
    """Field mappings keyed by project key. Entries never expire."""

    def __init__(self) -> None:
        self._mappings: dict[str, FieldMapping] = {}

    def get(self, project_key: str) -> FieldMapping | None:
        return self._mappings.get(project_key.upper())

    def set(self, project_key: str, mapping: FieldMapping) -> None:
        self._mappings[project_key.upper()] = mapping

    def __contains__(self, project_key: str) -> bool:
        return project_key.upper() in self._mappings

    def clear(self) -> None:
        self._mappings.clear()

    def as_dict(self) -> dict[str, FieldMapping]:
        return dict(self._mappings)
