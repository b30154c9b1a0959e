"""Compile structured issue filters into JQL.

Clauses for different fields are AND-ed; multiple values for one field are
OR-ed through ``IN (...)``. An empty filter compiles to a query matching every
issue in any project instead of an invalid empty query.
"""

from dataclasses import dataclass, field

__all__ = ["MATCH_ALL", "SearchOptions", "build_jql", "quote"]

MATCH_ALL = "project IS NOT EMPTY"


@dataclass
class SearchOptions:
    """Issue search request.

    A raw ``jql`` string takes precedence over the structured filters.
    """

    jql: str | None = None
    project_keys: list[str] = field(default_factory=list)
    issue_types: list[str] = field(default_factory=list)
    statuses: list[str] = field(default_factory=list)
    assignee_ids: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    max_results: int = 50
    start_at: int = 0


def quote(value: str) -> str:
    """Quote a JQL value, escaping backslashes and double quotes."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _clause(field_name: str, values: list[str]) -> str | None:
    values = [v for v in values if v]
    if not values:
        return None
    if len(values) == 1:
        return f"{field_name} = {quote(values[0])}"
    return f"{field_name} IN ({', '.join(quote(v) for v in values)})"


def build_jql(options: SearchOptions) -> str:
    """Build the JQL for a search.

    Example:
        >>> build_jql(SearchOptions(project_keys=["ENG", "OPS"], statuses=["To Do"]))
        'project IN ("ENG", "OPS") AND status = "To Do"'
        >>> build_jql(SearchOptions())
        'project IS NOT EMPTY'
    """
    if options.jql and options.jql.strip():
        return options.jql.strip()

    clauses = [
        _clause("project", options.project_keys),
        _clause("issuetype", options.issue_types),
        _clause("status", options.statuses),
        _clause("assignee", options.assignee_ids),
        _clause("labels", options.labels),
    ]
    present = [c for c in clauses if c]
    return " AND ".join(present) if present else MATCH_ALL
