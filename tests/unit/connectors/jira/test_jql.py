"""Unit tests for JQL compilation."""

import pytest

from src.devbuddy.connectors.jira.jql import MATCH_ALL, SearchOptions, build_jql, quote


class TestQuote:
    def test_plain(self):
        assert quote("To Do") == '"To Do"'

    def test_escapes(self):
        assert quote('say "hi" \\ bye') == '"say \\"hi\\" \\\\ bye"'


class TestBuildJql:
    def test_empty_filter_matches_all(self):
        assert build_jql(SearchOptions()) == MATCH_ALL

    def test_blank_values_ignored(self):
        assert build_jql(SearchOptions(project_keys=["", ""], jql="   ")) == MATCH_ALL

    def test_single_value_uses_equals(self):
        assert build_jql(SearchOptions(project_keys=["ENG"])) == 'project = "ENG"'

    def test_multiple_values_use_in(self):
        assert build_jql(SearchOptions(statuses=["To Do", "In Progress"])) == 'status IN ("To Do", "In Progress")'

    def test_fields_are_anded_in_order(self):
        options = SearchOptions(
            project_keys=["ENG", "OPS"],
            issue_types=["Bug"],
            statuses=["To Do"],
            assignee_ids=["jdoe"],
            labels=["backend"],
        )

        assert build_jql(options) == (
            'project IN ("ENG", "OPS") AND issuetype = "Bug" AND status = "To Do" '
            'AND assignee = "jdoe" AND labels = "backend"'
        )

    @pytest.mark.parametrize("raw", ["assignee = currentUser()", "  assignee = currentUser()  "])
    def test_raw_jql_wins(self, raw):
        options = SearchOptions(jql=raw, project_keys=["ENG"])
        assert build_jql(options) == "assignee = currentUser()"

    def test_defaults(self):
        options = SearchOptions()
        assert options.max_results == 50
        assert options.start_at == 0
