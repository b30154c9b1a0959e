"""Jira Server / Data Center integration package.

Provides the adaptive REST client, capability detection, auth negotiation,
custom field discovery and rich-text converters.
"""

from .auth import AuthMethod, AuthNegotiator, Credentials
from .base import TicketClient
from .capabilities import Capabilities, CapabilityDetector, ServerInfo, derive_capabilities
from .factory import create_ticket_client, register_client_builder
from .fields import FieldMapping, discover_field_mapping
from .jql import SearchOptions, build_jql
from .models import CreateIssueInput, JiraIssue, UpdateIssueInput
from .rich_text import adf_to_text, parse_markup, render_text, to_adf
from .server_client import JiraServerClient
from .wiki_markup import format_description_with_permalink, markdown_to_wiki, wiki_to_markdown

__all__ = [
    "AuthMethod",
    "AuthNegotiator",
    "Capabilities",
    "CapabilityDetector",
    "CreateIssueInput",
    "Credentials",
    "FieldMapping",
    "JiraIssue",
    "JiraServerClient",
    "SearchOptions",
    "ServerInfo",
    "TicketClient",
    "UpdateIssueInput",
    "adf_to_text",
    "build_jql",
    "create_ticket_client",
    "derive_capabilities",
    "discover_field_mapping",
    "format_description_with_permalink",
    "markdown_to_wiki",
    "parse_markup",
    "register_client_builder",
    "render_text",
    "to_adf",
    "wiki_to_markdown",
]
