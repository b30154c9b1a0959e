"""Jira Server / Data Center REST API client.

Provides an async httpx-based client for self-hosted Jira (REST API v2 and
Agile API 1.0). The server's version, accepted auth scheme and custom field
ids are not known up front:

1. The first call fetches /serverInfo and derives capabilities from the version
2. The auth negotiator then probes /myself with a Bearer token (8.14+), falling
   back to Basic auth
3. Custom field ids for epic link, story points and sprint are discovered per
   project from creation metadata the first time a write needs them

Every call goes Cache -> Retry -> Transport. Reads degrade to [] / None with a
logged reason; writes raise TrackerClientError so the caller knows the
mutation did not happen. Cache entries touched by a write are invalidated only
after the write succeeds.

Reference: https://docs.atlassian.com/software/jira/docs/api/REST/9.12.0/
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from ...config import DEPLOYMENT_SERVER, DevBuddyConfig
from ...http.cache import TTL, TTLCache
from ...http.errors import AuthenticationFailure, HttpFailure, NotFound, TrackerClientError
from ...http.gateway import ApiGateway
from ...http.retry import RetryConfig, with_retry
from ...http.transport import Transport
from .auth import AuthMethod, AuthNegotiator, Credentials
from .capabilities import Capabilities, CapabilityDetector, ServerInfo, derive_capabilities
from .fields import FieldMapping, FieldMappingStore, discover_field_mapping
from .jql import SearchOptions, build_jql, quote
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
from .normalize import (
    normalize_board,
    normalize_comment,
    normalize_issue,
    normalize_issue_type,
    normalize_link_type,
    normalize_priority,
    normalize_project,
    normalize_sprint,
    normalize_status,
    normalize_transition,
    normalize_user,
)
from .rich_text import Document, adf_to_text, parse_markup, render_text, to_adf
from .wiki_markup import markdown_to_wiki

logger = logging.getLogger("devbuddy.jira.server")

__all__ = ["JiraServerClient"]

API_PREFIX = "/rest/api/2"
AGILE_PREFIX = "/rest/agile/1.0"
CACHE_NAMESPACE = "jira-server"

BOARD_PAGE_SIZE = 100
MAX_BOARDS = 500
SPRINT_ISSUE_LIMIT = 100
RECENTLY_COMPLETED_LIMIT = 20


def project_key_of(issue_key: str) -> str:
    """'ENG-42' -> 'ENG'."""
    return issue_key.rsplit("-", 1)[0].upper()


class JiraServerClient:
    """Adaptive client for one self-hosted Jira instance.

    Attributes:
        base_url: Server URL (e.g., https://jira.company.com)
        deployment_type: Always "server"

    Example:
        >>> async with JiraServerClient("https://jira.company.com", "jdoe", secret) as client:
        ...     issues = await client.get_my_issues()
        ...     print(client.server_info.version, client.auth_method)
    """

    deployment_type = DEPLOYMENT_SERVER

    def __init__(
        self,
        base_url: str,
        username: str,
        secret: str,
        *,
        timeout: float = 15.0,
        retry_config: RetryConfig | None = None,
        cache: TTLCache | None = None,
        http_client: httpx.AsyncClient | None = None,
        on_warning: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the client. No network traffic happens until the first call.

        Args:
            base_url: Server URL; trailing slashes are stripped
            username: Username for Basic auth
            secret: Password or personal access token
            timeout: Read timeout in seconds
            retry_config: Retry policy for reads (default: 3 retries, 1s-30s backoff)
            cache: Response cache (default: 2 minute TTL, 200 entries)
            http_client: Pre-built httpx client (tests inject a MockTransport here)
            on_warning: Called with operator-facing warnings such as an
                unsupported server version
        """
        self.base_url = (base_url or "").strip().rstrip("/")
        self._on_warning = on_warning
        self._warnings: list[str] = []

        self._auth = AuthNegotiator(Credentials(username or "", secret or ""), self._probe_identity)
        self._transport = Transport(
            self.base_url,
            timeout=timeout,
            client=http_client,
            header_provider=self._auth.headers,
        )
        self._cache = cache or TTLCache(TTL.MEDIUM)
        self._gateway = ApiGateway(self._transport, self._cache, CACHE_NAMESPACE, retry_config)
        self._detector = CapabilityDetector(self._fetch_server_info, on_warning=self._record_warning)
        self._field_mappings = FieldMappingStore()
        self._ready = False

    @classmethod
    def from_config(
        cls,
        config: DevBuddyConfig,
        secret: str,
        **kwargs: Any,
    ) -> "JiraServerClient":
        """Build a client from settings and the secret read from the secret store."""
        return cls(
            config.jira_server_base_url,
            config.jira_server_username,
            secret,
            timeout=config.http_timeout_seconds,
            retry_config=RetryConfig(
                max_retries=config.http_max_retries,
                base_delay_ms=config.http_base_delay_ms,
                max_delay_ms=config.http_max_delay_ms,
            ),
            cache=TTLCache(config.cache_default_ttl_ms, config.cache_max_size),
            **kwargs,
        )

    # ==================== Lifecycle ====================

    def is_configured(self) -> bool:
        creds = self._auth.credentials
        return bool(self.base_url and creds.username and creds.secret)

    async def _ensure_ready(self) -> None:
        """Run capability detection and auth negotiation once.

        Raises:
            TrackerClientError: Detection failed or the server was unreachable
                during negotiation; the next call tries again
        """
        if self._ready:
            return
        await self._detector.detect()
        await self._auth.negotiate(self._detector.capabilities)
        self._ready = True

    async def _fetch_server_info(self) -> dict[str, Any]:
        payload = await self._gateway.send("GET", f"{API_PREFIX}/serverInfo", idempotent=True)
        return payload if isinstance(payload, dict) else {}

    async def _probe_identity(self, headers: dict[str, str]) -> dict[str, Any] | None:
        """/myself call with explicit credentials; None when the server rejects them.

        Transient failures are retried like any read. Whatever still fails after
        that (network, 429, 5xx) propagates so negotiation stays unresolved.
        """
        path = f"{API_PREFIX}/myself"
        try:
            payload = await with_retry(
                lambda: self._transport.request(path, headers=headers),
                self._gateway.retry_config,
                label=f"GET {path}",
            )
        except AuthenticationFailure as e:
            logger.debug("jira_auth_probe_rejected", extra={"status": e.status})
            return None
        if isinstance(payload, dict) and (payload.get("name") or payload.get("key") or payload.get("accountId")):
            return payload
        return None

    def _record_warning(self, message: str) -> None:
        self._warnings.append(message)
        if self._on_warning is not None:
            self._on_warning(message)

    def reset(self) -> None:
        """Discard detected server info, negotiated auth, field mappings and cached responses."""
        self._detector.reset()
        self._auth.reset()
        self._field_mappings.clear()
        self._gateway.clear()
        self._warnings.clear()
        self._ready = False

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> "JiraServerClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ==================== Accessors ====================

    @property
    def server_info(self) -> ServerInfo | None:
        return self._detector.server_info

    @property
    def capabilities(self) -> Capabilities | None:
        return self._detector.capabilities

    @property
    def auth_method(self) -> AuthMethod:
        return self._auth.method

    @property
    def field_mappings(self) -> dict[str, FieldMapping]:
        return self._field_mappings.as_dict()

    @property
    def warnings(self) -> list[str]:
        return list(self._warnings)

    def _effective_capabilities(self) -> Capabilities:
        return self._detector.capabilities or derive_capabilities(None)

    # ==================== Request helpers ====================

    async def _get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        ttl_ms: int | None = None,
        skip_cache: bool = False,
    ) -> Any:
        await self._ensure_ready()
        return await self._gateway.get(endpoint, params, ttl_ms=ttl_ms, skip_cache=skip_cache)

    async def _write(self, method: str, endpoint: str, body: Any = None, *resource_ids: str) -> Any:
        await self._ensure_ready()
        return await self._gateway.mutate(method, endpoint, body, resource_ids=resource_ids)

    @staticmethod
    def _read_failed(event: str, error: TrackerClientError, **context: Any) -> None:
        logger.error(
            event,
            extra={
                "error": str(error),
                "status": getattr(error, "status", None),
                **context,
            },
        )

    async def test_connection(self) -> dict[str, Any]:
        """Test connectivity and authentication.

        Returns:
            dict with keys:
                - success (bool): True if the identity call returned a user
                - user (str | None): Authenticated username
                - server_version (str | None): Detected server version
                - auth_method (str): Negotiated auth method
                - error (str | None): Error message if failed
        """
        try:
            await self._ensure_ready()
            payload = await self._gateway.get(f"{API_PREFIX}/myself", skip_cache=True)
        except TrackerClientError as e:
            logger.error("jira_connection_failed", extra={"error": str(e), "status": getattr(e, "status", None)})
            return {
                "success": False,
                "user": None,
                "server_version": self.server_info.version if self.server_info else None,
                "auth_method": self._auth.method.value,
                "error": str(e),
            }
        user = normalize_user(payload if isinstance(payload, dict) else None)
        return {
            "success": user is not None,
            "user": user.account_id if user else None,
            "server_version": self.server_info.version if self.server_info else None,
            "auth_method": self._auth.method.value,
            "error": None if user else "Identity endpoint returned no user",
        }

    # ==================== Field mapping ====================

    async def get_field_mapping(self, project_key: str) -> FieldMapping:
        """Discover (once per project) which custom fields hold epic, points and sprint.

        Failures are logged and yield an empty mapping that is not stored, so
        the next write tries again.
        """
        cached = self._field_mappings.get(project_key)
        if cached is not None:
            return cached

        try:
            await self._ensure_ready()
            if self._effective_capabilities().custom_field_schemas:
                mapping = await self._discover_paged_fields(project_key)
            else:
                payload = await self._gateway.get(
                    f"{API_PREFIX}/issue/createmeta",
                    {"projectKeys": project_key, "expand": "projects.issuetypes.fields"},
                    skip_cache=True,
                )
                mapping = discover_field_mapping(payload)
        except TrackerClientError as e:
            logger.warning(
                "jira_field_mapping_failed",
                extra={"project_key": project_key, "error": str(e)},
            )
            return FieldMapping()

        self._field_mappings.set(project_key, mapping)
        logger.info("jira_field_mapping_detected", extra={"project_key": project_key, **mapping.as_dict()})
        return mapping

    async def _discover_paged_fields(self, project_key: str) -> FieldMapping:
        types_page = await self._gateway.get(
            f"{API_PREFIX}/issue/createmeta/{project_key}/issuetypes", skip_cache=True
        )
        issue_types = (types_page or {}).get("values") or (types_page or {}).get("issueTypes") or []
        pages: list[Any] = []
        mapping = FieldMapping()
        for issue_type in issue_types:
            type_id = issue_type.get("id")
            if not type_id:
                continue
            pages.append(
                await self._gateway.get(
                    f"{API_PREFIX}/issue/createmeta/{project_key}/issuetypes/{type_id}",
                    {"maxResults": 200},
                    skip_cache=True,
                )
            )
            mapping = discover_field_mapping(pages)
            if mapping.epic_link and mapping.story_points and mapping.sprint:
                break
        return mapping

    @staticmethod
    def _apply_mapped_fields(
        fields: dict[str, Any],
        mapping: FieldMapping,
        epic_key: str | None,
        sprint_id: int | None,
        story_points: float | None,
    ) -> None:
        if epic_key and mapping.epic_link:
            fields[mapping.epic_link] = epic_key
        if sprint_id is not None and mapping.sprint:
            fields[mapping.sprint] = sprint_id
        if story_points is not None and mapping.story_points:
            fields[mapping.story_points] = story_points

    def _format_description(
        self,
        markdown: str | None,
        document: Document | dict[str, Any] | None,
    ) -> Any:
        """Encode a description for the server.

        Servers that cannot carry structured rich text get the document
        degraded to readable text, and inline markup converted to wiki markup.
        """
        rich = self._effective_capabilities().rich_text_editor
        if document is not None:
            if isinstance(document, Document):
                return to_adf(document) if rich else render_text(document)
            return document if rich else adf_to_text(document)
        if markdown:
            return to_adf(parse_markup(markdown)) if rich else markdown_to_wiki(markdown)
        return None

    # ==================== Issue Operations ====================

    async def get_issue(self, key: str) -> JiraIssue | None:
        try:
            payload = await self._get(f"{API_PREFIX}/issue/{key}")
        except NotFound:
            logger.info("jira_issue_not_found", extra={"issue_key": key})
            return None
        except TrackerClientError as e:
            self._read_failed("jira_issue_fetch_failed", e, issue_key=key)
            return None
        return normalize_issue(payload, self.base_url, self._field_mappings.get(project_key_of(key)))

    async def search_issues(self, options: SearchOptions) -> list[JiraIssue]:
        jql = build_jql(options)
        try:
            payload = await self._get(
                f"{API_PREFIX}/search",
                {"jql": jql, "maxResults": options.max_results, "startAt": options.start_at},
            )
        except TrackerClientError as e:
            self._read_failed("jira_search_failed", e, jql=jql)
            return []
        return [self._normalize(issue) for issue in (payload or {}).get("issues") or []]

    def _normalize(self, raw: dict[str, Any]) -> JiraIssue:
        key = str(raw.get("key") or "")
        mapping = self._field_mappings.get(project_key_of(key)) if key else None
        return normalize_issue(raw, self.base_url, mapping)

    async def get_my_issues(self) -> list[JiraIssue]:
        return await self.search_issues(
            SearchOptions(jql="assignee = currentUser() AND resolution = Unresolved ORDER BY updated DESC")
        )

    async def get_recently_completed_issues(self, days_ago: int = 14) -> list[JiraIssue]:
        """Issues assigned to me and resolved in the last ``days_ago`` days (max 20)."""
        if await self.get_current_user() is None:
            return []
        return await self.search_issues(
            SearchOptions(
                jql=(
                    "assignee = currentUser() AND resolution IS NOT EMPTY "
                    f"AND resolved >= -{int(days_ago)}d ORDER BY resolved DESC"
                ),
                max_results=RECENTLY_COMPLETED_LIMIT,
            )
        )

    async def get_project_unassigned_issues(self, project_key: str, max_results: int = 20) -> list[JiraIssue]:
        return await self.search_issues(
            SearchOptions(
                jql=(
                    f"project = {quote(project_key)} AND assignee IS EMPTY "
                    "AND resolution = Unresolved ORDER BY priority DESC, created DESC"
                ),
                max_results=max_results,
            )
        )

    async def create_issue(self, data: CreateIssueInput) -> JiraIssue | None:
        """Create an issue and return it as stored by the server.

        Epic link, sprint and story points are written through the project's
        discovered field mapping; a concept with no matching field is omitted.

        Raises:
            TrackerClientError: The issue was not created
        """
        await self._ensure_ready()
        fields: dict[str, Any] = {
            "project": {"key": data.project_key},
            "summary": data.summary,
            "issuetype": {"id": data.issue_type_id},
        }
        description = self._format_description(data.description, data.description_document)
        if description:
            fields["description"] = description
        if data.priority_id:
            fields["priority"] = {"id": data.priority_id}
        if data.assignee_id:
            fields["assignee"] = {"name": data.assignee_id}
        if data.labels:
            fields["labels"] = list(data.labels)
        if data.due_date:
            fields["duedate"] = data.due_date
        if data.parent_key:
            fields["parent"] = {"key": data.parent_key}

        if data.epic_key or data.sprint_id is not None or data.story_points is not None:
            mapping = await self.get_field_mapping(data.project_key)
            self._apply_mapped_fields(fields, mapping, data.epic_key, data.sprint_id, data.story_points)

        fields.update(data.custom_fields)

        created = await self._write("POST", f"{API_PREFIX}/issue", {"fields": fields})
        key = (created or {}).get("key") if isinstance(created, dict) else None
        if not key:
            logger.warning("jira_issue_created_without_key", extra={"project_key": data.project_key})
            return None

        self._gateway.invalidate_after_mutation(key)
        logger.info("jira_issue_created", extra={"issue_key": key})
        return await self.get_issue(key)

    async def update_issue(self, key: str, data: UpdateIssueInput) -> bool:
        """Apply a partial update.

        Raises:
            TrackerClientError: The issue was not updated
        """
        await self._ensure_ready()
        fields: dict[str, Any] = {}
        if data.summary is not None:
            fields["summary"] = data.summary
        if data.description is not None or data.description_document is not None:
            fields["description"] = self._format_description(data.description, data.description_document) or ""
        if data.priority_id is not None:
            fields["priority"] = {"id": data.priority_id}
        if data.assignee_id is not None:
            fields["assignee"] = {"name": data.assignee_id} if data.assignee_id else None
        if data.labels is not None:
            fields["labels"] = list(data.labels)
        if data.due_date is not None:
            fields["duedate"] = data.due_date or None

        if data.epic_key is not None or data.sprint_id is not None or data.story_points is not None:
            mapping = await self.get_field_mapping(project_key_of(key))
            self._apply_mapped_fields(fields, mapping, data.epic_key, data.sprint_id, data.story_points)

        fields.update(data.custom_fields)

        await self._write("PUT", f"{API_PREFIX}/issue/{key}", {"fields": fields}, key)
        logger.info("jira_issue_updated", extra={"issue_key": key, "fields": sorted(fields)})
        return True

    async def delete_issue(self, key: str) -> bool:
        """Raises TrackerClientError when the issue was not deleted."""
        await self._write("DELETE", f"{API_PREFIX}/issue/{key}", None, key)
        logger.info("jira_issue_deleted", extra={"issue_key": key})
        return True

    # ==================== Workflow & Comments ====================

    async def get_transitions(self, key: str) -> list[JiraTransition]:
        try:
            payload = await self._get(f"{API_PREFIX}/issue/{key}/transitions", ttl_ms=TTL.SHORT)
        except TrackerClientError as e:
            self._read_failed("jira_transitions_fetch_failed", e, issue_key=key)
            return []
        return [normalize_transition(t) for t in (payload or {}).get("transitions") or []]

    async def transition_issue(self, key: str, transition_id: str) -> bool:
        """Raises TrackerClientError when the transition was not executed."""
        await self._write(
            "POST",
            f"{API_PREFIX}/issue/{key}/transitions",
            {"transition": {"id": transition_id}},
            key,
        )
        logger.info("jira_issue_transitioned", extra={"issue_key": key, "transition_id": transition_id})
        return True

    async def get_comments(self, key: str) -> list[JiraComment]:
        try:
            payload = await self._get(f"{API_PREFIX}/issue/{key}/comment", ttl_ms=TTL.SHORT)
        except TrackerClientError as e:
            self._read_failed("jira_comments_fetch_failed", e, issue_key=key)
            return []
        return [normalize_comment(c) for c in (payload or {}).get("comments") or []]

    async def add_comment(self, key: str, body: str) -> JiraComment:
        """Add an inline-markup comment (sent as wiki markup).

        Raises:
            TrackerClientError: The comment was not added
        """
        payload = await self._write(
            "POST",
            f"{API_PREFIX}/issue/{key}/comment",
            {"body": markdown_to_wiki(body)},
            key,
        )
        return normalize_comment(payload if isinstance(payload, dict) else {})

    # ==================== Issue Links ====================

    async def get_issue_link_types(self) -> list[IssueLinkType]:
        try:
            payload = await self._get(f"{API_PREFIX}/issueLinkType", ttl_ms=TTL.LONG)
        except TrackerClientError as e:
            self._read_failed("jira_link_types_fetch_failed", e)
            return []
        return [normalize_link_type(t) for t in (payload or {}).get("issueLinkTypes") or []]

    async def create_issue_link(
        self,
        source_key: str,
        target_key: str,
        link_type: str,
        outward: bool = True,
    ) -> bool:
        """Link two issues.

        With ``outward=True`` the source is the outward side ("ENG-1 blocks
        ENG-2"); otherwise it is the inward side ("ENG-1 is blocked by ENG-2").

        Raises:
            TrackerClientError: The link was not created
        """
        body = {
            "type": {"name": link_type},
            "outwardIssue": {"key": source_key if outward else target_key},
            "inwardIssue": {"key": target_key if outward else source_key},
        }
        await self._write("POST", f"{API_PREFIX}/issueLink", body, source_key, target_key)
        logger.info(
            "jira_issue_link_created",
            extra={"source_key": source_key, "target_key": target_key, "link_type": link_type},
        )
        return True

    async def delete_issue_link(self, link_id: str) -> bool:
        """Raises TrackerClientError when the link was not deleted."""
        await self._write("DELETE", f"{API_PREFIX}/issueLink/{link_id}")
        logger.info("jira_issue_link_deleted", extra={"link_id": link_id})
        return True

    # ==================== Projects, Users & Metadata ====================

    async def get_projects(self) -> list[JiraProject]:
        try:
            payload = await self._get(f"{API_PREFIX}/project", ttl_ms=TTL.LONG)
        except TrackerClientError as e:
            self._read_failed("jira_projects_fetch_failed", e)
            return []
        return [normalize_project(p) for p in payload or []]

    async def get_project(self, key: str) -> JiraProject | None:
        try:
            payload = await self._get(f"{API_PREFIX}/project/{key}", ttl_ms=TTL.LONG)
        except TrackerClientError as e:
            self._read_failed("jira_project_fetch_failed", e, project_key=key)
            return None
        return normalize_project(payload) if isinstance(payload, dict) else None

    async def get_current_user(self) -> JiraUser | None:
        try:
            payload = await self._get(f"{API_PREFIX}/myself")
        except TrackerClientError as e:
            self._read_failed("jira_current_user_fetch_failed", e)
            return None
        return normalize_user(payload if isinstance(payload, dict) else None)

    async def search_users(self, query: str, project_key: str | None = None) -> list[JiraUser]:
        """Find users by username, name or email fragment.

        Self-hosted Jira takes the search term in ``username``; "." matches
        everyone. With a project the search is limited to assignable users.
        """
        params: dict[str, Any] = {"username": query or "."}
        endpoint = f"{API_PREFIX}/user/search"
        if project_key:
            endpoint = f"{API_PREFIX}/user/assignable/search"
            params["project"] = project_key
        try:
            payload = await self._get(endpoint, params, ttl_ms=TTL.SHORT)
        except TrackerClientError as e:
            self._read_failed("jira_user_search_failed", e, project_key=project_key)
            return []
        if not isinstance(payload, list):
            return []
        return [user for user in (normalize_user(u) for u in payload) if user is not None]

    async def get_statuses(self, project_key: str) -> list[JiraStatus]:
        """Distinct statuses across all issue types of a project."""
        try:
            payload = await self._get(f"{API_PREFIX}/project/{project_key}/statuses", ttl_ms=TTL.LONG)
        except TrackerClientError as e:
            self._read_failed("jira_statuses_fetch_failed", e, project_key=project_key)
            return []
        unique: dict[str, JiraStatus] = {}
        for issue_type in payload or []:
            for raw in issue_type.get("statuses") or []:
                status = normalize_status(raw)
                unique.setdefault(status.id, status)
        return list(unique.values())

    async def get_priorities(self) -> list[JiraPriority]:
        try:
            payload = await self._get(f"{API_PREFIX}/priority", ttl_ms=TTL.VERY_LONG)
        except TrackerClientError as e:
            self._read_failed("jira_priorities_fetch_failed", e)
            return []
        return [p for p in (normalize_priority(raw) for raw in payload or []) if p is not None]

    async def get_issue_types(self, project_key: str) -> list[JiraIssueType]:
        try:
            payload = await self._get(f"{API_PREFIX}/project/{project_key}", ttl_ms=TTL.VERY_LONG)
        except TrackerClientError as e:
            self._read_failed("jira_issue_types_fetch_failed", e, project_key=project_key)
            return []
        return [normalize_issue_type(t) for t in (payload or {}).get("issueTypes") or []]

    # ==================== Agile Operations ====================

    async def _agile_available(self, feature: str) -> bool:
        try:
            await self._ensure_ready()
        except TrackerClientError as e:
            self._read_failed("jira_agile_unavailable", e, feature=feature)
            return False
        caps = self._effective_capabilities()
        if caps.agile_api and getattr(caps, feature, True):
            return True
        logger.info(
            "jira_agile_unsupported",
            extra={"feature": feature, "version": self.server_info.version if self.server_info else None},
        )
        return False

    async def get_boards(self, project_key: str | None = None) -> list[JiraBoard]:
        """All agile boards (optionally for one project), capped at 500."""
        if not await self._agile_available("agile_api"):
            return []

        boards: list[JiraBoard] = []
        start_at = 0
        try:
            while True:
                page = await self._gateway.get(
                    f"{AGILE_PREFIX}/board",
                    {"startAt": start_at, "maxResults": BOARD_PAGE_SIZE, "projectKeyOrId": project_key},
                )
                values = (page or {}).get("values") or []
                boards.extend(normalize_board(b) for b in values)
                is_last = (page or {}).get("isLast")
                if is_last is None:
                    is_last = len(values) < BOARD_PAGE_SIZE
                if is_last or not values:
                    break
                if len(boards) >= MAX_BOARDS:
                    logger.warning("jira_board_limit_reached", extra={"limit": MAX_BOARDS})
                    break
                start_at += BOARD_PAGE_SIZE
        except TrackerClientError as e:
            self._read_failed("jira_boards_fetch_failed", e, project_key=project_key)
            return []
        return boards[:MAX_BOARDS]

    async def get_sprints(self, board_id: int) -> list[JiraSprint]:
        """Sprints of a board. Kanban boards (400/404) have none."""
        if not await self._agile_available("sprint"):
            return []
        try:
            payload = await self._gateway.get(f"{AGILE_PREFIX}/board/{board_id}/sprint", ttl_ms=TTL.SHORT)
        except HttpFailure as e:
            if e.status in (400, 404):
                logger.debug("jira_board_has_no_sprints", extra={"board_id": board_id, "status": e.status})
                return []
            self._read_failed("jira_sprints_fetch_failed", e, board_id=board_id)
            return []
        except TrackerClientError as e:
            self._read_failed("jira_sprints_fetch_failed", e, board_id=board_id)
            return []
        return [normalize_sprint(s) for s in (payload or {}).get("values") or []]

    async def get_active_sprint(self, board_id: int) -> JiraSprint | None:
        for sprint in await self.get_sprints(board_id):
            if sprint.state == "active":
                return sprint
        return None

    async def get_sprint_issues(self, sprint_id: int) -> list[JiraIssue]:
        if not await self._agile_available("sprint"):
            return []
        try:
            payload = await self._gateway.get(
                f"{AGILE_PREFIX}/sprint/{sprint_id}/issue",
                {"maxResults": SPRINT_ISSUE_LIMIT},
            )
        except TrackerClientError as e:
            self._read_failed("jira_sprint_issues_fetch_failed", e, sprint_id=sprint_id)
            return []
        return [self._normalize(issue) for issue in (payload or {}).get("issues") or []]

    async def get_my_sprint_issues(self, sprint_id: int) -> list[JiraIssue]:
        issues = await self.get_sprint_issues(sprint_id)
        me = await self.get_current_user()
        if me is None:
            return []
        return [i for i in issues if i.assignee is not None and i.assignee.account_id == me.account_id]

    async def get_sprint_unassigned_issues(self, sprint_id: int) -> list[JiraIssue]:
        return [i for i in await self.get_sprint_issues(sprint_id) if i.assignee is None]
