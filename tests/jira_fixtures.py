"""Fake Jira Server plumbing shared by the connector tests.

JiraRouter is a handler for httpx.MockTransport, so tests exercise the real
httpx client stack without a network.
"""

import json
from typing import Any

import httpx

BASE_URL = "https://jira.example.com"


class JiraRouter:
    """Callable handler for httpx.MockTransport.

    Routes are keyed by (METHOD, path). A route value is a payload (returned as
    200 JSON), an httpx.Response, a callable taking the request, or a list of
    those consumed one per call (the last one repeats). Every request is
    recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, response: Any) -> "JiraRouter":
        self.routes[(method.upper(), path)] = response
        return self

    def requests_to(self, path: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.calls if r.url.path == path and (method is None or r.method == method.upper())
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"errorMessages": [f"No route for {request.url.path}"]})
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if callable(route) and not isinstance(route, httpx.Response):
            route = route(request)
        if isinstance(route, httpx.Response):
            # Canned responses repeat, so hand out a fresh copy each time
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        return httpx.Response(200, json=route)


def mock_client(handler: JiraRouter) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content.decode()) if request.content else None


def server_info_payload(version: str = "9.12.2") -> dict[str, Any]:
    return {
        "baseUrl": BASE_URL,
        "version": version,
        "versionNumbers": [int(p) for p in version.split(".")],
        "deploymentType": "Server",
        "buildNumber": 912002,
        "serverTitle": "Example Jira",
    }


def myself_payload(name: str = "jdoe") -> dict[str, Any]:
    return {
        "name": name,
        "key": f"JIRAUSER-{name}",
        "displayName": "Jane Doe" if name == "jdoe" else name.title(),
        "emailAddress": f"{name}@example.com",
        "active": True,
        "timeZone": "Europe/Berlin",
        "avatarUrls": {"48x48": f"{BASE_URL}/secure/useravatar?owner={name}"},
    }


def issue_payload(key: str = "ENG-1", **fields: Any) -> dict[str, Any]:
    base_fields = {
        "summary": "Fix login",
        "description": "h2. Steps\n* *run* {{make}}",
        "issuetype": {"id": "10001", "name": "Story"},
        "status": {
            "id": "3",
            "name": "In Progress",
            "statusCategory": {"id": 4, "key": "indeterminate", "colorName": "yellow", "name": "In Progress"},
        },
        "priority": {"id": "2", "name": "High"},
        "assignee": myself_payload(),
        "reporter": myself_payload("boss"),
        "project": {"id": "100", "key": key.split("-")[0], "name": "Engineering"},
        "labels": ["backend"],
        "created": "2026-01-05T10:00:00.000+0000",
        "updated": "2026-01-06T10:00:00.000+0000",
    }
    base_fields.update(fields)
    return {"id": "20001", "key": key, "fields": base_fields}


def jira_server(version: str = "9.12.2", *, token_accepted: bool = True, basic_accepted: bool = True) -> JiraRouter:
    """Router preloaded with /serverInfo and an auth-aware /myself."""
    router = JiraRouter()
    router.add("GET", "/rest/api/2/serverInfo", server_info_payload(version))

    def myself(request: httpx.Request) -> httpx.Response:
        auth = request.headers.get("Authorization", "")
        if (auth.startswith("Bearer ") and token_accepted) or (auth.startswith("Basic ") and basic_accepted):
            return httpx.Response(200, json=myself_payload())
        return httpx.Response(401, text="Unauthorized")

    router.add("GET", "/rest/api/2/myself", myself)
    return router
