from collections.abc import Callable
from typing import Any

import httpx
import pytest

SERVER = "http://rundeck.example.com"

Route = httpx.Response | Callable[[httpx.Request], httpx.Response]


class FakeRundeck:
    """In-memory Rundeck server for httpx.MockTransport.

    Each route holds a queue of responses; the last one repeats.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Route]] = {}
        self.requests: list[httpx.Request] = []
        self.login_response: httpx.Response | None = None

    def add(self, method: str, path: str, *responses: Route) -> None:
        self.routes[(method, path)] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/j_security_check":
            if self.login_response is not None:
                return self.login_response
            return httpx.Response(
                302,
                headers={
                    "Location": "/menu/home",
                    "Set-Cookie": "JSESSIONID=session-1; Path=/",
                },
            )
        if path in ("/menu/home", "/user/login", "/user/error"):
            return httpx.Response(200, text="<html></html>")

        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(500, text=f"unrouted {request.method} {path}")
        route = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(route, httpx.Response):
            # fresh copy, a response object can only be sent once
            return httpx.Response(
                route.status_code, headers=route.headers, content=route.content
            )
        return route(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/api/")]


def execution_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 42,
        "href": f"{SERVER}/api/24/execution/42",
        "permalink": f"{SERVER}/project/Tech-Ops/execution/show/42",
        "status": "running",
        "project": "Tech-Ops",
        "executionType": "user",
        "user": "admin",
        "date-started": {"unixtime": 1700000000000, "date": "2023-11-14T22:13:20Z"},
        "job": {
            "id": "4a05c44d-2864-450a-a2a3-50fb3d5bd553",
            "name": "hello-world",
            "group": None,
            "project": "Tech-Ops",
            "description": "",
            "averageDuration": 1200,
            "options": {"name": "Jenkins"},
        },
        "description": "echo hello ${option.name}",
        "argstring": "-name Jenkins",
    }
    payload.update(overrides)
    return payload


def state_payload(completed: bool, state: str) -> dict[str, Any]:
    return {"executionId": 42, "completed": completed, "executionState": state}


def output_payload(
    entries: list[tuple[str, str]], offset: str, completed: bool
) -> dict[str, Any]:
    return {
        "id": "42",
        "offset": offset,
        "completed": completed,
        "execCompleted": completed,
        "execState": "succeeded" if completed else "running",
        "entries": [{"time": t, "log": log, "level": "NORMAL"} for t, log in entries],
    }


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    for name in (
        "RUNDECK_SERVER",
        "RUNDECK_USER",
        "RUNDECK_PASSWORD",
        "RUNDECK_API_VERSION",
        "RUNDECK_REQUEST_TIMEOUT",
        "RUNDECK_POLL_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake() -> FakeRundeck:
    return FakeRundeck()
