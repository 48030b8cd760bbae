import json
import math
import os
import re
import sys
from typing import Any, Dict, List, Optional, Set

import httpx
import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `common.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


BASE_URL = "https://reqres.test"
VALID_PASSWORD = "cityslicka"
TOKEN = "QpwL5tke4Pnpja7X4"

_USER_PATH = re.compile(r"^/api/users/(\d+)$")


def make_user(uid: int, first: str, last: str) -> Dict[str, Any]:
    return {
        "id": uid,
        "email": f"{first.lower()}.{last.lower()}@reqres.in",
        "first_name": first,
        "last_name": last,
        "avatar": f"https://reqres.in/img/faces/{uid}-image.jpg",
    }


class FakeDirectory:
    """reqres-like server: paginated list, PUT echoes, DELETE returns 204.

    Like reqres, PUT and DELETE do not change what later GETs return.
    """

    def __init__(self, users: List[Dict[str, Any]], *, per_page: int = 2) -> None:
        self.users = list(users)
        self.per_page = per_page
        self.requests: List[httpx.Request] = []
        self.fail_pages: Set[int] = set()
        self.fail_methods: Set[str] = set()
        self.status_for_put: Optional[int] = None

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(len(self.users) / self.per_page))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/api/users":
            page = int(request.url.params.get("page", "1"))
            if page in self.fail_pages:
                return httpx.Response(500, text="server error")
            start = (page - 1) * self.per_page
            return httpx.Response(
                200,
                json={
                    "page": page,
                    "per_page": self.per_page,
                    "total": len(self.users),
                    "total_pages": self.total_pages,
                    "data": self.users[start:start + self.per_page],
                },
            )

        if request.method == "POST" and path == "/api/login":
            body = json.loads(request.content or b"{}")
            if not body.get("password"):
                return httpx.Response(400, json={"error": "Missing password"})
            if body["password"] != VALID_PASSWORD:
                return httpx.Response(400, json={"error": "user not found"})
            return httpx.Response(200, json={"token": TOKEN})

        m = _USER_PATH.match(path)
        if m and request.method in self.fail_methods:
            return httpx.Response(500, text="server error")
        if m and request.method == "PUT":
            if self.status_for_put is not None:
                return httpx.Response(self.status_for_put, json={"error": "rejected"})
            body = json.loads(request.content)
            return httpx.Response(200, json={**body, "updatedAt": "2024-09-03T10:00:00.000Z"})
        if m and request.method == "DELETE":
            return httpx.Response(204)

        return httpx.Response(404, json={})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(self.handler))

    def count(self, method: str, path: Optional[str] = None) -> int:
        return sum(
            1
            for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        )

    def pages_requested(self) -> List[int]:
        return [
            int(r.url.params["page"])
            for r in self.requests
            if r.method == "GET" and r.url.path == "/api/users"
        ]


@pytest.fixture
def users() -> List[Dict[str, Any]]:
    # Two pages of two; "an" matches Janet Weaver (page 1) and Dana Holt (page 2)
    return [
        make_user(1, "George", "Bluth"),
        make_user(2, "Janet", "Weaver"),
        make_user(3, "Emma", "Wong"),
        make_user(4, "Dana", "Holt"),
    ]


@pytest.fixture
def fake_directory(users) -> FakeDirectory:
    return FakeDirectory(users)
