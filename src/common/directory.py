from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import DEFAULT_BASE_URL, DirectorySettings


logger = logging.getLogger(__name__)


class DirectoryError(RuntimeError):
    """Base error for the user directory."""


class DirectoryNetworkError(DirectoryError):
    """Request failed in transit or the server answered non-2xx."""


class DirectoryValidationError(DirectoryError):
    """Input rejected, either locally before any request or by the server."""


class DirectoryAuthError(DirectoryError):
    """No usable session token, or the login call was refused."""


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    avatar: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Page(BaseModel):
    number: int = Field(..., ge=1, description="1-based page number")
    records: List[Record] = Field(default_factory=list)
    total_pages: int = Field(1, ge=1)


class DirectoryClient:
    """
    Thin async client for a reqres-style user directory.

    Notes
    - One HTTP request per call; nothing is cached, batched or retried.
    - Any transport failure or non-2xx answer raises a `DirectoryError`
      subclass; callers decide how to surface it.
    - The session token (opaque) is sent as a bearer token when provided.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        headers: Dict[str, str] = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if api_key:
            headers["x-api-key"] = api_key
        self._headers = headers

    @classmethod
    def from_settings(
        cls,
        settings: DirectorySettings,
        *,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "DirectoryClient":
        return cls(
            base_url=settings.base_url,
            token=token,
            api_key=settings.api_key,
            timeout=settings.timeout,
            client=client,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "DirectoryClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --------------- Public API ---------------
    async def fetch_page(self, number: int) -> Page:
        """
        Fetch one page of the directory.

        The payload is `{ page, data: [...], total_pages }`; `number` falls
        back to the requested page when the server omits `page`.
        """
        if number < 1:
            raise ValueError("page number must be >= 1")
        resp = await self._request("GET", "/api/users", params={"page": number})
        payload = self._json(resp)
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise DirectoryNetworkError("Malformed page payload: missing data list")
        try:
            return Page(
                number=int(payload.get("page") or number),
                records=[Record.model_validate(item) for item in payload["data"]],
                total_pages=int(payload.get("total_pages") or 1),
            )
        except (ValidationError, TypeError, ValueError) as ve:
            raise DirectoryNetworkError(f"Failed to parse page payload: {ve}") from ve

    async def update_record(self, record_id: int, patch: Mapping[str, Any]) -> Dict[str, Any]:
        """
        PUT `patch` to the record. Returns the server's JSON echo (may be empty).

        The echo is informational only; callers keep the value they sent.
        """
        resp = await self._request("PUT", f"/api/users/{record_id}", json=dict(patch))
        if not resp.content:
            return {}
        body = self._json(resp)
        return body if isinstance(body, dict) else {}

    async def delete_record(self, record_id: int) -> None:
        await self._request("DELETE", f"/api/users/{record_id}")

    async def login(self, email: str, password: str) -> str:
        """Exchange credentials for a session token via `POST /api/login`."""
        try:
            resp = await self._client.post(
                "/api/login",
                json={"email": email, "password": password},
                headers=self._headers,
            )
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise DirectoryNetworkError("Login request failed") from exc

        if not resp.is_success:
            message = None
            try:
                body = resp.json()
                if isinstance(body, dict) and isinstance(body.get("error"), str):
                    message = body["error"]
            except ValueError:
                pass
            raise DirectoryAuthError(message or f"HTTP {resp.status_code} from login")

        body = self._json(resp)
        token = body.get("token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            raise DirectoryAuthError("Login response did not include a token")
        return token

    # --------------- Internal ---------------
    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            resp = await self._client.request(method, path, headers=self._headers, **kwargs)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise DirectoryNetworkError(f"{method} {path} failed") from exc

        if resp.is_success:
            return resp
        if method == "PUT" and resp.status_code in (400, 422):
            raise DirectoryValidationError(
                f"HTTP {resp.status_code} from directory: {resp.text[:200]}"
            )
        raise DirectoryNetworkError(f"HTTP {resp.status_code} from directory: {resp.text[:200]}")

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:  # JSON decode error
            raise DirectoryNetworkError("Failed to parse JSON from directory") from exc


__all__ = [
    "DirectoryClient",
    "DirectoryError",
    "DirectoryNetworkError",
    "DirectoryValidationError",
    "DirectoryAuthError",
    "Record",
    "Page",
]
