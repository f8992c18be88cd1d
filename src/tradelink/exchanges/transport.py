"""HTTP transport collaborator shared by venue drivers."""

from dataclasses import dataclass, field, replace
from typing import Any, Protocol

import httpx
import structlog

from tradelink.exchanges.errors import DispatchTimeout, TransportError, VenueError

logger = structlog.get_logger()

DEFAULT_HTTP_TIMEOUT = 15.0


@dataclass(frozen=True)
class RequestSpec:
    """One outbound venue call, before signing."""

    method: str
    path: str
    params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    authenticated: bool = False
    form_encoded: bool = False

    def with_updates(self, **changes: Any) -> "RequestSpec":
        return replace(self, **changes)


@dataclass(frozen=True)
class RawResponse:
    """Decoded venue payload and the HTTP status it arrived with."""

    status_code: int
    payload: Any


@dataclass(frozen=True)
class Credentials:
    api_key: str = ""
    api_secret: str = ""
    passphrase: str = ""
    client_id: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_secret)


class Signer(Protocol):
    def __call__(self, request: RequestSpec, credentials: Credentials) -> RequestSpec: ...


class Transport(Protocol):
    """Performs a request and returns the decoded payload.

    Implementations raise ``TransportError``, ``VenueError`` or
    ``DispatchTimeout`` and nothing else.
    """

    async def perform(self, request: RequestSpec) -> RawResponse: ...

    async def close(self) -> None: ...


class HttpTransport:
    """httpx-based transport with an optional per-venue signer."""

    def __init__(
        self,
        venue: str,
        base_url: str,
        credentials: Credentials | None = None,
        signer: Signer | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self._venue = venue
        self._credentials = credentials or Credentials()
        self._signer = signer
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    async def perform(self, request: RequestSpec) -> RawResponse:
        if request.authenticated:
            if self._signer is None or not self._credentials.configured:
                raise VenueError(
                    "Authenticated call without API credentials",
                    venue=self._venue,
                    code="auth",
                )
            request = self._signer(request, self._credentials)

        try:
            response = await self._client.request(
                request.method,
                request.path,
                params=request.params or None,
                json=None if request.form_encoded else request.body,
                data=request.body if request.form_encoded else None,
                headers=request.headers or None,
            )
        except httpx.TimeoutException as e:
            raise DispatchTimeout(
                f"{self._venue} {request.method} {request.path} timed out", venue=self._venue
            ) from e
        except httpx.TransportError as e:
            raise TransportError(
                f"{self._venue} network error: {e}", venue=self._venue
            ) from e

        if response.status_code >= 400:
            raise VenueError(
                response.text[:500] or response.reason_phrase,
                venue=self._venue,
                code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise VenueError(
                f"Undecodable response from {request.path}", venue=self._venue
            ) from e
        return RawResponse(status_code=response.status_code, payload=payload)

    async def close(self) -> None:
        await self._client.aclose()
