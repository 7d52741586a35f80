from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from app.core.exceptions import (
    AuthorizationException,
    BusinessLogicException,
    ExternalServiceException,
    NotFoundException,
    UnauthorizedException,
)
from app.core.resilience import ResilientHttpClient

if TYPE_CHECKING:
    from app.core.auth_dependencies import UserSession

logger = logging.getLogger(__name__)

# Statuses where the remote service understood and refused the request
REJECTION_STATUSES = (400, 409, 422)

_shared_client: ResilientHttpClient | None = None


def get_http_client() -> ResilientHttpClient:
    """Process-wide HTTP client shared by every remote service client."""
    global _shared_client
    if _shared_client is None:
        _shared_client = ResilientHttpClient()
    return _shared_client


async def close_http_client() -> None:
    global _shared_client
    if _shared_client is not None:
        await _shared_client.aclose()
        _shared_client = None


def upstream_message(response: httpx.Response) -> str:
    """Best-effort human message from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()[:300] or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return str(body)[:300]


class ServiceClient:
    """
    Base class for clients of the remote microservices.

    Forwards the caller's bearer token, decodes JSON (or plain text) bodies
    and converts httpx failures into the API exception hierarchy.
    """

    service_name = "remote-service"

    def __init__(self, base_url: str, http_client: ResilientHttpClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.http = http_client or get_http_client()

    def _headers(self, session: UserSession | None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if session is not None:
            headers.update(session.auth_headers())
        return headers

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def _request(
        self,
        method: str,
        path: str,
        *,
        session: UserSession | None = None,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http.request(
                method,
                url,
                headers=self._headers(session),
                params=params,
                json=json,
                circuit_key=self.service_name,
            )
        except httpx.HTTPStatusError as e:
            raise self._status_error(e.response, resource, resource_id) from e
        except httpx.HTTPError as e:
            logger.error(
                "Remote service unreachable",
                extra={
                    "service": self.service_name,
                    "method": method,
                    "path": path,
                    "exception": type(e).__name__,
                },
            )
            raise ExternalServiceException(
                self.service_name,
                "Service unavailable, please try again",
                details={"reason": type(e).__name__},
            ) from e

        return self._decode(response)

    def _status_error(
        self,
        response: httpx.Response,
        resource: str | None,
        resource_id: str | None,
    ) -> Exception:
        status = response.status_code
        message = upstream_message(response)

        if status == 404 and resource:
            return NotFoundException(resource, resource_id)
        if status == 401:
            return UnauthorizedException(message or "Session expired, please log in again")
        if status == 403:
            return AuthorizationException(message or "Access denied")
        if status in REJECTION_STATUSES:
            return BusinessLogicException(
                message or "Request rejected",
                error_code="UPSTREAM_REJECTED",
                status_code=status,
                details={"service": self.service_name},
            )
        return ExternalServiceException(
            self.service_name,
            message or "Unexpected response",
            details={"status": status},
        )
