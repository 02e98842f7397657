"""Async Square REST client.

Every call returns an `ApiResponse` or raises. Square rejecting a request
(4xx) raises `ApiError`, which callers must not retry; `SquareUnavailable` and
`httpx.TransportError` are transient.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from payrelay.common.config import Settings
from payrelay.common.logging import logger
from payrelay.common.metrics import external_calls_total
from payrelay.common.tracing import tracer
from payrelay.services.square.models import (
    CreateCardRequest,
    CreatePaymentRequest,
    SearchCustomersRequest,
)


# Timeouts and throttling are worth another attempt even though they are 4xx.
TRANSIENT_CLIENT_STATUSES = {408, 429}


@dataclass
class ApiResponse:
    status_code: int
    result: dict[str, Any]


class ApiError(Exception):
    """Square rejected the request; retrying the same request will not help."""

    def __init__(self, status_code: int, errors: list[dict[str, Any]]) -> None:
        super().__init__(f"square rejected request ({status_code}): {errors}")
        self.status_code = status_code
        self.errors = errors


class SquareUnavailable(Exception):
    """Square answered with a server-side or throttling status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"square unavailable ({status_code}): {body[:200]}")
        self.status_code = status_code


class PaymentsClient(Protocol):
    async def create_payment(self, request: CreatePaymentRequest) -> ApiResponse: ...

    async def create_card(self, request: CreateCardRequest) -> ApiResponse: ...

    async def list_cards(self, customer_id: str) -> ApiResponse: ...

    async def search_customers(self, request: SearchCustomersRequest) -> ApiResponse: ...

    async def close(self) -> None: ...


@dataclass
class SquareClient:
    """Thin wrapper over `httpx.AsyncClient` for the four Square calls we need."""

    access_token: str
    base_url: str
    square_version: str
    timeout: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None
    _http: httpx.AsyncClient = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Square-Version": self.square_version,
                "Accept": "application/json",
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SquareClient":
        if not settings.square_access_token:
            logger.warning("SQUARE_ACCESS_TOKEN is not set; platform calls will be rejected")
        return cls(
            access_token=settings.square_access_token,
            base_url=settings.square_url,
            square_version=settings.square_version,
            timeout=settings.request_timeout_seconds,
        )

    async def create_payment(self, request: CreatePaymentRequest) -> ApiResponse:
        return await self._send("create_payment", "POST", "/v2/payments", body=request)

    async def create_card(self, request: CreateCardRequest) -> ApiResponse:
        return await self._send("create_card", "POST", "/v2/cards", body=request)

    async def list_cards(self, customer_id: str) -> ApiResponse:
        return await self._send("list_cards", "GET", "/v2/cards", params={"customer_id": customer_id})

    async def search_customers(self, request: SearchCustomersRequest) -> ApiResponse:
        return await self._send("search_customers", "POST", "/v2/customers/search", body=request)

    async def close(self) -> None:
        await self._http.aclose()

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        body: BaseModel | None = None,
        params: dict[str, str] | None = None,
    ) -> ApiResponse:
        payload = body.model_dump(exclude_none=True) if body is not None else None
        with tracer.start_as_current_span(f"square.{operation}") as span:
            try:
                resp = await self._http.request(method, path, json=payload, params=params)
            except httpx.TransportError:
                external_calls_total.labels(operation=operation, outcome="transport_error").inc()
                raise
            span.set_attribute("http.status_code", resp.status_code)

        if resp.status_code >= 500 or resp.status_code in TRANSIENT_CLIENT_STATUSES:
            external_calls_total.labels(operation=operation, outcome="unavailable").inc()
            raise SquareUnavailable(resp.status_code, resp.text)
        if resp.status_code >= 400:
            external_calls_total.labels(operation=operation, outcome="rejected").inc()
            raise ApiError(resp.status_code, _errors_from(resp))

        external_calls_total.labels(operation=operation, outcome="success").inc()
        return ApiResponse(status_code=resp.status_code, result=resp.json())


def _errors_from(resp: httpx.Response) -> list[dict[str, Any]]:
    try:
        body = resp.json()
    except ValueError:
        body = None
    errors = body.get("errors") if isinstance(body, dict) else None
    if not isinstance(errors, list):
        return [{"category": "API_ERROR", "code": "UNKNOWN", "detail": resp.text[:200]}]
    return errors
