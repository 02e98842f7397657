"""Request handlers: validate, call Square with retries, map the response."""

from typing import Any, Awaitable, Callable
from uuid import uuid4

from payrelay.common.config import Settings
from payrelay.common.logging import logger, operation_ctx
from payrelay.common.metrics import handler_failures_total
from payrelay.common.retry import Bail, Outcome, RetryExhausted, RetryPolicy, Retryable, Success, run_with_retry
from payrelay.services.gateway.schemas import parse
from payrelay.services.square.client import ApiError, ApiResponse, PaymentsClient
from payrelay.services.square.models import (
    CardDetails,
    CreateCardRequest,
    CreatePaymentRequest,
    Money,
    SearchCustomersRequest,
)


class BadRequest(Exception):
    """Payload could not be decoded or failed schema validation."""


class NotFound(Exception):
    """Square returned no records for a lookup."""


class UnexpectedResponse(Exception):
    """Square reported success but the body is not shaped as documented."""


HandlerResult = tuple[int, dict[str, Any]]


def new_idempotency_key() -> str:
    return str(uuid4())


def _unexpected(operation: str, what: str, value: Any) -> UnexpectedResponse:
    handler_failures_total.labels(operation=operation, error_type="unexpected_response").inc()
    logger.error("%s succeeded but %s is %r", operation, what, value)
    return UnexpectedResponse(f"malformed {what} in {operation} response")


def _record(operation: str, value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise _unexpected(operation, what, value)
    return value


def _first(operation: str, records: Any, what: str, key: str) -> dict[str, Any]:
    """Pick the first record in platform order; the lookup expects exactly one."""

    if records is not None and not isinstance(records, list):
        raise _unexpected(operation, what, records)
    if not records:
        handler_failures_total.labels(operation=operation, error_type="not_found").inc()
        raise NotFound(f"no {what} found")
    if len(records) > 1:
        logger.warning("%d %s matched %s, using the first", len(records), what, key)
    return _record(operation, records[0], what)


class GatewayService:
    """The four relay operations exposed over HTTP."""

    def __init__(
        self,
        client: PaymentsClient,
        settings: Settings,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.policy = policy or RetryPolicy.from_settings(settings)
        self._sleep = sleep

    async def _call(self, operation: str, call: Callable[[], Awaitable[ApiResponse]]) -> ApiResponse:
        """Run one Square call under the retry policy, bailing on `ApiError`."""

        async def attempt(bail: Bail, number: int) -> Outcome:
            logger.debug("%s attempt=%s", operation, number)
            try:
                return Success(await call())
            except ApiError as exc:
                logger.error("%s rejected by square errors=%s", operation, exc.errors)
                return bail(exc)
            except Exception as exc:
                return Retryable(exc)

        kwargs: dict[str, Any] = {
            "operation": operation,
            "service_name": self.settings.service_name,
            "dependency": "square",
        }
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        token = operation_ctx.set(operation)
        try:
            resp = await run_with_retry(attempt, self.policy, **kwargs)
            _record(operation, resp.result, "response body")
            return resp
        except ApiError:
            handler_failures_total.labels(operation=operation, error_type="api_error").inc()
            raise
        except RetryExhausted:
            handler_failures_total.labels(operation=operation, error_type="retry_exhausted").inc()
            raise
        finally:
            operation_ctx.reset(token)

    def _parse(self, operation: str, payload: Any):
        parsed = parse(operation, payload)
        if parsed is None:
            handler_failures_total.labels(operation=operation, error_type="bad_request").inc()
            raise BadRequest("Bad Request")
        return parsed

    async def create_payment(self, payload: Any) -> HandlerResult:
        data = self._parse("payment", payload)
        # One key for every attempt, so Square can deduplicate retries.
        request = CreatePaymentRequest(
            source_id=data.source_id,
            location_id=data.location_id,
            idempotency_key=data.idempotency_key or new_idempotency_key(),
            amount_money=Money(
                amount=self.settings.payment_amount_cents,
                currency=self.settings.payment_currency,
            ),
            verification_token=data.verification_token or None,
        )

        resp = await self._call("create_payment", lambda: self.client.create_payment(request))
        logger.info("Payment succeeded status_code=%s", resp.status_code)
        payment = _record("create_payment", resp.result.get("payment"), "payment")
        return resp.status_code, {
            "success": True,
            "payment": {
                "id": payment.get("id"),
                "status": payment.get("status"),
                "receiptUrl": payment.get("receipt_url"),
                "orderId": payment.get("order_id"),
            },
        }

    async def create_card(self, payload: Any) -> HandlerResult:
        data = self._parse("card", payload)
        request = CreateCardRequest(
            idempotency_key=data.idempotency_key or new_idempotency_key(),
            source_id=data.source_id,
            verification_token=data.verification_token or None,
            card=CardDetails(
                exp_month=data.exp_month,
                exp_year=data.exp_year,
                cardholder_name=data.cardholder_name,
                customer_id=data.customer_id,
            ),
        )

        resp = await self._call("create_card", lambda: self.client.create_card(request))
        logger.info("Create card succeeded status_code=%s", resp.status_code)
        card = _record("create_card", resp.result.get("card"), "card")
        return resp.status_code, {"success": True, "card": {"id": card.get("id")}}

    async def list_cards(self, payload: Any) -> HandlerResult:
        data = self._parse("list_cards", payload)

        resp = await self._call("list_cards", lambda: self.client.list_cards(data.customer_id))
        card = _first("list_cards", resp.result.get("cards"), "cards", f"customer {data.customer_id}")
        logger.info("Cards found status_code=%s", resp.status_code)
        return resp.status_code, {
            "success": True,
            "card": {
                "id": card.get("id"),
                "card_brand": card.get("card_brand"),
                "last4": card.get("last_4"),
            },
        }

    async def search_customer(self, payload: Any) -> HandlerResult:
        data = self._parse("search_customer", payload)
        request = SearchCustomersRequest.by_email(data.email_address)

        resp = await self._call("search_customers", lambda: self.client.search_customers(request))
        customer = _first("search_customers", resp.result.get("customers"), "customers", "email address")
        logger.info("Customer found status_code=%s", resp.status_code)
        return resp.status_code, {
            "success": True,
            "customer": {
                "id": customer.get("id"),
                "given_name": customer.get("given_name"),
                "family_name": customer.get("family_name"),
            },
        }
