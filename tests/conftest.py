"""Shared fakes: an in-memory payments client and zero-delay settings."""

import pytest

from payrelay.common.config import Settings
from payrelay.common.retry import RetryPolicy
from payrelay.services.gateway.service import GatewayService
from payrelay.services.square.client import ApiResponse


class FakePaymentsClient:
    """Scripted stand-in for `SquareClient`.

    `script` is consumed one entry per call: exceptions are raised, anything
    else is returned as the call's `ApiResponse`.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls = []
        self.closed = False

    async def _next(self, name, arg):
        self.calls.append((name, arg))
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, BaseException):
            raise step
        return step

    async def create_payment(self, request):
        return await self._next("create_payment", request)

    async def create_card(self, request):
        return await self._next("create_card", request)

    async def list_cards(self, customer_id):
        return await self._next("list_cards", customer_id)

    async def search_customers(self, request):
        return await self._next("search_customers", request)

    async def close(self):
        self.closed = True


async def no_sleep(_delay):
    return None


PAYMENT_OK = ApiResponse(
    status_code=200,
    result={
        "payment": {
            "id": "pay-1",
            "status": "COMPLETED",
            "receipt_url": "https://squareup.com/receipt/preview/pay-1",
            "order_id": "order-1",
        }
    },
)
CARD_OK = ApiResponse(status_code=200, result={"card": {"id": "ccof:1"}})
CARDS_OK = ApiResponse(
    status_code=200,
    result={"cards": [{"id": "ccof:1", "card_brand": "VISA", "last_4": "1111"}]},
)
CUSTOMERS_OK = ApiResponse(
    status_code=200,
    result={"customers": [{"id": "cust-1", "given_name": "Ada", "family_name": "Lovelace"}]},
)


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        square_access_token="test-token",
        retry_max_attempts=3,
        static_dir=str(tmp_path / "public"),
    )


@pytest.fixture()
def make_service(settings):
    def build(*script, max_attempts=3):
        client = FakePaymentsClient(*script)
        policy = RetryPolicy(max_attempts=max_attempts, base_delay=0, max_delay=0, jitter=False)
        return GatewayService(client, settings, policy=policy, sleep=no_sleep), client

    return build
