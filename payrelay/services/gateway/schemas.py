"""Inbound payload schemas and the per-operation validator.

Wire names follow the browser client (camelCase). Types are strict: a JSON
string is required where a string is expected, and integers must be real
integers in the uint32 range. Unknown fields are ignored.
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from payrelay.common.logging import logger


UInt32 = Annotated[StrictInt, Field(ge=0, le=2**32 - 1)]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class PaymentPayload(_Payload):
    """Payload accepted by `POST /payment`."""

    source_id: StrictStr = Field(alias="sourceId")
    location_id: StrictStr = Field(alias="locationId")
    # Accepted for client compatibility; the charged amount is set server-side.
    amount: UInt32 | None = None
    idempotency_key: StrictStr | None = Field(default=None, alias="idempotencyKey")
    verification_token: StrictStr | None = Field(default=None, alias="verificationToken")


class CardPayload(_Payload):
    """Payload accepted by `POST /cof`."""

    exp_month: UInt32 = Field(alias="expMonth")
    exp_year: UInt32 = Field(alias="expYear")
    cardholder_name: StrictStr = Field(alias="cardHolderName")
    customer_id: StrictStr = Field(alias="customerId")
    source_id: StrictStr = Field(alias="sourceId")
    idempotency_key: StrictStr | None = Field(default=None, alias="idempotencyKey")
    verification_token: StrictStr | None = Field(default=None, alias="verificationToken")


class ListCardsPayload(_Payload):
    customer_id: StrictStr = Field(alias="customerId")


class SearchCustomerPayload(_Payload):
    email_address: StrictStr = Field(alias="emailAddress")


SCHEMAS: dict[str, type[_Payload]] = {
    "payment": PaymentPayload,
    "card": CardPayload,
    "list_cards": ListCardsPayload,
    "search_customer": SearchCustomerPayload,
}


def _explicit_nulls(schema: type[_Payload], payload: dict) -> list[str]:
    # Optional means "may be absent", not "may be null".
    names = [info.alias or name for name, info in schema.model_fields.items() if not info.is_required()]
    return [name for name in names if name in payload and payload[name] is None]


def parse(operation: str, payload: Any) -> _Payload | None:
    """Return the typed payload for `operation`, or None if it does not validate."""

    schema = SCHEMAS[operation]
    if not isinstance(payload, dict):
        logger.info("%s payload rejected: not an object", operation)
        return None
    nulls = _explicit_nulls(schema, payload)
    if nulls:
        logger.info("%s payload rejected: null values for %s", operation, nulls)
        return None
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        logger.info(
            "%s payload rejected: %s",
            operation,
            exc.errors(include_url=False, include_input=False),
        )
        return None


def validate(operation: str, payload: Any) -> bool:
    """Accept/reject `payload` against the fixed schema for `operation`."""

    return parse(operation, payload) is not None
