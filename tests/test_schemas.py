"""Validator behavior for each operation's payload schema."""

import pytest

from payrelay.services.gateway.schemas import parse, validate


CARD = {
    "expMonth": 12,
    "expYear": 2030,
    "cardHolderName": "Ada Lovelace",
    "customerId": "cust-1",
    "sourceId": "cnon:card-nonce-ok",
}


def test_payment_minimal_payload_accepted():
    assert validate("payment", {"sourceId": "src1", "locationId": "loc1"})


def test_payment_optional_fields_and_extras():
    """Optional fields are type-checked; unknown fields are ignored."""

    payload = {
        "sourceId": "src1",
        "locationId": "loc1",
        "amount": 500,
        "idempotencyKey": "key-1",
        "verificationToken": "verf-1",
        "note": "ignored",
    }
    parsed = parse("payment", payload)
    assert parsed is not None
    assert parsed.idempotency_key == "key-1"
    assert parsed.verification_token == "verf-1"


@pytest.mark.parametrize(
    "payload",
    [
        {"locationId": "loc1"},
        {"sourceId": "src1"},
        {"sourceId": 1, "locationId": "loc1"},
        {"sourceId": "src1", "locationId": "loc1", "amount": -1},
        {"sourceId": "src1", "locationId": "loc1", "amount": 2**32},
        {"sourceId": "src1", "locationId": "loc1", "amount": "100"},
        {"sourceId": "src1", "locationId": "loc1", "amount": 1.5},
        {"sourceId": "src1", "locationId": "loc1", "idempotencyKey": 7},
        {"sourceId": "src1", "locationId": "loc1", "verificationToken": None},
        ["sourceId", "locationId"],
        None,
    ],
)
def test_payment_rejections(payload):
    assert not validate("payment", payload)


def test_card_payload():
    assert validate("card", CARD)
    assert validate("card", {**CARD, "idempotencyKey": "k", "verificationToken": "v"})


@pytest.mark.parametrize("field", ["expMonth", "expYear", "cardHolderName", "customerId", "sourceId"])
def test_card_missing_required_field(field):
    payload = {k: v for k, v in CARD.items() if k != field}
    assert not validate("card", payload)


def test_card_rejects_bool_and_string_months():
    assert not validate("card", {**CARD, "expMonth": True})
    assert not validate("card", {**CARD, "expYear": "2030"})


def test_lookup_payloads():
    assert validate("list_cards", {"customerId": "cust-1"})
    assert not validate("list_cards", {"customer_id": "cust-1"})
    assert validate("search_customer", {"emailAddress": "ada@example.com"})
    assert not validate("search_customer", {"emailAddress": ["ada@example.com"]})


def test_unknown_operation_is_a_programming_error():
    with pytest.raises(KeyError):
        validate("refund", {})
