"""Outbound Square request bodies, serialized in Square's snake_case format."""

from pydantic import BaseModel


class Money(BaseModel):
    """Amount in the smallest currency unit (cents for USD)."""

    amount: int
    currency: str


class CreatePaymentRequest(BaseModel):
    source_id: str
    idempotency_key: str
    location_id: str
    amount_money: Money
    verification_token: str | None = None


class CardDetails(BaseModel):
    exp_month: int
    exp_year: int
    cardholder_name: str
    customer_id: str


class CreateCardRequest(BaseModel):
    idempotency_key: str
    source_id: str
    card: CardDetails
    verification_token: str | None = None


class ExactFilter(BaseModel):
    exact: str


class CustomerFilter(BaseModel):
    email_address: ExactFilter


class CustomerQuery(BaseModel):
    filter: CustomerFilter


class SearchCustomersRequest(BaseModel):
    query: CustomerQuery

    @classmethod
    def by_email(cls, email_address: str) -> "SearchCustomersRequest":
        return cls(query=CustomerQuery(filter=CustomerFilter(email_address=ExactFilter(exact=email_address))))
