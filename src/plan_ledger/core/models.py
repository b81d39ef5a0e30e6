"""Collaborator records exchanged with contract, customer and payment ports.

These are the canonical shapes the payment projection works with.
The ledger never owns them; adapters hand out copies.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class PaymentType(str, Enum):
    ONE_OFF = "one_off"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Contract / customer
# ---------------------------------------------------------------------------

class Contract(_Record):
    """A customer's insurance contract on a plan."""

    contract_id: str
    customer_id: str
    plan_id: str
    start_date: date
    insured_sum: Decimal = Decimal("0")


class Customer(_Record):
    customer_id: str
    name: str
    email: str = ""


# ---------------------------------------------------------------------------
# Payment methods (opaque variants, no gateway behaviour)
# ---------------------------------------------------------------------------

class CardMethod(_Record):
    kind: Literal["card"] = "card"
    last4: str


class PayPalMethod(_Record):
    kind: Literal["paypal"] = "paypal"
    account: str


class DirectDebitMethod(_Record):
    kind: Literal["direct_debit"] = "direct_debit"
    iban: str


PaymentMethod = Annotated[
    Union[CardMethod, PayPalMethod, DirectDebitMethod],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Quote / payment
# ---------------------------------------------------------------------------

class Quote(_Record):
    amount: Decimal
    payment_type: PaymentType


class PaymentData(_Record):
    contract_id: str
    customer_id: str
    amount: Decimal
    payment_type: PaymentType
    method: PaymentMethod


class Payment(_Record):
    payment_id: str
    data: PaymentData
    created_at: datetime
