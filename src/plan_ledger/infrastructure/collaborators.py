"""In-memory collaborator adapters.

Dict-backed stand-ins for the contract, customer, payment-method,
quoting and payment services.  Good for: unit tests, local wiring,
scenario demos.  Records are frozen pydantic models, so handing them
out directly cannot leak mutable state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from plan_ledger.core.clock import IClock, WallClock
from plan_ledger.core.errors import NotConfiguredError, NotFoundError
from plan_ledger.core.ids import new_id
from plan_ledger.core.models import (
    Contract,
    Customer,
    Payment,
    PaymentData,
    PaymentMethod,
    PaymentType,
    Quote,
)

logger = logging.getLogger(__name__)


class InMemoryContractRepository:
    def __init__(self) -> None:
        self._contracts: dict[str, Contract] = {}

    def add(self, contract: Contract) -> None:
        self._contracts[contract.contract_id] = contract

    async def get_contract(self, contract_id: str) -> Contract:
        try:
            return self._contracts[contract_id]
        except KeyError:
            raise NotFoundError(f"Contract not found: {contract_id}") from None


class InMemoryCustomerRepository:
    def __init__(self) -> None:
        self._customers: dict[str, Customer] = {}

    def add(self, customer: Customer) -> None:
        self._customers[customer.customer_id] = customer

    async def get_customer_by_id(self, customer_id: str) -> Customer:
        try:
            return self._customers[customer_id]
        except KeyError:
            raise NotFoundError(f"Customer not found: {customer_id}") from None


class InMemoryPaymentMethodService:
    def __init__(self) -> None:
        self._methods: dict[str, PaymentMethod] = {}

    def configure(self, customer_id: str, method: PaymentMethod) -> None:
        self._methods[customer_id] = method

    async def get_method_for_customer(self, customer_id: str) -> PaymentMethod:
        method = self._methods.get(customer_id)
        if method is None:
            raise NotConfiguredError(
                f"No payment method configured for customer {customer_id}"
            )
        return method


class FlatRateQuotingService:
    """Quotes a fixed fraction of the insured sum.

    ``rate`` is applied to ``Contract.insured_sum``; the result is
    rounded to cents.
    """

    def __init__(
        self,
        rate: Decimal = Decimal("0.001"),
        payment_type: PaymentType = PaymentType.MONTHLY,
        minimum: Decimal = Decimal("5.00"),
    ) -> None:
        self._rate = rate
        self._payment_type = payment_type
        self._minimum = minimum

    async def quote_for_contract(self, contract: Contract) -> Quote:
        amount = max(contract.insured_sum * self._rate, self._minimum)
        return Quote(
            amount=amount.quantize(Decimal("0.01")),
            payment_type=self._payment_type,
        )


class InMemoryPaymentService:
    def __init__(self, clock: IClock | None = None) -> None:
        self._clock = clock or WallClock()
        self._payments: dict[str, Payment] = {}

    async def create_payment(self, data: PaymentData) -> Payment:
        payment = Payment(
            payment_id=new_id(),
            data=data,
            created_at=self._clock.now(),
        )
        self._payments[payment.payment_id] = payment
        logger.info(
            "Payment %s created for contract %s (%s %s)",
            payment.payment_id,
            data.contract_id,
            data.amount,
            data.payment_type.value,
        )
        return payment

    @property
    def payments(self) -> list[Payment]:
        return list(self._payments.values())

    def for_contract(self, contract_id: str) -> list[Payment]:
        return [
            p for p in self._payments.values()
            if p.data.contract_id == contract_id
        ]


@dataclass
class Collaborators:
    """Bundle of every collaborator the projections need."""

    contracts: InMemoryContractRepository = field(default_factory=InMemoryContractRepository)
    customers: InMemoryCustomerRepository = field(default_factory=InMemoryCustomerRepository)
    payment_methods: InMemoryPaymentMethodService = field(default_factory=InMemoryPaymentMethodService)
    quoting: FlatRateQuotingService = field(default_factory=FlatRateQuotingService)
    payments: InMemoryPaymentService = field(default_factory=InMemoryPaymentService)
