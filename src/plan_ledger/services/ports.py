"""Protocol interfaces for external collaborators.

The ledger consumes these; implementations live outside the core
(in-memory adapters are in ``plan_ledger.infrastructure.collaborators``).
Every call is a suspension point.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from plan_ledger.core.models import (
    Contract,
    Customer,
    Payment,
    PaymentData,
    PaymentMethod,
    Quote,
)


@runtime_checkable
class ContractRepository(Protocol):
    async def get_contract(self, contract_id: str) -> Contract:
        """Raises ``NotFoundError`` if absent."""
        ...


@runtime_checkable
class CustomerRepository(Protocol):
    async def get_customer_by_id(self, customer_id: str) -> Customer:
        """Raises ``NotFoundError`` if absent."""
        ...


@runtime_checkable
class CustomerPaymentMethodService(Protocol):
    async def get_method_for_customer(self, customer_id: str) -> PaymentMethod:
        """Raises ``NotConfiguredError`` if the customer has none."""
        ...


@runtime_checkable
class QuotingService(Protocol):
    async def quote_for_contract(self, contract: Contract) -> Quote: ...


@runtime_checkable
class PaymentService(Protocol):
    async def create_payment(self, data: PaymentData) -> Payment: ...
