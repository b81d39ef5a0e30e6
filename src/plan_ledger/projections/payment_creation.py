"""Payment-creation projection.

On every ``ContractCreated`` event:

1. fetch the contract,
2. fetch its customer,
3. fetch the customer's payment method,
4. quote the contract,
5. create the payment.

Any failure aborts processing of that one event.  Ledger errors
(``NotFoundError``, ``NotConfiguredError`` …) are re-raised as they are;
anything else a collaborator throws is wrapped in ``CollaboratorFailure``
naming the step.  The bus catches and reports the error and the
subscription carries on with the next event.  There are no retries.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Awaitable
from typing import TYPE_CHECKING, TypeVar

from plan_ledger.core.errors import CollaboratorFailure, PlanLedgerError
from plan_ledger.core.models import Payment, PaymentData
from plan_ledger.domain.events import ContractCreated, DomainEvent

if TYPE_CHECKING:
    from plan_ledger.infrastructure.event_bus import ProjectionBus, Subscription
    from plan_ledger.services.ports import (
        ContractRepository,
        CustomerPaymentMethodService,
        CustomerRepository,
        PaymentService,
        QuotingService,
    )

logger = logging.getLogger(__name__)

R = TypeVar("R")


class PaymentCreationProjection:
    name = "payment-creation"

    def __init__(
        self,
        contracts: ContractRepository,
        customers: CustomerRepository,
        payment_methods: CustomerPaymentMethodService,
        quoting: QuotingService,
        payments: PaymentService,
    ) -> None:
        self._contracts = contracts
        self._customers = customers
        self._payment_methods = payment_methods
        self._quoting = quoting
        self._payments = payments

        self.payments_created = 0
        self.failures: Counter[str] = Counter()

    def attach(self, bus: ProjectionBus, *, replay: bool = False) -> Subscription:
        return bus.subscribe(
            self.handle,
            event_types=ContractCreated,
            name=self.name,
            replay=replay,
        )

    async def handle(self, event: DomainEvent) -> None:
        if not isinstance(event, ContractCreated):
            return
        try:
            payment = await self._create_payment(event.contract_id)
        except Exception as exc:
            self.failures[type(exc).__name__] += 1
            raise
        self.payments_created += 1
        logger.info(
            "Contract %s -> payment %s",
            event.contract_id,
            payment.payment_id,
        )

    async def _create_payment(self, contract_id: str) -> Payment:
        contract = await _step(
            "get_contract", self._contracts.get_contract(contract_id),
        )
        customer = await _step(
            "get_customer_by_id",
            self._customers.get_customer_by_id(contract.customer_id),
        )
        method = await _step(
            "get_method_for_customer",
            self._payment_methods.get_method_for_customer(customer.customer_id),
        )
        quote = await _step(
            "quote_for_contract", self._quoting.quote_for_contract(contract),
        )
        data = PaymentData(
            contract_id=contract.contract_id,
            customer_id=customer.customer_id,
            amount=quote.amount,
            payment_type=quote.payment_type,
            method=method,
        )
        return await _step("create_payment", self._payments.create_payment(data))


async def _step(step: str, call: Awaitable[R]) -> R:
    try:
        return await call
    except PlanLedgerError:
        raise
    except Exception as exc:
        raise CollaboratorFailure(step, exc) from exc
