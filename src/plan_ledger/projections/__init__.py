"""Projections: long-running consumers of domain events."""

from plan_ledger.projections.active_plans import ActivePlansProjection
from plan_ledger.projections.payment_creation import PaymentCreationProjection

__all__ = [
    "ActivePlansProjection",
    "PaymentCreationProjection",
]
