"""Domain layer: versioned aggregates, plan lifecycle, domain events.

Everything here is immutable and free of I/O; the store and the bus
live in ``plan_ledger.infrastructure``.
"""
