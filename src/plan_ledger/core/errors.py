"""Custom exception hierarchy for the plan ledger."""


class PlanLedgerError(Exception):
    """Base exception for all plan ledger errors."""


# --- Lookup ---
class NotFoundError(PlanLedgerError):
    """Aggregate, version or collaborator record does not exist."""


class UnknownAggregateError(NotFoundError):
    """Aggregate id has no history at all (version lookups only)."""


# --- Identity ---
class DuplicateIdError(PlanLedgerError):
    """Caller supplied an aggregate id that is already in use."""


# --- Validation ---
class ValidationError(PlanLedgerError):
    """Domain value failed validation (e.g. empty plan name)."""


class InvalidTransitionError(ValidationError):
    """Lifecycle transition rejected by the active policy."""

    def __init__(self, current: str, action: str):
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} a plan in status {current}")


# --- Collaborators ---
class NotConfiguredError(PlanLedgerError):
    """Customer has no configured payment method."""


class CollaboratorFailure(PlanLedgerError):
    """Opaque failure raised by an external dependency."""

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"{step} failed: {type(cause).__name__}: {cause}")


# --- Configuration ---
class ConfigError(PlanLedgerError):
    """Invalid or missing configuration."""
