"""Plan aggregate data: name value object and status variants."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from plan_ledger.core.errors import ValidationError
from plan_ledger.core.ids import is_aware
from plan_ledger.domain.aggregate import Versioned

MAX_NAME_LENGTH = 200


def require_aware(dt: datetime, field_name: str) -> None:
    if not isinstance(dt, datetime) or not is_aware(dt):
        raise ValidationError(
            f"{field_name} must be a timezone-aware datetime, got {dt!r}"
        )


@dataclass(frozen=True)
class PlanName:
    """Validated, non-empty plan name.  Build via ``PlanName.create``."""

    value: str

    @classmethod
    def create(cls, raw: str) -> PlanName:
        """Smart constructor.

        Strips surrounding whitespace.

        Raises:
            ValidationError: if the name is empty or longer than
                ``MAX_NAME_LENGTH`` characters.
        """
        if not isinstance(raw, str):
            raise ValidationError(f"Plan name must be a string, got {type(raw).__name__}")
        name = raw.strip()
        if not name:
            raise ValidationError("Plan name must not be empty")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Plan name exceeds {MAX_NAME_LENGTH} characters ({len(name)})"
            )
        return cls(name)

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Status (closed variant set)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NotLaunched:
    def __str__(self) -> str:
        return "NotLaunched"


@dataclass(frozen=True)
class Launched:
    at: datetime

    def __post_init__(self) -> None:
        require_aware(self.at, "at")

    def __str__(self) -> str:
        return f"Launched({self.at.isoformat()})"


@dataclass(frozen=True)
class Retired:
    valid_from: datetime
    valid_until: datetime

    def __post_init__(self) -> None:
        require_aware(self.valid_from, "valid_from")
        require_aware(self.valid_until, "valid_until")
        if self.valid_until < self.valid_from:
            raise ValidationError(
                f"Retirement at {self.valid_until.isoformat()} precedes "
                f"launch at {self.valid_from.isoformat()}"
            )

    @property
    def is_degenerate(self) -> bool:
        """Retired without ever being launched (zero-length interval)."""
        return self.valid_from == self.valid_until

    def __str__(self) -> str:
        return (
            f"Retired({self.valid_from.isoformat()}, "
            f"{self.valid_until.isoformat()})"
        )


PlanStatus = Union[NotLaunched, Launched, Retired]


@dataclass(frozen=True)
class PlanData:
    """Payload of one plan version."""

    name: PlanName
    status: PlanStatus = NotLaunched()

    @classmethod
    def new(cls, name: str) -> PlanData:
        return cls(name=PlanName.create(name))


Plan = Versioned[PlanData]
