"""Versioned aggregate snapshots.

An aggregate is identified by its ``aggregate_id`` across every version;
each ``Versioned`` snapshot is an immutable value addressing exactly one
``(aggregate_id, version)`` pair.

Equality and hashing follow entity semantics: two snapshots of the same
aggregate compare equal regardless of version or payload.  Use
``same_snapshot()`` when a structural comparison is wanted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from plan_ledger.core.errors import ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class VersionedId:
    """Address of one historical snapshot."""

    aggregate_id: str
    version: int

    def __post_init__(self) -> None:
        if not self.aggregate_id:
            raise ValidationError("aggregate_id must be non-empty")
        if self.version < 1:
            raise ValidationError(
                f"version must be >= 1, got {self.version}"
            )

    def next(self) -> VersionedId:
        return VersionedId(self.aggregate_id, self.version + 1)

    def __str__(self) -> str:
        return f"{self.aggregate_id}@v{self.version}"


@dataclass(frozen=True, eq=False)
class Versioned(Generic[T]):
    """Immutable snapshot of an aggregate at one version."""

    versioned_id: VersionedId
    data: T

    @property
    def aggregate_id(self) -> str:
        return self.versioned_id.aggregate_id

    @property
    def version(self) -> int:
        return self.versioned_id.version

    def same_snapshot(self, other: Versioned[T]) -> bool:
        """Structural comparison: same id, same version, equal data."""
        return (
            self.versioned_id == other.versioned_id
            and self.data == other.data
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Versioned):
            return NotImplemented
        return self.aggregate_id == other.aggregate_id

    def __hash__(self) -> int:
        return hash(self.aggregate_id)
