"""Pure plan lifecycle transitions.

State machine::

    NotLaunched ──launch──▶ Launched ──retire──▶ Retired

Transitions only happen through explicit ``launch`` / ``retire`` calls;
there are no timers.  Two edges are policy-controlled:

*  ``retire`` on a plan that is not Launched yields ``Retired(at, at)``
   (a zero-length interval); for a NotLaunched plan this is rejected
   when ``allow_retire_unlaunched`` is off.
*  ``launch`` on a Retired plan overwrites the status unless
   ``allow_relaunch_retired`` is off.

All functions take and return ``PlanData``; the store applies them
atomically through ``update()``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from plan_ledger.core.errors import InvalidTransitionError, ValidationError
from plan_ledger.domain.plan import (
    Launched,
    NotLaunched,
    PlanData,
    PlanName,
    PlanStatus,
    Retired,
    require_aware,
)


@dataclass(frozen=True)
class LifecyclePolicy:
    allow_retire_unlaunched: bool = True
    allow_relaunch_retired: bool = True
    inclusive_bounds: bool = True


DEFAULT_POLICY = LifecyclePolicy()


def launch(
    data: PlanData,
    at: datetime,
    policy: LifecyclePolicy = DEFAULT_POLICY,
) -> PlanData:
    """Return *data* with status ``Launched(at)``."""
    require_aware(at, "at")
    if isinstance(data.status, Retired) and not policy.allow_relaunch_retired:
        raise InvalidTransitionError(str(data.status), "launch")
    return replace(data, status=Launched(at))


def retire(
    data: PlanData,
    at: datetime,
    policy: LifecyclePolicy = DEFAULT_POLICY,
) -> PlanData:
    """Return *data* retired at *at*.

    Raises:
        ValidationError: *at* precedes the launch instant.
        InvalidTransitionError: plan was never launched and the policy
            forbids degenerate retirements.
    """
    require_aware(at, "at")
    status = data.status
    if isinstance(status, Launched):
        if at < status.at:
            raise ValidationError(
                f"Cannot retire at {at.isoformat()} before launch at "
                f"{status.at.isoformat()}"
            )
        return replace(data, status=Retired(status.at, at))
    if isinstance(status, NotLaunched) and not policy.allow_retire_unlaunched:
        raise InvalidTransitionError(str(status), "retire")
    if isinstance(status, (NotLaunched, Retired)):
        # no launch instant to anchor on
        return replace(data, status=Retired(at, at))
    raise TypeError(f"Unhandled plan status: {status!r}")


def rename(data: PlanData, name: str) -> PlanData:
    return replace(data, name=PlanName.create(name))


def is_active(
    status: PlanStatus,
    now: datetime,
    policy: LifecyclePolicy = DEFAULT_POLICY,
) -> bool:
    """Whether a plan with *status* is active at *now*.

    NotLaunched is never active.  Launched(at) is active once *at* has
    passed; Retired(from, until) is active while *now* lies inside the
    interval.  ``policy.inclusive_bounds`` decides the boundary instants.
    """
    require_aware(now, "now")
    if isinstance(status, NotLaunched):
        return False
    if isinstance(status, Launched):
        if policy.inclusive_bounds:
            return status.at <= now
        return status.at < now
    if isinstance(status, Retired):
        if policy.inclusive_bounds:
            return status.valid_from <= now <= status.valid_until
        return status.valid_from < now < status.valid_until
    raise TypeError(f"Unhandled plan status: {status!r}")
