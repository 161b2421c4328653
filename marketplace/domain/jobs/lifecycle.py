"""
Job lifecycle rules.

Statuses: requested → accepted → deposit_due → confirmed → completed,
with cancelled reachable from any non-terminal status.

Every status change goes through ``transition``, which returns the field
updates to persist or raises ``InvalidTransitionError``. Nothing here writes
to storage; callers persist the returned dict.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ... import config
from ...errors import InvalidTransitionError, LifecycleError, ValidationFailed
from ...schemas import JobRecord
from ...shared.clock import utcnow

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    DEPOSIT_DUE = "deposit_due"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED})

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.REQUESTED: frozenset({JobStatus.ACCEPTED, JobStatus.CANCELLED}),
    JobStatus.ACCEPTED: frozenset(
        {JobStatus.DEPOSIT_DUE, JobStatus.CONFIRMED, JobStatus.CANCELLED}
    ),
    JobStatus.DEPOSIT_DUE: frozenset({JobStatus.CONFIRMED, JobStatus.CANCELLED}),
    JobStatus.CONFIRMED: frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


def parse_status(value: str) -> JobStatus:
    try:
        return JobStatus(value)
    except ValueError as e:
        raise ValidationFailed(f"Unknown job status: {value}") from e


def is_terminal(job: JobRecord) -> bool:
    return parse_status(job.status) in TERMINAL_STATUSES


def hours_until_appointment(job: JobRecord, now: Optional[datetime] = None) -> Optional[float]:
    """Hours from now until the appointment, negative when it has passed"""
    if job.appointment_date_time is None:
        return None
    now = now or utcnow()
    return (job.appointment_date_time - now).total_seconds() / 3600


def is_free_change(job: JobRecord, now: Optional[datetime] = None) -> bool:
    """Whether a reschedule or cancellation is free (enough notice before the appointment)"""
    hours = hours_until_appointment(job, now)
    if hours is None:
        raise LifecycleError("No appointment scheduled")
    return hours >= config.FREE_CHANGE_WINDOW_HOURS


def transition(
    job: JobRecord,
    target: str,
    changes: Optional[dict[str, Any]] = None,
    admin_override: bool = False,
    fee_paid: bool = False,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Validate moving ``job`` to ``target`` and build the update to persist.

    Args:
        job: Current job record
        target: Requested status
        changes: Other field updates applied in the same write; guards see
            the job with these merged in
        admin_override: Lets an admin confirm without a paid deposit or
            cancel without notice or fee
        fee_paid: The cancellation fee for this cancellation has just been paid
        now: Current time (defaults to utcnow)

    Returns:
        dict of field updates including ``status``

    Raises:
        InvalidTransitionError: If the move is not allowed
    """
    now = now or utcnow()
    changes = dict(changes or {})
    current = parse_status(job.status)
    target_status = parse_status(target)

    if current == target_status:
        changes.pop("status", None)
        return changes

    if target_status not in ALLOWED_TRANSITIONS[current]:
        reason = "job is closed" if current in TERMINAL_STATUSES else "not an allowed step"
        raise InvalidTransitionError(current.value, target_status.value, reason)

    merged = job.model_copy(update=changes)

    if target_status == JobStatus.ACCEPTED:
        if not merged.provider_id or merged.estimated_price is None:
            raise InvalidTransitionError(
                current.value, target_status.value, "provider and estimated price are required"
            )

    elif target_status == JobStatus.CONFIRMED:
        if merged.deposit_status != "paid" and not admin_override:
            raise InvalidTransitionError(
                current.value, target_status.value, "deposit has not been paid"
            )

    elif target_status == JobStatus.COMPLETED:
        if merged.mechanic_checked_out_at is None:
            raise InvalidTransitionError(
                current.value, target_status.value, "mechanic has not checked out"
            )

    elif target_status == JobStatus.CANCELLED:
        if not (fee_paid or admin_override):
            if merged.appointment_date_time is None:
                raise LifecycleError("No appointment scheduled")
            if not is_free_change(merged, now):
                raise InvalidTransitionError(
                    current.value,
                    target_status.value,
                    f"less than {config.FREE_CHANGE_WINDOW_HOURS} hours notice requires the cancellation fee",
                )
        changes.setdefault("cancelled_at", now)

    changes["status"] = target_status.value
    logger.info(f"✅ Job {job.id} transition: {current.value} → {target_status.value}")
    return changes


def check_in(job: JobRecord, now: Optional[datetime] = None) -> dict[str, Any]:
    """Record the mechanic arriving on site"""
    if is_terminal(job):
        raise LifecycleError(f"Cannot check in to a {job.status} job")
    if job.mechanic_checked_in_at is not None:
        raise LifecycleError("Mechanic already checked in")
    now = now or utcnow()
    return {"mechanic_checked_in_at": now, "actual_start_time": now}


def check_out(
    job: JobRecord, notes: Optional[str] = None, now: Optional[datetime] = None
) -> dict[str, Any]:
    """Record the mechanic leaving; requires a prior check-in"""
    if job.mechanic_checked_in_at is None:
        raise LifecycleError("Mechanic has not checked in")
    if job.mechanic_checked_out_at is not None:
        raise LifecycleError("Mechanic already checked out")
    now = now or utcnow()
    updates: dict[str, Any] = {"mechanic_checked_out_at": now, "actual_end_time": now}
    if notes:
        updates["job_notes"] = notes
    return updates


def plan_reschedule(
    job: JobRecord,
    new_appointment: datetime,
    fee_paid: bool = False,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Build the update that moves the appointment, keeping the previous one"""
    if is_terminal(job):
        raise LifecycleError(f"Cannot reschedule a {job.status} job")
    if job.appointment_date_time is None:
        raise LifecycleError("No appointment scheduled")
    now = now or utcnow()
    updates: dict[str, Any] = {
        "previous_appointment_date_time": job.appointment_date_time,
        "appointment_date_time": new_appointment,
        "reschedule_count": (job.reschedule_count or 0) + 1,
        "rescheduled_at": now,
    }
    if fee_paid:
        updates["cancellation_fee"] = config.LATE_CHANGE_FEE
        updates["cancellation_fee_status"] = "paid"
    return updates
