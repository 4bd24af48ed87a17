"""Reconciliation — turn an approved regularization into an attendance mutation.

Pure functions only: no session, no clock. The same request always yields the
same mutation.

Rules, in order:
  1. Check-in and check-out both known → hours worked, capped at the standard
     day with the excess booked as overtime; status ``present``.
  2. Full-day request without times → a standard day; status ``present``.
  3. Anything else → zero hours; status ``partial``.

A check-out at or before the check-in (including overnight shifts) is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Protocol

from hrms.common.constants import STANDARD_WORK_HOURS, AttendanceStatus, RequestType
from hrms.common.exceptions import ValidationException


class ReconcilableRequest(Protocol):
    request_type: RequestType
    current_check_in: Optional[time]
    current_check_out: Optional[time]
    requested_check_in: Optional[time]
    requested_check_out: Optional[time]


@dataclass(frozen=True)
class AttendanceMutation:
    """The values written to an attendance record on approval."""

    check_in: Optional[time]
    check_out: Optional[time]
    work_hours: float
    overtime_hours: float
    status: AttendanceStatus


def _duration(check_in: time, check_out: time) -> timedelta:
    day = date.min
    return datetime.combine(day, check_out) - datetime.combine(day, check_in)


def effective_times(
    request: ReconcilableRequest,
) -> tuple[Optional[time], Optional[time]]:
    """Resolve the check-in/out pair the approved record should carry.

    The side a request does not correct keeps the currently recorded time:
    a check-in correction keeps the recorded check-out and vice versa. A
    full-day request only uses what it asks for.
    """
    request_type = RequestType(request.request_type)
    check_in = request.requested_check_in
    check_out = request.requested_check_out

    if request_type == RequestType.check_in and check_out is None:
        check_out = request.current_check_out
    elif request_type == RequestType.check_out and check_in is None:
        check_in = request.current_check_in

    return check_in, check_out


def reconcile(
    request: ReconcilableRequest,
    *,
    standard_hours: float = STANDARD_WORK_HOURS,
) -> AttendanceMutation:
    """Compute the attendance mutation for an approved request."""
    check_in, check_out = effective_times(request)

    if check_in is not None and check_out is not None:
        elapsed = _duration(check_in, check_out)
        if elapsed <= timedelta(0):
            raise ValidationException(
                {
                    "requested_check_out": [
                        f"Check-out {check_out.isoformat()} must be later than "
                        f"check-in {check_in.isoformat()}."
                    ]
                }
            )
        hours = elapsed.total_seconds() / 3600
        overtime_hours = 0.0
        if hours > standard_hours:
            overtime_hours = round(hours - standard_hours, 2)
            hours = standard_hours
        work_hours = round(hours, 2)
        return AttendanceMutation(
            check_in=check_in,
            check_out=check_out,
            work_hours=work_hours,
            overtime_hours=overtime_hours,
            status=AttendanceStatus.present,
        )

    if (
        RequestType(request.request_type) == RequestType.full_day
        and request.requested_check_in is None
        and request.requested_check_out is None
    ):
        return AttendanceMutation(
            check_in=None,
            check_out=None,
            work_hours=standard_hours,
            overtime_hours=0.0,
            status=AttendanceStatus.present,
        )

    return AttendanceMutation(
        check_in=check_in,
        check_out=check_out,
        work_hours=0.0,
        overtime_hours=0.0,
        status=AttendanceStatus.partial,
    )
