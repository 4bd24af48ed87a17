"""Store-level tests: request rows, compare-and-swap transitions, audit trail, attendance upsert."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta, timezone
from itertools import count
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from hrms.attendance.models import AttendanceRecord
from hrms.attendance.reconciliation import AttendanceMutation
from hrms.attendance.store import AttendanceStore
from hrms.common.constants import (
    ActorType,
    AttendanceStatus,
    AuditAction,
    RegularizationStatus,
    RequestType,
)
from hrms.common.exceptions import NotFoundException, ValidationException
from hrms.regularization.audit import AuditEntry, AuditTrail
from hrms.regularization.store import RegularizationRequestStore, TransitionResult
from tests.factories import COMPANY_ID, OTHER_COMPANY_ID, PAST_DAY, new_request


def _ticking_clock(start: datetime):
    ticks = count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def store() -> RegularizationRequestStore:
    return RegularizationRequestStore(
        clock=_ticking_clock(datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)),
    )


# ── Validation ──────────────────────────────────────────────────────


def test_validate_collects_every_field_error(store):
    with pytest.raises(ValidationException) as exc_info:
        store.validate(new_request(
            uuid.uuid4(),
            attendance_date=date(2024, 3, 11),
            request_type="overnight",
            reason="   ",
        ))

    assert set(exc_info.value.errors) == {"reason", "attendance_date", "request_type"}


def test_validate_accepts_today_and_coerces_type(store):
    request_type = store.validate(new_request(
        uuid.uuid4(), attendance_date=date(2024, 3, 10), request_type="full_day",
    ))

    assert request_type is RequestType.full_day


# ── Create / get ────────────────────────────────────────────────────


async def test_create_stores_pending_request(db, store):
    employee_id = uuid.uuid4()
    created = await store.create(db, new_request(
        employee_id,
        reason="  Forgot to punch in  ",
        requested_check_in=time(9, 5),
        current_check_out=time(17, 5),
    ))

    fetched = await store.get(db, created.id)
    assert fetched.id == created.id
    assert fetched.status == RegularizationStatus.pending
    assert fetched.reason == "Forgot to punch in"
    assert fetched.request_type == RequestType.check_in
    assert fetched.requested_check_in == time(9, 5)
    assert fetched.reviewed_by is None


async def test_get_unknown_id_raises_not_found(db, store):
    with pytest.raises(NotFoundException):
        await store.get(db, uuid.uuid4())


async def test_second_pending_request_for_same_day_violates_index(db, store):
    employee_id = uuid.uuid4()
    await store.create(db, new_request(employee_id))

    with pytest.raises(IntegrityError):
        await store.create(db, new_request(employee_id))


async def test_resolved_request_frees_the_day(db, store):
    employee_id = uuid.uuid4()
    first = await store.create(db, new_request(employee_id))
    await store.transition_status(
        db, first.id, RegularizationStatus.pending, RegularizationStatus.rejected, uuid.uuid4(),
    )

    second = await store.create(db, new_request(employee_id))

    pending = await store.list_pending_for(db, employee_id, PAST_DAY)
    assert [r.id for r in pending] == [second.id]


# ── Compare-and-swap ────────────────────────────────────────────────


async def test_transition_from_expected_status_succeeds_once(db, store):
    request = await store.create(db, new_request(uuid.uuid4()))
    reviewer_id = uuid.uuid4()

    first = await store.transition_status(
        db, request.id, RegularizationStatus.pending, RegularizationStatus.approved,
        reviewer_id, "Verified with badge logs",
    )
    second = await store.transition_status(
        db, request.id, RegularizationStatus.pending, RegularizationStatus.rejected,
        uuid.uuid4(),
    )

    assert first is TransitionResult.ok
    assert second is TransitionResult.conflict

    stored = await store.get(db, request.id)
    assert stored.status == RegularizationStatus.approved
    assert stored.reviewed_by == reviewer_id
    assert stored.review_notes == "Verified with badge logs"
    assert stored.reviewed_at is not None


async def test_transition_unknown_id_raises_not_found(db, store):
    with pytest.raises(NotFoundException):
        await store.transition_status(
            db, uuid.uuid4(), RegularizationStatus.pending, RegularizationStatus.approved,
            uuid.uuid4(),
        )


# ── Listing ─────────────────────────────────────────────────────────


async def test_list_requests_is_company_scoped_newest_first(db, store):
    employee_id = uuid.uuid4()
    days = [date(2024, 3, d) for d in (1, 2, 3)]
    created = [
        await store.create(db, new_request(employee_id, attendance_date=d)) for d in days
    ]
    await store.create(db, new_request(uuid.uuid4(), company_id=OTHER_COMPANY_ID))

    rows, total = await store.list_requests(db, company_id=COMPANY_ID, page=1, page_size=2)

    assert total == 3
    assert [r.id for r in rows] == [created[2].id, created[1].id]

    rows, total = await store.list_requests(db, company_id=COMPANY_ID, page=2, page_size=2)
    assert [r.id for r in rows] == [created[0].id]


async def test_list_requests_filters_by_status_and_employee(db, store):
    alice, bob = uuid.uuid4(), uuid.uuid4()
    approved = await store.create(db, new_request(alice, attendance_date=date(2024, 3, 1)))
    await store.create(db, new_request(alice, attendance_date=date(2024, 3, 2)))
    await store.create(db, new_request(bob))
    await store.transition_status(
        db, approved.id, RegularizationStatus.pending, RegularizationStatus.approved,
        uuid.uuid4(),
    )

    rows, total = await store.list_requests(
        db, company_id=COMPANY_ID, status=RegularizationStatus.approved,
    )
    assert total == 1
    assert rows[0].id == approved.id

    rows, total = await store.list_requests(db, company_id=COMPANY_ID, employee_id=bob)
    assert total == 1
    assert rows[0].employee_id == bob


# ── Audit trail ─────────────────────────────────────────────────────


async def test_audit_entries_are_sequenced_per_request(db, store):
    trail = AuditTrail()
    request = await store.create(db, new_request(uuid.uuid4()))
    other = await store.create(db, new_request(uuid.uuid4()))
    reviewer_id = uuid.uuid4()

    await trail.append(db, AuditEntry(
        request_id=request.id,
        action=AuditAction.submitted,
        actor_id=request.employee_id,
        actor_type=ActorType.employee,
        reason=request.reason,
    ))
    await trail.append(db, AuditEntry(
        request_id=other.id,
        action=AuditAction.submitted,
        actor_id=other.employee_id,
        actor_type=ActorType.employee,
    ))
    await trail.append(db, AuditEntry(
        request_id=request.id,
        action=AuditAction.rejected,
        actor_id=reviewer_id,
        actor_type=ActorType.reviewer,
        reason="No evidence attached",
        ip_address="10.0.0.7",
        user_agent="pytest",
    ))

    entries = await trail.list_for_request(db, request.id)
    assert [(e.sequence, e.action) for e in entries] == [
        (1, AuditAction.submitted),
        (2, AuditAction.rejected),
    ]
    assert entries[1].actor_id == reviewer_id
    assert entries[1].ip_address == "10.0.0.7"

    latest = await trail.latest_for_request(db, request.id)
    assert latest.action == AuditAction.rejected

    other_entries = await trail.list_for_request(db, other.id)
    assert [e.sequence for e in other_entries] == [1]


async def test_latest_for_request_without_entries_is_none(db):
    assert await AuditTrail().latest_for_request(db, uuid.uuid4()) is None


# ── Attendance upsert ───────────────────────────────────────────────


async def test_attendance_upsert_creates_then_overwrites(db):
    attendance = AttendanceStore()
    employee_id = uuid.uuid4()

    first = await attendance.upsert(
        db,
        employee_id=employee_id,
        company_id=COMPANY_ID,
        attendance_date=PAST_DAY,
        mutation=AttendanceMutation(
            check_in=time(9, 0), check_out=None,
            work_hours=0.0, overtime_hours=0.0, status=AttendanceStatus.partial,
        ),
    )
    second = await attendance.upsert(
        db,
        employee_id=employee_id,
        company_id=COMPANY_ID,
        attendance_date=PAST_DAY,
        mutation=AttendanceMutation(
            check_in=time(9, 0), check_out=time(19, 0),
            work_hours=8.0, overtime_hours=2.0, status=AttendanceStatus.present,
        ),
    )

    assert second.id == first.id
    assert second.check_out == time(19, 0)
    assert second.work_hours == 8.0
    assert second.overtime_hours == 2.0
    assert second.status == AttendanceStatus.present
    assert second.is_regularized is True
    assert second.source == "regularization"

    rows = await db.scalar(
        select(func.count()).select_from(AttendanceRecord).where(
            AttendanceRecord.employee_id == employee_id,
        )
    )
    assert rows == 1


async def test_attendance_get_missing_day_is_none(db):
    assert await AttendanceStore().get(db, uuid.uuid4(), PAST_DAY) is None


async def test_attendance_upsert_same_mutation_twice_is_idempotent(db):
    attendance = AttendanceStore()
    employee_id = uuid.uuid4()
    mutation = AttendanceMutation(
        check_in=time(9, 5), check_out=time(17, 5),
        work_hours=8.0, overtime_hours=0.0, status=AttendanceStatus.present,
    )
    columns = (
        "id", "employee_id", "company_id", "date", "check_in", "check_out",
        "work_hours", "overtime_hours", "status", "is_regularized", "source",
        "created_at", "updated_at",
    )

    first = await attendance.upsert(
        db, employee_id=employee_id, company_id=COMPANY_ID,
        attendance_date=PAST_DAY, mutation=mutation,
    )
    before = {name: getattr(first, name) for name in columns}

    second = await attendance.upsert(
        db, employee_id=employee_id, company_id=COMPANY_ID,
        attendance_date=PAST_DAY, mutation=mutation,
    )
    after = {name: getattr(second, name) for name in columns}

    assert after == before


async def test_attendance_upsert_rejects_unsupported_dialect():
    session = SimpleNamespace(
        get_bind=lambda: SimpleNamespace(dialect=SimpleNamespace(name="mysql")),
    )

    with pytest.raises(ValueError, match="mysql"):
        await AttendanceStore().upsert(
            session,
            employee_id=uuid.uuid4(),
            company_id=COMPANY_ID,
            attendance_date=PAST_DAY,
            mutation=AttendanceMutation(
                check_in=None, check_out=None,
                work_hours=8.0, overtime_hours=0.0, status=AttendanceStatus.present,
            ),
        )


async def test_stale_readers_race_and_only_one_transition_commits(file_session_factory):
    """Two sessions both see the request pending; only the first CAS lands."""
    store = RegularizationRequestStore()
    async with file_session_factory.begin() as session:
        request = await store.create(session, new_request(uuid.uuid4()))

    first_reviewer, second_reviewer = uuid.uuid4(), uuid.uuid4()
    async with file_session_factory() as first, file_session_factory() as second:
        assert (await store.get(first, request.id)).status == RegularizationStatus.pending
        assert (await store.get(second, request.id)).status == RegularizationStatus.pending

        won = await store.transition_status(
            first, request.id, RegularizationStatus.pending, RegularizationStatus.approved,
            first_reviewer,
        )
        await first.commit()

        lost = await store.transition_status(
            second, request.id, RegularizationStatus.pending, RegularizationStatus.rejected,
            second_reviewer,
        )
        await second.rollback()

    assert won is TransitionResult.ok
    assert lost is TransitionResult.conflict

    async with file_session_factory() as session:
        stored = await store.get(session, request.id)
    assert stored.status == RegularizationStatus.approved
    assert stored.reviewed_by == first_reviewer
