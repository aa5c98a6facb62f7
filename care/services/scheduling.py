"""
Scheduling conflict checker.

A booking occupies the half-open interval ``[start, start + duration)``.
Two bookings for the same doctor conflict iff ``s1 < e2 and s2 < e1``;
bookings that merely touch (one ends exactly when the other starts) do not
conflict.  Only non-cancelled bookings of the same kind are considered:
appointments are checked against appointments and home visits against home
visits, never across kinds.

Callers that go on to write run through :func:`run_locked`, which holds the
doctor's row lock for the whole transaction, so that two concurrent
requests for overlapping slots cannot both pass the check.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.db import OperationalError, transaction
from django.utils import timezone

from care.exceptions import PastBooking, SlotTaken
from care.models import (
    Appointment, AppointmentStatus, DoctorProfile, HomeVisit, HomeVisitStatus,
)

logger = logging.getLogger(__name__)

LOCK_ATTEMPTS = 5
LOCK_CONFLICT_MARKERS = ("locked", "deadlock", "lock wait timeout", "could not serialize")


@dataclass(frozen=True)
class BookingKind:
    name: str
    model: type
    date_field: str
    duration_field: str
    max_duration: int
    default_duration: int
    cancelled: str
    taken_message: str
    past_message: str


APPOINTMENT = BookingKind(
    name='appointment',
    model=Appointment,
    date_field='appointment_date',
    duration_field='duration_minutes',
    max_duration=Appointment.MAX_DURATION,
    default_duration=Appointment.DEFAULT_DURATION,
    cancelled=AppointmentStatus.CANCELLED,
    taken_message='The doctor already has an appointment at this time',
    past_message='Cannot schedule appointments in the past',
)

HOME_VISIT = BookingKind(
    name='home_visit',
    model=HomeVisit,
    date_field='visit_date',
    duration_field='estimated_duration_minutes',
    max_duration=HomeVisit.MAX_DURATION,
    default_duration=HomeVisit.DEFAULT_DURATION,
    cancelled=HomeVisitStatus.CANCELLED,
    taken_message='The doctor already has a home visit at this time',
    past_message='Cannot schedule home visits in the past',
)


def booking_end(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def intervals_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    """Half-open interval overlap test."""
    return s1 < e2 and s2 < e1


def find_conflicts(doctor_id: int, proposed_start: datetime, proposed_end: datetime,
                   exclude_booking_id: Optional[int] = None, *, kind: BookingKind = APPOINTMENT) -> list:
    """Return the active bookings of ``kind`` that overlap the proposed slot.

    The database narrows candidates to those starting before the proposed
    end and no earlier than the longest possible booking before the proposed
    start; the exact overlap test runs on each row's own duration.
    """
    earliest = proposed_start - timedelta(minutes=kind.max_duration)
    qs = kind.model.objects.filter(
        doctor_id=doctor_id,
        **{f'{kind.date_field}__lt': proposed_end, f'{kind.date_field}__gt': earliest},
    ).exclude(status=kind.cancelled)
    if exclude_booking_id is not None:
        qs = qs.exclude(pk=exclude_booking_id)

    conflicts = []
    for booking in qs.order_by(kind.date_field):
        start = getattr(booking, kind.date_field)
        end = booking_end(start, getattr(booking, kind.duration_field))
        if intervals_overlap(proposed_start, proposed_end, start, end):
            conflicts.append(booking)
    return conflicts


def has_conflict(doctor_id: int, proposed_start: datetime, proposed_end: datetime,
                 exclude_booking_id: Optional[int] = None, *, kind: BookingKind = APPOINTMENT) -> bool:
    return bool(find_conflicts(doctor_id, proposed_start, proposed_end, exclude_booking_id, kind=kind))


def ensure_future(start: datetime, *, now: Optional[datetime] = None, message: Optional[str] = None) -> None:
    now = now or timezone.now()
    if start <= now:
        raise PastBooking(message)


def ensure_slot_available(doctor_id: int, start: datetime, duration_minutes: int,
                          exclude_booking_id: Optional[int] = None, *, kind: BookingKind = APPOINTMENT) -> None:
    end = booking_end(start, duration_minutes)
    if has_conflict(doctor_id, start, end, exclude_booking_id, kind=kind):
        logger.info('slot taken: doctor=%s %s %s..%s', doctor_id, kind.name, start.isoformat(), end.isoformat())
        raise SlotTaken(kind.taken_message)


def lock_doctor(doctor_id: int) -> DoctorProfile:
    """Lock the doctor's row for the rest of the current transaction.

    Every booking write for a doctor takes this lock first, which serializes
    the check-then-write sequence per doctor.  Backends without row locks
    (SQLite) already serialize writers at the database level.
    """
    return DoctorProfile.objects.select_for_update().get(pk=doctor_id)


def _is_lock_conflict(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in LOCK_CONFLICT_MARKERS)


def run_locked(doctor_id: int, work, *, kind: BookingKind = APPOINTMENT, attempts: int = LOCK_ATTEMPTS):
    """Run ``work()`` in a transaction that holds the doctor's row lock.

    When the database refuses the lock, as SQLite does with "table is
    locked" or MySQL with a deadlock, the transaction is rolled back and
    retried, so the conflict check runs again against whatever the winning
    request committed.  A request that keeps losing is answered as a taken
    slot.  Inside an outer transaction there is nothing to wait for, so the
    first lock failure is final.
    """
    nested = transaction.get_connection().in_atomic_block
    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                lock_doctor(doctor_id)
                return work()
        except OperationalError as exc:
            if not _is_lock_conflict(exc):
                raise
            logger.warning('booking lock contention: doctor=%s %s attempt %s/%s: %s',
                           doctor_id, kind.name, attempt, attempts, exc)
            if nested or attempt == attempts:
                raise SlotTaken(kind.taken_message) from exc
            time.sleep(random.uniform(0.01, 0.05) * attempt)
