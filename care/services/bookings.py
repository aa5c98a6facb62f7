"""
Create, reschedule and cancel appointments and home visits.

Every write that touches a booking's time runs inside one transaction
holding the doctor's row lock, so the conflict check and the write are
seen as a single step by concurrent requests for the same doctor.
Bookings are never removed; cancelling is a status transition.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction

from care.exceptions import InvalidTransition
from care.models import Appointment, AppointmentStatus, HomeVisit, HomeVisitStatus
from care.services.audit import log_action
from care.services.lifecycle import is_terminal, validate_transition
from care.services.scheduling import (
    APPOINTMENT, HOME_VISIT, BookingKind, ensure_future, ensure_slot_available, run_locked,
)

logger = logging.getLogger(__name__)

RESCHEDULE_PAST_MESSAGE = 'Cannot reschedule to a past date'

APPOINTMENT_EDITABLE = ('appointment_date', 'duration_minutes', 'status', 'type', 'reason', 'notes', 'diagnosis')
HOME_VISIT_EDITABLE = ('visit_date', 'estimated_duration_minutes', 'status', 'address', 'reason', 'notes', 'findings')


def _book(kind: BookingKind, *, actor, doctor, start, duration: Optional[int], **values):
    duration = duration or kind.default_duration
    ensure_future(start, message=kind.past_message)

    def write():
        ensure_slot_available(doctor.pk, start, duration, kind=kind)
        created = kind.model.objects.create(
            doctor=doctor, **{kind.date_field: start, kind.duration_field: duration}, **values
        )
        log_action(user=actor, action=f'create_{kind.name}', object_type=kind.name, object_id=created.pk,
                   detail={'doctor': doctor.pk, 'start': start.isoformat(), 'minutes': duration})
        return created

    booking = run_locked(doctor.pk, write, kind=kind)
    logger.info('%s #%s booked for doctor %s at %s', kind.name, booking.pk, doctor.pk, start.isoformat())
    return booking


def _change(kind: BookingKind, booking, editable, *, actor, **changes):
    """Apply ``changes`` to ``booking`` after the lifecycle and slot checks."""
    changes = {k: v for k, v in changes.items() if k in editable}
    start = changes.get(kind.date_field, getattr(booking, kind.date_field))
    duration = changes.get(kind.duration_field) or getattr(booking, kind.duration_field)
    retimed = (start != getattr(booking, kind.date_field)
               or duration != getattr(booking, kind.duration_field))

    if start != getattr(booking, kind.date_field):
        ensure_future(start, message=RESCHEDULE_PAST_MESSAGE)

    def write():
        current = kind.model.objects.select_for_update().get(pk=booking.pk)
        if 'status' in changes:
            validate_transition(kind.name, current.status, changes['status'])
        if retimed:
            if is_terminal(kind.name, current.status):
                raise InvalidTransition(f'Cannot reschedule a {current.status} {kind.name.replace("_", " ")}')
            ensure_slot_available(current.doctor_id, start, duration, exclude_booking_id=current.pk, kind=kind)
            changes[kind.duration_field] = duration

        for name, value in changes.items():
            setattr(current, name, value)
        current.save()
        log_action(user=actor, action=f'update_{kind.name}', object_type=kind.name, object_id=current.pk,
                   detail={'fields': sorted(changes), 'retimed': retimed})
        return current

    return run_locked(booking.doctor_id, write, kind=kind)


def _cancel(kind: BookingKind, booking, *, actor):
    with transaction.atomic():
        current = kind.model.objects.select_for_update().get(pk=booking.pk)
        validate_transition(kind.name, current.status, kind.cancelled)
        if current.status != kind.cancelled:
            current.status = kind.cancelled
            current.save(update_fields=['status', 'updated_at'])
            log_action(user=actor, action=f'cancel_{kind.name}', object_type=kind.name, object_id=current.pk)
    return current


def create_appointment(*, actor, patient, doctor, appointment_date, duration_minutes=None,
                       type='consultation', reason, notes='') -> Appointment:
    return _book(
        APPOINTMENT, actor=actor, doctor=doctor, start=appointment_date, duration=duration_minutes,
        patient=patient, created_by=actor, status=AppointmentStatus.SCHEDULED,
        type=type, reason=reason, notes=notes or '',
    )


def update_appointment(appointment: Appointment, *, actor, **changes) -> Appointment:
    return _change(APPOINTMENT, appointment, APPOINTMENT_EDITABLE, actor=actor, **changes)


def cancel_appointment(appointment: Appointment, *, actor) -> Appointment:
    return _cancel(APPOINTMENT, appointment, actor=actor)


def create_home_visit(*, actor, patient, doctor, visit_date, estimated_duration_minutes=None,
                      address, reason, notes='') -> HomeVisit:
    return _book(
        HOME_VISIT, actor=actor, doctor=doctor, start=visit_date, duration=estimated_duration_minutes,
        patient=patient, status=HomeVisitStatus.SCHEDULED,
        address=address, reason=reason, notes=notes or '',
    )


def update_home_visit(visit: HomeVisit, *, actor, **changes) -> HomeVisit:
    return _change(HOME_VISIT, visit, HOME_VISIT_EDITABLE, actor=actor, **changes)


def cancel_home_visit(visit: HomeVisit, *, actor) -> HomeVisit:
    return _cancel(HOME_VISIT, visit, actor=actor)
