"""
Status transitions, derived fields and referential delete guards.

Bookings and emergencies move through explicit transition tables.  A
status update that names the current status is a no-op and always
allowed; anything not listed is rejected with :class:`InvalidTransition`.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from care.exceptions import DeleteBlocked, InvalidTransition, UnderageGuardian
from care.models import (
    Appointment, AppointmentStatus as A, EmergencyStatus as E, HomeVisitStatus as H,
    PatientProfile, Prescription,
)

APPOINTMENT_TRANSITIONS = {
    A.SCHEDULED: {A.CONFIRMED, A.IN_PROGRESS, A.CANCELLED, A.RESCHEDULED},
    A.CONFIRMED: {A.IN_PROGRESS, A.CANCELLED, A.RESCHEDULED},
    A.RESCHEDULED: {A.CONFIRMED, A.IN_PROGRESS, A.CANCELLED, A.SCHEDULED},
    A.IN_PROGRESS: {A.COMPLETED, A.CANCELLED},
    A.COMPLETED: set(),
    A.CANCELLED: set(),
}

HOME_VISIT_TRANSITIONS = {
    H.SCHEDULED: {H.IN_PROGRESS, H.CANCELLED},
    H.IN_PROGRESS: {H.COMPLETED, H.CANCELLED},
    H.COMPLETED: set(),
    H.CANCELLED: set(),
}

EMERGENCY_TRANSITIONS = {
    E.REPORTED: {E.ACKNOWLEDGED, E.IN_PROGRESS, E.RESOLVED},
    E.ACKNOWLEDGED: {E.IN_PROGRESS, E.RESOLVED},
    E.IN_PROGRESS: {E.RESOLVED},
    E.RESOLVED: set(),
}

# kind -> status -> legal next statuses, as plain strings
_TABLES = {
    kind: {str(src): {str(dst) for dst in targets} for src, targets in table.items()}
    for kind, table in (
        ('appointment', APPOINTMENT_TRANSITIONS),
        ('home_visit', HOME_VISIT_TRANSITIONS),
        ('emergency', EMERGENCY_TRANSITIONS),
    )
}


def allowed_transitions(kind: str, current: str) -> set[str]:
    return _TABLES[kind].get(str(current), set())


def is_terminal(kind: str, status: str) -> bool:
    return not allowed_transitions(kind, status)


def validate_transition(kind: str, current: str, new: str) -> None:
    """Raise :class:`InvalidTransition` unless ``current -> new`` is legal."""
    if kind not in _TABLES:
        raise ValueError(f'unknown entity kind: {kind}')
    current, new = str(current), str(new)
    if current == new:
        return
    if new not in allowed_transitions(kind, current):
        raise InvalidTransition(f'Cannot change status from {current} to {new}')


def stamp_emergency(emergency, status: str, now: Optional[datetime] = None) -> list[str]:
    """Apply ``status`` to ``emergency`` and set first-time timestamps.

    ``acknowledged_at`` and ``resolved_at`` are written only while still
    empty.  Returns the names of the fields that changed.
    """
    now = now or timezone.now()
    changed = []
    if emergency.status != status:
        emergency.status = status
        changed.append('status')
    if status == E.ACKNOWLEDGED and emergency.acknowledged_at is None:
        emergency.acknowledged_at = now
        changed.append('acknowledged_at')
    if status == E.RESOLVED and emergency.resolved_at is None:
        emergency.resolved_at = now
        changed.append('resolved_at')
    return changed


def age_on(birth_date: date, today: date) -> int:
    """Whole years between ``birth_date`` and ``today``."""
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def ensure_guardian_age(birth_date: Optional[date], today: Optional[date] = None) -> None:
    today = today or timezone.localdate()
    minimum = getattr(settings, 'CLINIC_GUARDIAN_MIN_AGE', 18)
    if birth_date is None or age_on(birth_date, today) < minimum:
        raise UnderageGuardian(f'Guardian must be {minimum} years or older')


def prescription_end_date(start: date, duration_days: int) -> date:
    return start + timedelta(days=duration_days)


def ensure_doctor_deletable(doctor) -> None:
    future_active = Appointment.objects.filter(
        doctor=doctor, appointment_date__gt=timezone.now(),
    ).exclude(status=A.CANCELLED)
    if future_active.exists():
        raise DeleteBlocked('Cannot delete doctor with active appointments')
    # Patients hold a protected reference to their doctor
    if PatientProfile.objects.filter(doctor=doctor).exists():
        raise DeleteBlocked('Cannot delete doctor with assigned patients')


def ensure_guardian_deletable(guardian) -> None:
    if PatientProfile.objects.filter(guardian=guardian).exists():
        raise DeleteBlocked('Cannot delete guardian with assigned patients')


def ensure_medication_deletable(medication) -> None:
    if Prescription.objects.filter(medication=medication).exists():
        raise DeleteBlocked(
            'Cannot delete medication that is used in prescriptions. Consider deactivating it instead.'
        )
