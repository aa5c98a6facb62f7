from datetime import date, datetime, timedelta, timezone as dt_timezone

import pytest
from django.utils import timezone

from care.exceptions import DeleteBlocked, InvalidTransition, UnderageGuardian
from care.models import DoctorProfile, Emergency, GuardianProfile, Medication, User
from care.services.accounts import delete_account, update_account
from care.services.bookings import cancel_appointment, create_appointment
from care.services.lifecycle import (
    age_on, ensure_guardian_age, is_terminal, prescription_end_date, stamp_emergency, validate_transition,
)
from care.services.pharmacy import create_prescription, delete_medication, update_prescription


def test_legal_and_illegal_transitions():
    validate_transition('appointment', 'scheduled', 'confirmed')
    validate_transition('appointment', 'in_progress', 'completed')
    validate_transition('home_visit', 'scheduled', 'in_progress')
    validate_transition('emergency', 'reported', 'resolved')

    with pytest.raises(InvalidTransition) as exc:
        validate_transition('appointment', 'completed', 'scheduled')
    assert str(exc.value.detail) == 'Cannot change status from completed to scheduled'
    with pytest.raises(InvalidTransition):
        validate_transition('home_visit', 'cancelled', 'scheduled')
    with pytest.raises(InvalidTransition):
        validate_transition('emergency', 'resolved', 'acknowledged')


def test_same_status_is_always_allowed():
    validate_transition('appointment', 'completed', 'completed')
    validate_transition('emergency', 'resolved', 'resolved')


def test_unknown_kind_is_a_programming_error():
    with pytest.raises(ValueError):
        validate_transition('invoice', 'draft', 'paid')


def test_terminal_statuses():
    assert is_terminal('appointment', 'completed')
    assert is_terminal('appointment', 'cancelled')
    assert not is_terminal('appointment', 'rescheduled')
    assert is_terminal('emergency', 'resolved')


def test_emergency_timestamps_are_set_once():
    t1 = datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc)
    t2 = t1 + timedelta(minutes=20)
    t3 = t2 + timedelta(minutes=20)
    emergency = Emergency(status='reported')

    assert stamp_emergency(emergency, 'acknowledged', t1) == ['status', 'acknowledged_at']
    stamp_emergency(emergency, 'in_progress', t2)
    stamp_emergency(emergency, 'resolved', t2)
    assert emergency.acknowledged_at == t1
    assert emergency.resolved_at == t2

    assert stamp_emergency(emergency, 'resolved', t3) == []
    assert emergency.resolved_at == t2


def test_resolving_directly_leaves_acknowledged_at_empty():
    emergency = Emergency(status='reported')
    stamp_emergency(emergency, 'resolved')
    assert emergency.acknowledged_at is None
    assert emergency.resolved_at is not None


def test_guardian_age_boundary():
    today = date(2025, 6, 15)
    ensure_guardian_age(date(2007, 6, 15), today)
    with pytest.raises(UnderageGuardian) as exc:
        ensure_guardian_age(date(2007, 6, 16), today)
    assert str(exc.value.detail) == 'Guardian must be 18 years or older'
    with pytest.raises(UnderageGuardian):
        ensure_guardian_age(None, today)


def test_age_on_leap_day_birthday():
    assert age_on(date(2004, 2, 29), date(2022, 2, 28)) == 17
    assert age_on(date(2004, 2, 29), date(2022, 3, 1)) == 18


def test_prescription_end_date():
    assert prescription_end_date(date(2025, 1, 1), 10) == date(2025, 1, 11)
    assert prescription_end_date(date(2025, 12, 25), 10) == date(2026, 1, 4)


@pytest.mark.django_db
def test_prescription_end_date_follows_duration(admin, patient, doctor):
    medication = Medication.objects.create(name='Amoxicillin')
    rx = create_prescription(
        actor=admin, patient=patient, doctor=doctor, medication=medication,
        start_date=date(2025, 1, 1), duration_days=10, dosage='500 mg', frequency='every 8 hours',
    )
    assert rx.end_date == date(2025, 1, 11)

    rx = update_prescription(rx, actor=admin, duration_days=20)
    rx.refresh_from_db()
    assert rx.end_date == date(2025, 1, 21)

    rx = update_prescription(rx, actor=admin, dosage='250 mg', end_date=date(2030, 1, 1))
    rx.refresh_from_db()
    assert rx.end_date == date(2025, 1, 21)
    assert rx.dosage == '250 mg'


@pytest.mark.django_db
def test_doctor_with_future_appointment_cannot_be_deleted(admin, doctor, other_patient):
    # other_patient is assigned to another doctor, so only the booking blocks
    start = (timezone.now() + timedelta(days=3)).replace(microsecond=0)
    appointment = create_appointment(
        actor=admin, patient=other_patient, doctor=doctor, appointment_date=start, reason='second opinion',
    )

    with pytest.raises(DeleteBlocked) as exc:
        delete_account(doctor, role='doctor', actor=admin)
    assert str(exc.value.detail) == 'Cannot delete doctor with active appointments'

    cancel_appointment(appointment, actor=admin)
    user_id = doctor.user_id
    delete_account(doctor, role='doctor', actor=admin)
    assert not DoctorProfile.objects.filter(pk=doctor.pk).exists()
    assert not User.objects.filter(pk=user_id).exists()


@pytest.mark.django_db
def test_doctor_with_assigned_patients_cannot_be_deleted(admin, doctor, patient):
    with pytest.raises(DeleteBlocked) as exc:
        delete_account(doctor, role='doctor', actor=admin)
    assert str(exc.value.detail) == 'Cannot delete doctor with assigned patients'


@pytest.mark.django_db
def test_guardian_with_patients_cannot_be_deleted(admin, guardian, patient):
    with pytest.raises(DeleteBlocked):
        delete_account(guardian, role='guardian', actor=admin)
    assert GuardianProfile.objects.filter(pk=guardian.pk).exists()


@pytest.mark.django_db
def test_guardian_update_rechecks_age(admin, guardian):
    young = date(timezone.localdate().year - 10, 1, 1)
    with pytest.raises(UnderageGuardian):
        update_account(guardian, role='guardian', actor=admin, birth_date=young)


@pytest.mark.django_db
def test_prescribed_medication_cannot_be_deleted(admin, patient, doctor):
    medication = Medication.objects.create(name='Ibuprofen')
    create_prescription(
        actor=admin, patient=patient, doctor=doctor, medication=medication,
        start_date=date(2025, 1, 1), duration_days=5, dosage='400 mg', frequency='twice daily',
    )
    with pytest.raises(DeleteBlocked) as exc:
        delete_medication(medication, actor=admin)
    assert 'Consider deactivating it instead' in str(exc.value.detail)

    unused = Medication.objects.create(name='Omeprazole')
    delete_medication(unused, actor=admin)
    assert not Medication.objects.filter(pk=unused.pk).exists()
