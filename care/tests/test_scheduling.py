import threading
from datetime import timedelta

import pytest
from django.db import OperationalError, connection
from django.utils import timezone

from care.exceptions import InvalidTransition, PastBooking, SlotTaken
from care.services.bookings import (
    cancel_appointment, create_appointment, create_home_visit, update_appointment,
)
from care.models import Appointment
from care.services import scheduling
from care.services.scheduling import HOME_VISIT, find_conflicts, has_conflict, intervals_overlap

pytestmark = pytest.mark.django_db


def book(admin, patient, doctor, start, minutes=30):
    return create_appointment(
        actor=admin, patient=patient, doctor=doctor,
        appointment_date=start, duration_minutes=minutes, reason='checkup',
    )


def test_interval_overlap_is_half_open(future):
    nine, ten, eleven = future, future + timedelta(hours=1), future + timedelta(hours=2)
    assert intervals_overlap(nine, ten, nine + timedelta(minutes=30), eleven)
    assert not intervals_overlap(nine, ten, ten, eleven)
    assert not intervals_overlap(ten, eleven, nine, ten)


def test_touching_bookings_do_not_conflict(admin, patient, doctor, future):
    ten = future + timedelta(hours=1)
    book(admin, patient, doctor, ten, minutes=30)

    # 09:00-10:00 ends exactly when the 10:00 booking starts
    assert not has_conflict(doctor.pk, future, ten)
    book(admin, patient, doctor, future, minutes=60)
    book(admin, patient, doctor, ten + timedelta(minutes=30), minutes=30)


def test_overlapping_booking_is_rejected(admin, patient, doctor, future):
    ten = future + timedelta(hours=1)
    existing = book(admin, patient, doctor, ten, minutes=30)

    assert [a.pk for a in find_conflicts(doctor.pk, ten + timedelta(minutes=15), ten + timedelta(minutes=45))] \
        == [existing.pk]
    with pytest.raises(SlotTaken) as exc:
        book(admin, patient, doctor, ten + timedelta(minutes=15))
    assert str(exc.value.detail) == 'The doctor already has an appointment at this time'


def test_other_doctors_are_independent(admin, patient, doctor, other_doctor, future):
    book(admin, patient, doctor, future)
    book(admin, patient, other_doctor, future)


def test_rescheduling_ignores_the_booking_itself(admin, patient, doctor, future):
    appointment = book(admin, patient, doctor, future, minutes=30)
    moved = update_appointment(appointment, actor=admin, appointment_date=future + timedelta(minutes=15))
    assert moved.appointment_date == future + timedelta(minutes=15)
    assert moved.duration_minutes == 30


def test_cancelled_booking_frees_the_slot(admin, patient, doctor, future):
    appointment = book(admin, patient, doctor, future)
    cancel_appointment(appointment, actor=admin)
    book(admin, patient, doctor, future)


def test_home_visits_are_not_checked_against_appointments(admin, patient, doctor, future):
    book(admin, patient, doctor, future, minutes=60)
    visit = create_home_visit(
        actor=admin, patient=patient, doctor=doctor, visit_date=future,
        address='12 Harbour Road', reason='follow-up',
    )
    assert visit.estimated_duration_minutes == 60
    assert has_conflict(doctor.pk, future, future + timedelta(minutes=30), kind=HOME_VISIT)


def test_default_duration_applies(admin, patient, doctor, future):
    appointment = create_appointment(
        actor=admin, patient=patient, doctor=doctor, appointment_date=future, reason='checkup',
    )
    assert appointment.duration_minutes == 30
    assert appointment.created_by == admin


def test_booking_in_the_past_is_rejected(admin, patient, doctor):
    with pytest.raises(PastBooking) as exc:
        book(admin, patient, doctor, timezone.now() - timedelta(minutes=1))
    assert str(exc.value.detail) == 'Cannot schedule appointments in the past'


def test_rescheduling_into_the_past_is_rejected(admin, patient, doctor, future):
    appointment = book(admin, patient, doctor, future)
    with pytest.raises(PastBooking) as exc:
        update_appointment(appointment, actor=admin, appointment_date=timezone.now() - timedelta(hours=1))
    assert str(exc.value.detail) == 'Cannot reschedule to a past date'


def test_completed_appointment_cannot_be_moved(admin, patient, doctor, future):
    appointment = book(admin, patient, doctor, future)
    appointment = update_appointment(appointment, actor=admin, status='in_progress')
    appointment = update_appointment(appointment, actor=admin, status='completed')

    with pytest.raises(InvalidTransition):
        update_appointment(appointment, actor=admin, appointment_date=future + timedelta(days=1))


def test_completed_appointment_accepts_a_diagnosis(admin, patient, doctor, future):
    appointment = book(admin, patient, doctor, future)
    appointment = update_appointment(appointment, actor=admin, status='in_progress')
    appointment = update_appointment(appointment, actor=admin, status='completed', diagnosis='Seasonal flu')
    assert appointment.diagnosis == 'Seasonal flu'


@pytest.mark.django_db(transaction=True)
def test_concurrent_overlapping_bookings_leave_one_winner(admin, patient, doctor, future):
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt(offset):
        barrier.wait()
        try:
            book(admin, patient, doctor, future + timedelta(minutes=offset))
            outcomes.append('booked')
        except SlotTaken:
            outcomes.append('taken')
        finally:
            connection.close()

    threads = [threading.Thread(target=attempt, args=(offset,)) for offset in (0, 10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ['booked', 'taken']
    assert Appointment.objects.filter(doctor=doctor).count() == 1


@pytest.mark.django_db(transaction=True)
def test_lock_contention_is_retried(monkeypatch, admin, patient, doctor, future):
    real_lock = scheduling.lock_doctor
    calls = []

    def flaky_lock(doctor_id):
        calls.append(doctor_id)
        if len(calls) == 1:
            raise OperationalError('database table is locked: care_doctorprofile')
        return real_lock(doctor_id)

    monkeypatch.setattr(scheduling, 'lock_doctor', flaky_lock)
    monkeypatch.setattr(scheduling.time, 'sleep', lambda seconds: None)

    appointment = book(admin, patient, doctor, future)
    assert len(calls) == 2
    assert Appointment.objects.get(pk=appointment.pk).doctor_id == doctor.pk


def test_lock_failure_inside_a_transaction_reads_as_taken_slot(monkeypatch, admin, patient, doctor, future):
    def locked(doctor_id):
        raise OperationalError('database table is locked: care_doctorprofile')

    monkeypatch.setattr(scheduling, 'lock_doctor', locked)
    with pytest.raises(SlotTaken) as exc:
        book(admin, patient, doctor, future)
    assert str(exc.value.detail) == 'The doctor already has an appointment at this time'
    assert not Appointment.objects.exists()


def test_unrelated_database_errors_propagate(monkeypatch, admin, patient, doctor, future):
    def broken(doctor_id):
        raise OperationalError('no such table: care_doctorprofile')

    monkeypatch.setattr(scheduling, 'lock_doctor', broken)
    with pytest.raises(OperationalError):
        book(admin, patient, doctor, future)
