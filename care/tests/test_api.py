"""
Integration tests for the clinic API.

These tests exercise the behaviours callers depend on: the response
envelope and its status codes, role-scoped access, booking conflicts and
status transitions.  They use Django REST Framework's APIClient within
the APITestCase base class.

To run the tests:

```
pytest -q care/tests
```
"""
from datetime import date, timedelta

from django.core.cache import cache
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from care.models import Appointment, Medication
from care.services.accounts import create_account
from care.services.pharmacy import create_prescription

PASSWORD = 'Str0ng-Pass!9'


class ClinicAPITests(APITestCase):
    def setUp(self) -> None:
        """Two doctors, two families and an administrator."""
        cache.clear()
        self.admin_user = create_account(role='admin', password=PASSWORD, name='Admin', email='admin@clinic.test')
        self.doctor_user = create_account(
            role='doctor', password=PASSWORD, name='Dr Ana', email='ana@clinic.test',
            specialty='Pediatrics', license_number='LIC-1',
        )
        self.other_doctor_user = create_account(
            role='doctor', password=PASSWORD, name='Dr Bruno', email='bruno@clinic.test',
            specialty='Cardiology', license_number='LIC-2',
        )
        self.doctor = self.doctor_user.doctor_profile
        self.other_doctor = self.other_doctor_user.doctor_profile

        self.guardian_user = create_account(
            role='guardian', password=PASSWORD, name='Diego', email='diego@clinic.test',
            relationship='parent', birth_date=date(1980, 1, 1),
        )
        self.other_guardian_user = create_account(
            role='guardian', password=PASSWORD, name='Elena', email='elena@clinic.test',
            relationship='spouse', birth_date=date(1970, 1, 1),
        )
        self.patient_user = create_account(
            role='patient', password=PASSWORD, name='Gabi', email='gabi@clinic.test',
            guardian=self.guardian_user.guardian_profile, doctor=self.doctor,
        )
        self.other_patient_user = create_account(
            role='patient', password=PASSWORD, name='Hugo', email='hugo@clinic.test',
            guardian=self.other_guardian_user.guardian_profile, doctor=self.other_doctor,
        )
        self.patient = self.patient_user.patient_profile
        self.other_patient = self.other_patient_user.patient_profile

        self.start = (timezone.now() + timedelta(days=2)).replace(hour=10, minute=0, second=0, microsecond=0)

    def authenticate(self, user) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def book(self, client, **overrides):
        body = {
            'patient_id': self.patient.pk,
            'doctor_id': self.doctor.pk,
            'appointment_date': self.start.isoformat(),
            'duration_minutes': 30,
            'type': 'consultation',
            'reason': 'Recurring headaches',
        }
        body.update(overrides)
        return client.post('/api/appointments', body, format='json')

    # ------------------------------------------------------------------
    # Envelope
    # ------------------------------------------------------------------
    def test_unauthenticated_request_is_401(self):
        response = APIClient().get('/api/appointments')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])
        self.assertIn('message', response.data)

    def test_validation_errors_are_422_with_field_errors(self):
        client = self.authenticate(self.admin_user)
        response = self.book(client, reason='', duration_minutes=5)
        self.assertEqual(response.status_code, 422)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['message'], 'Validation failed')
        self.assertIn('reason', response.data['errors'])
        self.assertIn('duration_minutes', response.data['errors'])

    def test_missing_row_is_404(self):
        client = self.authenticate(self.admin_user)
        response = client.get('/api/appointments/424242')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Appointment not found')

    def test_listing_is_paginated(self):
        client = self.authenticate(self.admin_user)
        self.book(client)
        response = client.get('/api/appointments')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        page = response.data['data']
        self.assertEqual(page['total'], 1)
        self.assertEqual(page['page'], 1)
        self.assertEqual(page['page_size'], 15)
        self.assertEqual(len(page['items']), 1)

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------
    def test_booking_returns_the_appointment(self):
        response = self.book(self.authenticate(self.patient_user))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['status'], 'scheduled')
        self.assertEqual(data['doctor']['id'], self.doctor.pk)
        self.assertEqual(data['created_by'], self.patient_user.pk)

    def test_markup_is_stripped_from_free_text(self):
        response = self.book(self.authenticate(self.admin_user), reason='<b>Fever</b><script>x</script>')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('<', response.data['data']['reason'])

    def test_overlapping_booking_is_422(self):
        client = self.authenticate(self.admin_user)
        self.assertEqual(self.book(client).status_code, status.HTTP_201_CREATED)
        later = (self.start + timedelta(minutes=15)).isoformat()
        response = self.book(client, appointment_date=later)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data['message'], 'The doctor already has an appointment at this time')

    def test_touching_booking_is_accepted(self):
        client = self.authenticate(self.admin_user)
        self.book(client)
        response = self.book(client, appointment_date=(self.start + timedelta(minutes=30)).isoformat())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_past_booking_is_422(self):
        client = self.authenticate(self.admin_user)
        response = self.book(client, appointment_date=(timezone.now() - timedelta(hours=1)).isoformat())
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data['message'], 'Cannot schedule appointments in the past')

    def test_guardian_cannot_book_for_someone_elses_patient(self):
        client = self.authenticate(self.guardian_user)
        response = self.book(client, patient_id=self.other_patient.pk, doctor_id=self.other_doctor.pk)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_patient_cannot_read_other_patients_appointment(self):
        other = self.book(self.authenticate(self.admin_user),
                          patient_id=self.other_patient.pk, doctor_id=self.other_doctor.pk)
        response = self.authenticate(self.patient_user).get(f"/api/appointments/{other.data['data']['id']}")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])

    def test_listing_never_widens_past_the_scope(self):
        admin = self.authenticate(self.admin_user)
        self.book(admin)
        self.book(admin, patient_id=self.other_patient.pk, doctor_id=self.other_doctor.pk)
        response = self.authenticate(self.doctor_user).get(
            '/api/appointments', {'doctor_id': self.other_doctor.pk})
        self.assertEqual(response.data['data']['total'], 0)

    def test_doctor_moves_appointment_through_its_lifecycle(self):
        appointment_id = self.book(self.authenticate(self.admin_user)).data['data']['id']
        client = self.authenticate(self.doctor_user)
        url = f'/api/appointments/{appointment_id}'
        for step in ('confirmed', 'in_progress', 'completed'):
            response = client.patch(url, {'status': step}, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        response = client.patch(url, {'status': 'scheduled'}, format='json')
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data['message'], 'Cannot change status from completed to scheduled')

    def test_patient_may_cancel_but_not_diagnose(self):
        appointment_id = self.book(self.authenticate(self.admin_user)).data['data']['id']
        client = self.authenticate(self.patient_user)
        url = f'/api/appointments/{appointment_id}'

        response = client.patch(url, {'diagnosis': 'self-diagnosed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Appointment.objects.get(pk=appointment_id).status, 'cancelled')

    def test_upcoming_excludes_cancelled(self):
        client = self.authenticate(self.admin_user)
        keep = self.book(client).data['data']['id']
        drop = self.book(client, appointment_date=(self.start + timedelta(hours=2)).isoformat()).data['data']['id']
        client.delete(f'/api/appointments/{drop}')
        response = self.authenticate(self.patient_user).get('/api/appointments-upcoming')
        self.assertEqual([a['id'] for a in response.data['data']], [keep])

    # ------------------------------------------------------------------
    # Home visits
    # ------------------------------------------------------------------
    def test_guardian_cannot_schedule_home_visit(self):
        response = self.authenticate(self.guardian_user).post('/api/home-visits', {
            'patient_id': self.patient.pk, 'doctor_id': self.doctor.pk,
            'visit_date': self.start.isoformat(), 'address': '1 Main St', 'reason': 'check',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_doctor_schedules_own_home_visit(self):
        client = self.authenticate(self.doctor_user)
        body = {
            'patient_id': self.patient.pk, 'doctor_id': self.doctor.pk,
            'visit_date': self.start.isoformat(), 'address': '1 Main St', 'reason': 'post-op check',
        }
        response = client.post('/api/home-visits', body, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['estimated_duration_minutes'], 60)

        body['doctor_id'] = self.other_doctor.pk
        response = client.post('/api/home-visits', body, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------
    def test_doctor_cannot_be_deleted_while_patients_are_assigned(self):
        response = self.authenticate(self.admin_user).delete(f'/api/doctors/{self.doctor.pk}')
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data['message'], 'Cannot delete doctor with assigned patients')

    def test_only_admin_writes_doctors(self):
        response = self.authenticate(self.doctor_user).patch(
            f'/api/doctors/{self.doctor.pk}', {'bio': 'hello'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_guardian_sees_only_own_patients(self):
        response = self.authenticate(self.guardian_user).get('/api/patients')
        self.assertEqual([p['id'] for p in response.data['data']['items']], [self.patient.pk])

    def test_admin_creates_patient(self):
        response = self.authenticate(self.admin_user).post('/api/patients', {
            'name': 'Iris', 'email': 'iris@clinic.test', 'password': PASSWORD,
            'guardian_id': self.guardian_user.guardian_profile.pk, 'doctor_id': self.doctor.pk,
            'blood_type': 'O+',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['doctor']['id'], self.doctor.pk)
        self.assertEqual(response.data['data']['guardian']['id'], self.guardian_user.guardian_profile.pk)

    def test_underage_guardian_is_rejected(self):
        birth = date(timezone.localdate().year - 16, 1, 1)
        response = self.authenticate(self.admin_user).post('/api/guardians', {
            'name': 'Teen', 'email': 'teen@clinic.test', 'password': PASSWORD,
            'birth_date': birth.isoformat(), 'relationship': 'sibling',
        }, format='json')
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data['message'], 'Guardian must be 18 years or older')

    def test_medical_history_lists_completed_visits_and_prescriptions(self):
        appointment_id = self.book(self.authenticate(self.admin_user)).data['data']['id']
        Appointment.objects.filter(pk=appointment_id).update(status='completed')
        medication = Medication.objects.create(name='Paracetamol')
        create_prescription(actor=self.admin_user, patient=self.patient, doctor=self.doctor, medication=medication,
                            start_date=date(2025, 1, 1), duration_days=3, dosage='500 mg', frequency='daily')

        response = self.authenticate(self.patient_user).get(f'/api/patients/{self.patient.pk}/medical-history')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([a['id'] for a in response.data['data']['appointments']], [appointment_id])
        self.assertEqual(len(response.data['data']['prescriptions']), 1)

    # ------------------------------------------------------------------
    # Pharmacy
    # ------------------------------------------------------------------
    def test_doctor_prescribes_under_own_name(self):
        medication = Medication.objects.create(name='Amoxicillin')
        client = self.authenticate(self.doctor_user)
        body = {
            'patient_id': self.patient.pk, 'medication_id': medication.pk,
            'dosage': '500 mg', 'frequency': 'every 8 hours', 'duration_days': 10, 'start_date': '2025-01-01',
        }
        response = client.post('/api/prescriptions', body, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['doctor']['id'], self.doctor.pk)
        self.assertEqual(response.data['data']['end_date'], '2025-01-11')

        response = client.post('/api/prescriptions', dict(body, doctor_id=self.other_doctor.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_patient_cannot_write_medications(self):
        response = self.authenticate(self.patient_user).post('/api/medications', {'name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_prescribed_medication_delete_is_422(self):
        medication = Medication.objects.create(name='Salbutamol')
        create_prescription(actor=self.admin_user, patient=self.patient, doctor=self.doctor, medication=medication,
                            start_date=date(2025, 1, 1), duration_days=3, dosage='1 puff', frequency='as needed')
        response = self.authenticate(self.admin_user).delete(f'/api/medications/{medication.pk}')
        self.assertEqual(response.status_code, 422)
