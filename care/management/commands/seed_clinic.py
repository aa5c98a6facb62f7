"""
Management command to populate the database with demo clinic data.

Running it twice is safe: accounts are looked up by e-mail and
medications by name before anything is created.
"""
import random
from datetime import date, timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from care.models import Appointment, DoctorProfile, GuardianProfile, Medication, PatientProfile, User
from care.services.accounts import create_account
from care.services.bookings import create_appointment
from care.exceptions import SlotTaken

DEMO_PASSWORD = 'Clinic-Demo-123'

DOCTORS = [
    ('Ana Torres', 'ana.torres@clinic.test', 'Pediatrics', 'LIC-1001'),
    ('Bruno Diaz', 'bruno.diaz@clinic.test', 'Cardiology', 'LIC-1002'),
    ('Carla Mendes', 'carla.mendes@clinic.test', 'General practice', 'LIC-1003'),
]

GUARDIANS = [
    ('Diego Rocha', 'diego.rocha@clinic.test', 'parent', date(1978, 4, 12)),
    ('Elena Costa', 'elena.costa@clinic.test', 'spouse', date(1965, 9, 3)),
    ('Fabio Lima', 'fabio.lima@clinic.test', 'child', date(1990, 1, 27)),
]

PATIENTS = [
    ('Gabi Rocha', 'gabi.rocha@clinic.test', 'O+'),
    ('Hugo Costa', 'hugo.costa@clinic.test', 'A-'),
    ('Iris Lima', 'iris.lima@clinic.test', 'B+'),
    ('Joao Rocha', 'joao.rocha@clinic.test', 'AB+'),
]

MEDICATIONS = [
    {'name': 'Paracetamol', 'dosage_info': '500 mg tablets', 'requires_prescription': False},
    {'name': 'Ibuprofen', 'dosage_info': '400 mg tablets', 'requires_prescription': False},
    {'name': 'Amoxicillin', 'dosage_info': '500 mg capsules', 'side_effects': 'Nausea, rash'},
    {'name': 'Salbutamol', 'dosage_info': '100 mcg inhaler'},
    {'name': 'Omeprazole', 'dosage_info': '20 mg capsules'},
]


class Command(BaseCommand):
    help = 'Populate the database with demo clinic data'

    def add_arguments(self, parser):
        parser.add_argument('--appointments', type=int, default=6, help='Number of demo appointments to book')

    def handle(self, *args, **options):
        self.stdout.write('Seeding clinic data...')
        admin = self.ensure_account('Clinic Admin', 'admin@clinic.test', 'admin')
        doctors = self.create_doctors()
        guardians = self.create_guardians()
        patients = self.create_patients(guardians, doctors)
        self.create_medications()
        self.create_appointments(admin, patients, options['appointments'])
        self.stdout.write(self.style.SUCCESS('Demo data ready.'))

    def ensure_account(self, name, email, role, **fields):
        user = User.objects.filter(email=email).first()
        if user is not None:
            return user
        self.stdout.write(f'  + {role} {email}')
        return create_account(role=role, password=DEMO_PASSWORD, name=name, email=email, **fields)

    def create_doctors(self):
        for name, email, specialty, license_number in DOCTORS:
            self.ensure_account(name, email, 'doctor', specialty=specialty, license_number=license_number)
        return list(DoctorProfile.objects.filter(user__email__in=[d[1] for d in DOCTORS]).order_by('id'))

    def create_guardians(self):
        for name, email, relationship, birth_date in GUARDIANS:
            self.ensure_account(name, email, 'guardian', relationship=relationship, birth_date=birth_date)
        return list(GuardianProfile.objects.filter(user__email__in=[g[1] for g in GUARDIANS]).order_by('id'))

    def create_patients(self, guardians, doctors):
        for i, (name, email, blood_type) in enumerate(PATIENTS):
            self.ensure_account(
                name, email, 'patient',
                guardian=guardians[i % len(guardians)],
                doctor=doctors[i % len(doctors)],
                blood_type=blood_type,
            )
        return list(PatientProfile.objects.filter(user__email__in=[p[1] for p in PATIENTS]).order_by('id'))

    def create_medications(self):
        for values in MEDICATIONS:
            values = dict(values)
            _, created = Medication.objects.get_or_create(name=values.pop('name'), defaults=values)
            if created:
                self.stdout.write('  + medication')

    def create_appointments(self, admin, patients, count):
        if Appointment.objects.exists():
            self.stdout.write('  appointments already present, skipping')
            return
        tomorrow = (timezone.now() + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
        booked = 0
        for i in range(count):
            patient = random.choice(patients)
            start = tomorrow + timedelta(days=i // 3, hours=(i % 3) * 2)
            try:
                create_appointment(
                    actor=admin, patient=patient, doctor=patient.doctor,
                    appointment_date=start, reason='Demo consultation',
                )
            except SlotTaken:
                continue
            booked += 1
        self.stdout.write(f'  + {booked} appointments')
