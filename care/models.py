"""
Database models for the clinic backend.

These models capture the core concepts of the system: users with exactly
one role, the role profiles that accompany them (doctor, guardian,
patient), bookings (appointments and home visits), the pharmacy side
(medications and prescriptions) and emergency reports raised by
guardians.  Booking and emergency statuses are tagged enumerations; the
legal transitions between them live in :mod:`care.services.lifecycle`.
"""
from __future__ import annotations

from datetime import timedelta

from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Role(models.TextChoices):
    ADMIN = 'admin', 'Administrator'
    DOCTOR = 'doctor', 'Doctor'
    PATIENT = 'patient', 'Patient'
    GUARDIAN = 'guardian', 'Guardian'


class User(AbstractUser):
    """Custom user model carrying the clinic role and personal data.

    The e-mail address is the login identifier; ``username`` mirrors it so
    that Django's authentication backends keep working unchanged.  The role
    fixes which profile row accompanies the user.
    """
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]
    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.PATIENT, db_index=True)
    phone = models.CharField(max_length=20, blank=True)
    birth_date = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    address = models.TextField(blank=True)
    document_type = models.CharField(max_length=50, blank=True)
    document_number = models.CharField(max_length=50, unique=True, null=True, blank=True)

    def has_role(self, role: str) -> bool:
        return self.role == role

    @property
    def is_admin_role(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == Role.PATIENT

    @property
    def is_guardian(self) -> bool:
        return self.role == Role.GUARDIAN

    def __str__(self) -> str:
        return f"{self.name or self.username} ({self.role})"


class DoctorProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialty = models.CharField(max_length=255)
    license_number = models.CharField(max_length=50, unique=True)
    bio = models.TextField(blank=True)
    is_available = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Dr. {self.user.name} ({self.specialty})"


class GuardianProfile(models.Model):
    """Adult account responsible for one or more patients."""
    RELATIONSHIP_CHOICES = [
        ('parent', 'Parent'),
        ('spouse', 'Spouse'),
        ('sibling', 'Sibling'),
        ('child', 'Child'),
        ('other', 'Other'),
    ]
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='guardian_profile')
    relationship = models.CharField(max_length=10, choices=RELATIONSHIP_CHOICES)
    relationship_notes = models.TextField(blank=True)
    is_primary_contact = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.user.name} ({self.relationship})"


class PatientProfile(models.Model):
    """Patient specific information separate from the User model.

    A patient always has both a guardian and a doctor assigned.  These are
    foreign references, not owned ones: removing the patient never removes
    them, and they cannot be removed while the patient points at them.
    """
    BLOOD_TYPE_CHOICES = [(t, t) for t in ('A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-')]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    guardian = models.ForeignKey(GuardianProfile, on_delete=models.PROTECT, related_name='patients')
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.PROTECT, related_name='patients')
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, blank=True)
    allergies = models.TextField(blank=True)
    medical_history = models.TextField(blank=True)
    current_medications = models.TextField(blank=True)
    emergency_contact_name = models.CharField(max_length=255, blank=True)
    emergency_contact_phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.user.name} (patient #{self.pk})"


class AppointmentStatus(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'
    CONFIRMED = 'confirmed', 'Confirmed'
    IN_PROGRESS = 'in_progress', 'In progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    RESCHEDULED = 'rescheduled', 'Rescheduled'


class Appointment(models.Model):
    TYPE_CHOICES = [
        ('consultation', 'Consultation'),
        ('follow_up', 'Follow up'),
        ('emergency', 'Emergency'),
        ('routine_checkup', 'Routine checkup'),
    ]
    MIN_DURATION = 15
    MAX_DURATION = 240
    DEFAULT_DURATION = 30

    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='appointments')
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments_created'
    )
    appointment_date = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(
        default=DEFAULT_DURATION,
        validators=[MinValueValidator(MIN_DURATION), MaxValueValidator(MAX_DURATION)],
    )
    status = models.CharField(
        max_length=20, choices=AppointmentStatus.choices, default=AppointmentStatus.SCHEDULED, db_index=True
    )
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='consultation')
    reason = models.TextField()
    notes = models.TextField(blank=True)
    diagnosis = models.TextField(blank=True)
    notification_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'appointment_date'], name='care_appt_doctor_date_idx'),
            models.Index(fields=['patient', 'appointment_date'], name='care_appt_patient_date_idx'),
        ]

    @property
    def end_at(self):
        return self.appointment_date + timedelta(minutes=self.duration_minutes)

    def __str__(self) -> str:
        return f"Appointment #{self.pk} d={self.doctor_id} p={self.patient_id} @ {self.appointment_date:%F %H:%M}"


class HomeVisitStatus(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'
    IN_PROGRESS = 'in_progress', 'In progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class HomeVisit(models.Model):
    MIN_DURATION = 30
    MAX_DURATION = 480
    DEFAULT_DURATION = 60

    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='home_visits')
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='home_visits')
    visit_date = models.DateTimeField()
    estimated_duration_minutes = models.PositiveIntegerField(
        default=DEFAULT_DURATION,
        validators=[MinValueValidator(MIN_DURATION), MaxValueValidator(MAX_DURATION)],
    )
    status = models.CharField(
        max_length=20, choices=HomeVisitStatus.choices, default=HomeVisitStatus.SCHEDULED, db_index=True
    )
    address = models.TextField()
    reason = models.TextField()
    notes = models.TextField(blank=True)
    findings = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'visit_date'], name='care_visit_doctor_date_idx'),
        ]

    @property
    def end_at(self):
        return self.visit_date + timedelta(minutes=self.estimated_duration_minutes)

    def __str__(self) -> str:
        return f"HomeVisit #{self.pk} d={self.doctor_id} p={self.patient_id} @ {self.visit_date:%F %H:%M}"


class Medication(models.Model):
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    dosage_info = models.CharField(max_length=255, blank=True)
    side_effects = models.TextField(blank=True)
    contraindications = models.TextField(blank=True)
    requires_prescription = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.name


class Prescription(models.Model):
    """A medication course prescribed to a patient.

    ``end_date`` is derived: ``start_date + duration_days``.  It is
    recomputed by the prescription service whenever the duration changes.
    """
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='prescriptions')
    medication = models.ForeignKey(Medication, on_delete=models.PROTECT, related_name='prescriptions')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    dosage = models.CharField(max_length=255)
    frequency = models.CharField(max_length=255)
    duration_days = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    instructions = models.TextField(blank=True)
    start_date = models.DateField()
    end_date = models.DateField()
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Rx #{self.pk} {self.medication_id} for p={self.patient_id}"


class EmergencyStatus(models.TextChoices):
    REPORTED = 'reported', 'Reported'
    ACKNOWLEDGED = 'acknowledged', 'Acknowledged'
    IN_PROGRESS = 'in_progress', 'In progress'
    RESOLVED = 'resolved', 'Resolved'


class Emergency(models.Model):
    """An emergency reported by a patient's guardian.

    ``guardian`` and ``doctor`` are copied from the patient record when the
    report is created; callers never choose them.
    """
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]
    # Sort weight for "most urgent first" listings
    PRIORITY_RANK = {'low': 0, 'medium': 1, 'high': 2, 'critical': 3}

    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='emergencies')
    guardian = models.ForeignKey(GuardianProfile, on_delete=models.CASCADE, related_name='emergencies')
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='emergencies')
    description = models.TextField()
    status = models.CharField(
        max_length=20, choices=EmergencyStatus.choices, default=EmergencyStatus.REPORTED, db_index=True
    )
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='high', db_index=True)
    location = models.TextField(blank=True)
    response_notes = models.TextField(blank=True)
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    notification_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'status', 'created_at'], name='care_emerg_doctor_status_idx'),
        ]

    def __str__(self) -> str:
        return f"Emergency #{self.pk} p={self.patient_id} [{self.priority}/{self.status}]"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='care_audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='care_audit_object_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.object_type}#{self.object_id}"
