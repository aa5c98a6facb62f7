"""
Django admin registrations for the clinic models.

Superusers can inspect and correct records through ``/admin/``.  Status
changes made here bypass the lifecycle checks of the API, so the admin
is meant for inspection and data repair during development.
"""

from django.contrib import admin

from .models import (
    User,
    DoctorProfile,
    GuardianProfile,
    PatientProfile,
    Appointment,
    HomeVisit,
    Medication,
    Prescription,
    Emergency,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('email', 'name', 'document_number')


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialty', 'license_number', 'is_available')
    list_filter = ('specialty', 'is_available')
    search_fields = ('user__name', 'user__email', 'license_number')


@admin.register(GuardianProfile)
class GuardianProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'relationship', 'is_primary_contact')
    list_filter = ('relationship',)
    search_fields = ('user__name', 'user__email')


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'guardian', 'doctor', 'blood_type')
    list_filter = ('blood_type', 'doctor')
    search_fields = ('user__name', 'user__email')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'appointment_date', 'duration_minutes', 'status', 'type')
    list_filter = ('status', 'type')
    search_fields = ('id', 'patient__user__name', 'doctor__user__name')


@admin.register(HomeVisit)
class HomeVisitAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'visit_date', 'estimated_duration_minutes', 'status')
    list_filter = ('status',)
    search_fields = ('id', 'patient__user__name', 'address')


@admin.register(Medication)
class MedicationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'requires_prescription', 'is_active')
    list_filter = ('requires_prescription', 'is_active')
    search_fields = ('name',)


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'medication', 'start_date', 'end_date', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('id', 'patient__user__name', 'medication__name')


@admin.register(Emergency)
class EmergencyAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'priority', 'status', 'notification_sent', 'created_at')
    list_filter = ('status', 'priority')
    search_fields = ('id', 'patient__user__name', 'description')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('action', 'object_type')
