from rest_framework import serializers

from care.models import (
    Appointment, AppointmentStatus, DoctorProfile, HomeVisit, HomeVisitStatus, PatientProfile,
)
from care.serializers.common import (
    CleanCharField, DateRangeQuerySerializer, DoctorBriefSerializer, PatientBriefSerializer,
)


class AppointmentSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    patient = PatientBriefSerializer()
    doctor = DoctorBriefSerializer()
    created_by = serializers.IntegerField(source='created_by_id')
    appointment_date = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField()
    end_at = serializers.DateTimeField()
    status = serializers.CharField()
    type = serializers.CharField()
    reason = serializers.CharField()
    notes = serializers.CharField()
    diagnosis = serializers.CharField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class AppointmentCreateSerializer(serializers.Serializer):
    patient_id = serializers.PrimaryKeyRelatedField(
        queryset=PatientProfile.objects.select_related('user', 'guardian'), source='patient'
    )
    doctor_id = serializers.PrimaryKeyRelatedField(queryset=DoctorProfile.objects.all(), source='doctor')
    appointment_date = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField(
        min_value=Appointment.MIN_DURATION, max_value=Appointment.MAX_DURATION, required=False, allow_null=True
    )
    type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES)
    reason = CleanCharField(max_length=1000)
    notes = CleanCharField(required=False, allow_blank=True)


class AppointmentUpdateSerializer(serializers.Serializer):
    appointment_date = serializers.DateTimeField(required=False)
    duration_minutes = serializers.IntegerField(
        min_value=Appointment.MIN_DURATION, max_value=Appointment.MAX_DURATION, required=False
    )
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)
    type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, required=False)
    reason = CleanCharField(max_length=1000, required=False)
    notes = CleanCharField(required=False, allow_blank=True)
    diagnosis = CleanCharField(required=False, allow_blank=True)


class AppointmentListQuerySerializer(DateRangeQuerySerializer):
    patient_id = serializers.IntegerField(min_value=1, required=False)
    doctor_id = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)


class HomeVisitSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    patient = PatientBriefSerializer()
    doctor = DoctorBriefSerializer()
    visit_date = serializers.DateTimeField()
    estimated_duration_minutes = serializers.IntegerField()
    end_at = serializers.DateTimeField()
    status = serializers.CharField()
    address = serializers.CharField()
    reason = serializers.CharField()
    notes = serializers.CharField()
    findings = serializers.CharField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class HomeVisitCreateSerializer(serializers.Serializer):
    patient_id = serializers.PrimaryKeyRelatedField(queryset=PatientProfile.objects.all(), source='patient')
    doctor_id = serializers.PrimaryKeyRelatedField(queryset=DoctorProfile.objects.all(), source='doctor')
    visit_date = serializers.DateTimeField()
    estimated_duration_minutes = serializers.IntegerField(
        min_value=HomeVisit.MIN_DURATION, max_value=HomeVisit.MAX_DURATION, required=False, allow_null=True
    )
    address = CleanCharField()
    reason = CleanCharField()
    notes = CleanCharField(required=False, allow_blank=True)


class HomeVisitUpdateSerializer(serializers.Serializer):
    visit_date = serializers.DateTimeField(required=False)
    estimated_duration_minutes = serializers.IntegerField(
        min_value=HomeVisit.MIN_DURATION, max_value=HomeVisit.MAX_DURATION, required=False
    )
    status = serializers.ChoiceField(choices=HomeVisitStatus.choices, required=False)
    address = CleanCharField(required=False)
    reason = CleanCharField(required=False)
    notes = CleanCharField(required=False, allow_blank=True)
    findings = CleanCharField(required=False, allow_blank=True)


class HomeVisitListQuerySerializer(DateRangeQuerySerializer):
    patient_id = serializers.IntegerField(min_value=1, required=False)
    doctor_id = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=HomeVisitStatus.choices, required=False)
