from rest_framework import serializers

from care.models import Appointment, DoctorProfile, Medication, PatientProfile
from care.serializers.common import (
    CleanCharField, DoctorBriefSerializer, PageQuerySerializer, PatientBriefSerializer,
)


class MedicationSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    description = serializers.CharField()
    dosage_info = serializers.CharField()
    side_effects = serializers.CharField()
    contraindications = serializers.CharField()
    requires_prescription = serializers.BooleanField()
    is_active = serializers.BooleanField()


class MedicationWriteSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    description = CleanCharField(required=False, allow_blank=True)
    dosage_info = CleanCharField(max_length=255, required=False, allow_blank=True)
    side_effects = CleanCharField(required=False, allow_blank=True)
    contraindications = CleanCharField(required=False, allow_blank=True)
    requires_prescription = serializers.BooleanField(required=False)
    is_active = serializers.BooleanField(required=False)


class MedicationListQuerySerializer(PageQuerySerializer):
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    requires_prescription = serializers.BooleanField(required=False, allow_null=True, default=None)
    search = serializers.CharField(max_length=255, required=False)


class MedicationBriefSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    dosage_info = serializers.CharField()


class PrescriptionSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    patient = PatientBriefSerializer()
    doctor = DoctorBriefSerializer()
    medication = MedicationBriefSerializer()
    appointment = serializers.IntegerField(source='appointment_id')
    dosage = serializers.CharField()
    frequency = serializers.CharField()
    duration_days = serializers.IntegerField()
    instructions = serializers.CharField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    is_active = serializers.BooleanField()
    created_at = serializers.DateTimeField()


class PrescriptionCreateSerializer(serializers.Serializer):
    patient_id = serializers.PrimaryKeyRelatedField(queryset=PatientProfile.objects.all(), source='patient')
    doctor_id = serializers.PrimaryKeyRelatedField(
        queryset=DoctorProfile.objects.all(), source='doctor', required=False
    )
    medication_id = serializers.PrimaryKeyRelatedField(queryset=Medication.objects.all(), source='medication')
    appointment_id = serializers.PrimaryKeyRelatedField(
        queryset=Appointment.objects.all(), source='appointment', required=False, allow_null=True
    )
    dosage = CleanCharField(max_length=255)
    frequency = CleanCharField(max_length=255)
    duration_days = serializers.IntegerField(min_value=1)
    instructions = CleanCharField(required=False, allow_blank=True)
    start_date = serializers.DateField()

    def validate(self, attrs):
        appointment = attrs.get('appointment')
        if appointment is not None and appointment.patient_id != attrs['patient'].pk:
            raise serializers.ValidationError({'appointment_id': ['The appointment belongs to another patient.']})
        return attrs


class PrescriptionUpdateSerializer(serializers.Serializer):
    dosage = CleanCharField(max_length=255, required=False)
    frequency = CleanCharField(max_length=255, required=False)
    duration_days = serializers.IntegerField(min_value=1, required=False)
    instructions = CleanCharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)


class PrescriptionListQuerySerializer(PageQuerySerializer):
    patient_id = serializers.IntegerField(min_value=1, required=False)
    doctor_id = serializers.IntegerField(min_value=1, required=False)
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
