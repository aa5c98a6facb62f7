from rest_framework import serializers

from care.models import Emergency, EmergencyStatus, PatientProfile
from care.serializers.common import (
    CleanCharField, DoctorBriefSerializer, GuardianBriefSerializer, PageQuerySerializer, PatientBriefSerializer,
)


class EmergencySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    patient = PatientBriefSerializer()
    guardian = GuardianBriefSerializer()
    doctor = DoctorBriefSerializer()
    description = serializers.CharField()
    status = serializers.CharField()
    priority = serializers.CharField()
    location = serializers.CharField()
    response_notes = serializers.CharField()
    acknowledged_at = serializers.DateTimeField()
    resolved_at = serializers.DateTimeField()
    notification_sent = serializers.BooleanField()
    created_at = serializers.DateTimeField()


class EmergencyReportSerializer(serializers.Serializer):
    # guardian and doctor are taken from the patient record
    patient_id = serializers.PrimaryKeyRelatedField(queryset=PatientProfile.objects.all(), source='patient')
    description = CleanCharField()
    priority = serializers.ChoiceField(choices=Emergency.PRIORITY_CHOICES, required=False, allow_null=True)
    location = CleanCharField(required=False, allow_blank=True)


class EmergencyUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=EmergencyStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=Emergency.PRIORITY_CHOICES, required=False)
    response_notes = CleanCharField(required=False, allow_blank=True)


class EmergencyListQuerySerializer(PageQuerySerializer):
    patient_id = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=EmergencyStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=Emergency.PRIORITY_CHOICES, required=False)
