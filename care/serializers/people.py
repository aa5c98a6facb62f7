"""
Serializers for users and their role profiles.

Input serializers validate the flat request body used by the browser
client (user and profile attributes side by side).  Output serializers
fix the response shape of each resource.
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from rest_framework import serializers

from care.models import DoctorProfile, GuardianProfile, PatientProfile
from care.serializers.common import (
    CleanCharField, DoctorBriefSerializer, GuardianBriefSerializer, PageQuerySerializer, UserBriefSerializer,
)

User = get_user_model()


# ---------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------
class UserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    email = serializers.EmailField()
    role = serializers.CharField()
    phone = serializers.CharField()
    birth_date = serializers.DateField()
    gender = serializers.CharField()
    address = serializers.CharField()
    document_type = serializers.CharField()
    document_number = serializers.CharField()


class DoctorSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    user = UserBriefSerializer()
    specialty = serializers.CharField()
    license_number = serializers.CharField()
    bio = serializers.CharField()
    is_available = serializers.BooleanField()
    created_at = serializers.DateTimeField()


class GuardianSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    user = UserBriefSerializer()
    relationship = serializers.CharField()
    relationship_notes = serializers.CharField()
    is_primary_contact = serializers.BooleanField()
    created_at = serializers.DateTimeField()


class PatientSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    user = UserBriefSerializer()
    birth_date = serializers.DateField(source='user.birth_date')
    gender = serializers.CharField(source='user.gender')
    guardian = GuardianBriefSerializer()
    doctor = DoctorBriefSerializer()
    blood_type = serializers.CharField()
    allergies = serializers.CharField()
    medical_history = serializers.CharField()
    current_medications = serializers.CharField()
    emergency_contact_name = serializers.CharField()
    emergency_contact_phone = serializers.CharField()
    created_at = serializers.DateTimeField()


PROFILE_SERIALIZERS = {
    'doctor': ('doctor_profile', DoctorSerializer),
    'guardian': ('guardian_profile', GuardianSerializer),
    'patient': ('patient_profile', PatientSerializer),
}


def profile_data(user):
    """Serialized role profile for ``user``, or ``None`` for admins."""
    attr, serializer_class = PROFILE_SERIALIZERS.get(user.role, (None, None))
    profile = getattr(user, attr, None) if attr else None
    return serializer_class(profile).data if profile is not None else None


# ---------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------
class AccountWriteSerializer(serializers.Serializer):
    """User attributes shared by every role.

    When updating, pass the existing user in the context as ``user`` so
    the uniqueness checks skip its own row.
    """
    name = CleanCharField(max_length=255)
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(min_length=8, write_only=True)
    phone = CleanCharField(max_length=20, required=False, allow_blank=True)
    birth_date = serializers.DateField(required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=User.GENDER_CHOICES, required=False, allow_blank=True)
    address = CleanCharField(required=False, allow_blank=True)
    document_type = CleanCharField(max_length=50, required=False, allow_blank=True)
    document_number = CleanCharField(max_length=50, required=False, allow_blank=True, allow_null=True)

    def _others(self):
        qs = User.objects.all()
        current = self.context.get('user')
        return qs.exclude(pk=current.pk) if current is not None else qs

    def validate_email(self, v):
        v = v.strip().lower()
        if self._others().filter(email__iexact=v).exists():
            raise serializers.ValidationError('The email has already been taken.')
        return v

    def validate_document_number(self, v):
        if v and self._others().filter(document_number=v).exists():
            raise serializers.ValidationError('The document number has already been taken.')
        return v

    def validate_birth_date(self, v):
        if v and v >= timezone.localdate():
            raise serializers.ValidationError('The birth date must be a date before today.')
        return v

    def validate_password(self, v):
        try:
            validate_password(v)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages)
        return v


class DoctorWriteSerializer(AccountWriteSerializer):
    specialty = CleanCharField(max_length=255)
    license_number = CleanCharField(max_length=50)
    bio = CleanCharField(required=False, allow_blank=True)
    is_available = serializers.BooleanField(required=False)

    def validate_license_number(self, v):
        qs = DoctorProfile.objects.filter(license_number=v)
        current = self.context.get('user')
        if current is not None:
            qs = qs.exclude(user=current)
        if qs.exists():
            raise serializers.ValidationError('The license number has already been taken.')
        return v


class GuardianWriteSerializer(AccountWriteSerializer):
    birth_date = serializers.DateField()
    relationship = serializers.ChoiceField(choices=GuardianProfile.RELATIONSHIP_CHOICES)
    relationship_notes = CleanCharField(required=False, allow_blank=True)
    is_primary_contact = serializers.BooleanField(required=False)


class PatientWriteSerializer(AccountWriteSerializer):
    guardian_id = serializers.PrimaryKeyRelatedField(queryset=GuardianProfile.objects.all(), source='guardian')
    doctor_id = serializers.PrimaryKeyRelatedField(queryset=DoctorProfile.objects.all(), source='doctor')
    blood_type = serializers.ChoiceField(choices=PatientProfile.BLOOD_TYPE_CHOICES, required=False, allow_blank=True)
    allergies = CleanCharField(required=False, allow_blank=True)
    medical_history = CleanCharField(required=False, allow_blank=True)
    current_medications = CleanCharField(required=False, allow_blank=True)
    emergency_contact_name = CleanCharField(max_length=255, required=False, allow_blank=True)
    emergency_contact_phone = CleanCharField(max_length=20, required=False, allow_blank=True)


WRITE_SERIALIZERS = {
    'doctor': DoctorWriteSerializer,
    'guardian': GuardianWriteSerializer,
    'patient': PatientWriteSerializer,
}


# ---------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------
class DoctorListQuerySerializer(PageQuerySerializer):
    specialty = serializers.CharField(max_length=255, required=False)
    is_available = serializers.BooleanField(required=False, allow_null=True, default=None)
    search = serializers.CharField(max_length=255, required=False)


class GuardianListQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(max_length=255, required=False)


class PatientListQuerySerializer(PageQuerySerializer):
    doctor_id = serializers.IntegerField(min_value=1, required=False)
    guardian_id = serializers.IntegerField(min_value=1, required=False)
    search = serializers.CharField(max_length=255, required=False)
