from rest_framework import serializers

from care.models import Role
from care.serializers.people import WRITE_SERIALIZERS, AccountWriteSerializer

REGISTER_REQUIRED = ('phone', 'birth_date', 'document_number')


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()

    def validate_email(self, v):
        return (v or '').strip().lower()

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('The password field is required.')
        return v


class RegisterSerializer(serializers.Serializer):
    """Self-registration for any role.

    The role decides which profile serializer validates the rest of the
    body; its errors are reported alongside the registration's own.
    """
    role_name = serializers.ChoiceField(choices=Role.choices)
    password_confirmation = serializers.CharField(write_only=True)

    def validate(self, attrs):
        role = attrs['role_name']
        account = WRITE_SERIALIZERS.get(role, AccountWriteSerializer)(data=self.initial_data)
        account.is_valid(raise_exception=True)
        data = dict(account.validated_data)

        errors = {}
        for name in REGISTER_REQUIRED:
            if not data.get(name):
                errors[name] = ['This field is required.']
        if data['password'] != attrs['password_confirmation']:
            errors['password'] = ['The password confirmation does not match.']
        if errors:
            raise serializers.ValidationError(errors)

        data['role'] = str(role)
        return data
