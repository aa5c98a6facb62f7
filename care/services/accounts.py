"""
Account lifecycle: users together with their role profile.

A user and its profile row are always created in one transaction, and
removing a profile removes the backing user.  The e-mail address doubles
as the Django ``username``.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from care.models import DoctorProfile, GuardianProfile, PatientProfile, Role
from care.services.audit import log_action
from care.services.lifecycle import (
    ensure_doctor_deletable, ensure_guardian_age, ensure_guardian_deletable,
)

User = get_user_model()
logger = logging.getLogger(__name__)

USER_FIELDS = (
    'name', 'email', 'phone', 'birth_date', 'gender', 'address', 'document_type', 'document_number',
)

PROFILE_MODELS = {
    'doctor': DoctorProfile,
    'guardian': GuardianProfile,
    'patient': PatientProfile,
}

PROFILE_FIELDS = {
    'doctor': ('specialty', 'license_number', 'bio', 'is_available'),
    'guardian': ('relationship', 'relationship_notes', 'is_primary_contact'),
    'patient': (
        'guardian', 'doctor', 'blood_type', 'allergies', 'medical_history',
        'current_medications', 'emergency_contact_name', 'emergency_contact_phone',
    ),
}


def _pick(fields: dict, names) -> dict:
    return {k: fields[k] for k in names if k in fields}


def _user_values(fields: dict) -> dict:
    values = _pick(fields, USER_FIELDS)
    # Blank document numbers are stored as NULL so the unique index ignores them
    if 'document_number' in values and not values['document_number']:
        values['document_number'] = None
    return values


@transaction.atomic
def create_account(*, role: str, password: str, actor=None, **fields):
    """Create a user with ``role`` and its profile; return the user.

    ``fields`` carries both user and profile attributes.  Guardians are
    checked against the minimum age before anything is written.
    """
    if role == Role.GUARDIAN:
        ensure_guardian_age(fields.get('birth_date'))

    values = _user_values(fields)
    user = User.objects.create_user(username=values['email'], password=password, role=role, **values)

    model = PROFILE_MODELS.get(str(role))
    if model is not None:
        model.objects.create(user=user, **_pick(fields, PROFILE_FIELDS[str(role)]))

    log_action(user=actor or user, action='create_account', object_type='user', object_id=user.pk,
               detail={'role': role})
    return user


@transaction.atomic
def update_account(profile, *, role: str, actor=None, password: Optional[str] = None, **fields):
    """Apply user and profile attributes to ``profile`` and its user."""
    if role == Role.GUARDIAN and 'birth_date' in fields:
        ensure_guardian_age(fields['birth_date'])
    user = profile.user
    for name, value in _user_values(fields).items():
        setattr(user, name, value)
    if 'email' in fields:
        user.username = fields['email']
    if password:
        user.set_password(password)
    user.save()

    for name, value in _pick(fields, PROFILE_FIELDS[str(role)]).items():
        setattr(profile, name, value)
    profile.save()

    log_action(user=actor, action=f'update_{role}', object_type=role, object_id=profile.pk,
               detail={'fields': sorted(fields)})
    return profile


@transaction.atomic
def delete_account(profile, *, role: str, actor=None) -> None:
    """Delete ``profile`` together with its user, subject to the guards."""
    if role == Role.DOCTOR:
        ensure_doctor_deletable(profile)
    elif role == Role.GUARDIAN:
        ensure_guardian_deletable(profile)

    pk, user_id = profile.pk, profile.user_id
    # The profile goes with the user through the one-to-one cascade
    profile.user.delete()
    logger.info('deleted %s profile #%s (user %s)', role, pk, user_id)
    log_action(user=actor, action=f'delete_{role}', object_type=role, object_id=pk)
