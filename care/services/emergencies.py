"""
Emergency reports.

A guardian reports an emergency for one of their own patients.  The
guardian and doctor recorded on the report always come from the patient
record, never from the request.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from care.models import Emergency, EmergencyStatus
from care.services.audit import log_action
from care.services.lifecycle import stamp_emergency, validate_transition
from care.services.notifications import notify_emergency

logger = logging.getLogger(__name__)

EMERGENCY_EDITABLE = ('priority', 'response_notes')


def report_emergency(*, actor, patient, description, priority=None, location='') -> Emergency:
    guardian = getattr(actor, 'guardian_profile', None)
    if guardian is None or patient.guardian_id != guardian.pk:
        raise PermissionDenied('You can only report emergencies for your assigned patients')

    with transaction.atomic():
        emergency = Emergency.objects.create(
            patient=patient,
            guardian_id=patient.guardian_id,
            doctor_id=patient.doctor_id,
            description=description,
            priority=priority or 'high',
            location=location or '',
            status=EmergencyStatus.REPORTED,
        )
        log_action(user=actor, action='report_emergency', object_type='emergency', object_id=emergency.pk,
                   detail={'patient': patient.pk, 'priority': emergency.priority})

    logger.warning('emergency #%s reported for patient %s (%s)', emergency.pk, patient.pk, emergency.priority)
    notify_emergency(emergency)
    return emergency


@transaction.atomic
def update_emergency(emergency: Emergency, *, actor, status=None, now=None, **changes) -> Emergency:
    current = Emergency.objects.select_for_update().get(pk=emergency.pk)
    fields = []
    if status is not None:
        validate_transition('emergency', current.status, status)
        fields += stamp_emergency(current, status, now or timezone.now())
    for name, value in changes.items():
        if name in EMERGENCY_EDITABLE:
            setattr(current, name, value)
            fields.append(name)
    if fields:
        current.save(update_fields=sorted(set(fields)) + ['updated_at'])
    log_action(user=actor, action='update_emergency', object_type='emergency', object_id=current.pk,
               detail={'fields': sorted(set(fields))})
    return current


def acknowledge_emergency(emergency: Emergency, *, actor, now=None) -> Emergency:
    return update_emergency(emergency, actor=actor, status=EmergencyStatus.ACKNOWLEDGED, now=now)


@transaction.atomic
def delete_emergency(emergency: Emergency, *, actor) -> None:
    pk = emergency.pk
    emergency.delete()
    log_action(user=actor, action='delete_emergency', object_type='emergency', object_id=pk)
