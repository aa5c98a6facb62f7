import logging

from django.db import transaction

from care.models import Medication, Prescription
from care.services.audit import log_action
from care.services.lifecycle import ensure_medication_deletable, prescription_end_date

logger = logging.getLogger(__name__)

PRESCRIPTION_EDITABLE = ('dosage', 'frequency', 'duration_days', 'instructions', 'is_active')


@transaction.atomic
def create_prescription(*, actor, patient, doctor, medication, start_date, duration_days,
                        dosage, frequency, instructions='', appointment=None) -> Prescription:
    rx = Prescription.objects.create(
        patient=patient, doctor=doctor, medication=medication, appointment=appointment,
        dosage=dosage, frequency=frequency, instructions=instructions or '',
        duration_days=duration_days, start_date=start_date,
        end_date=prescription_end_date(start_date, duration_days),
        is_active=True,
    )
    log_action(user=actor, action='create_prescription', object_type='prescription', object_id=rx.pk,
               detail={'medication': medication.pk, 'patient': patient.pk})
    return rx


@transaction.atomic
def update_prescription(rx: Prescription, *, actor, **changes) -> Prescription:
    """Update editable fields; ``end_date`` follows ``duration_days``."""
    changes = {k: v for k, v in changes.items() if k in PRESCRIPTION_EDITABLE}
    for name, value in changes.items():
        setattr(rx, name, value)
    if 'duration_days' in changes:
        rx.end_date = prescription_end_date(rx.start_date, rx.duration_days)
    rx.save()
    log_action(user=actor, action='update_prescription', object_type='prescription', object_id=rx.pk,
               detail={'fields': sorted(changes)})
    return rx


@transaction.atomic
def delete_prescription(rx: Prescription, *, actor) -> None:
    pk = rx.pk
    rx.delete()
    log_action(user=actor, action='delete_prescription', object_type='prescription', object_id=pk)


@transaction.atomic
def delete_medication(medication: Medication, *, actor) -> None:
    ensure_medication_deletable(medication)
    pk, name = medication.pk, medication.name
    medication.delete()
    logger.info('medication #%s %r removed', pk, name)
    log_action(user=actor, action='delete_medication', object_type='medication', object_id=pk)
