"""
Realtime alerts for doctors.

Emergency reports are pushed to the channel group of the patient's
doctor.  Delivery is best effort: a missing or failing channel layer is
logged and leaves ``notification_sent`` false, the report itself stands.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def doctor_group(doctor_id: int) -> str:
    return f"doctor.{doctor_id}"


def emergency_payload(emergency) -> dict:
    return {
        "type": "emergency.alert",
        "emergencyId": emergency.id,
        "patientId": emergency.patient_id,
        "patientName": emergency.patient.user.name,
        "guardianId": emergency.guardian_id,
        "priority": emergency.priority,
        "status": emergency.status,
        "description": emergency.description,
        "location": emergency.location,
        "createdAt": emergency.created_at.isoformat(),
    }


def notify_emergency(emergency) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning('no channel layer configured; emergency #%s not pushed', emergency.id)
        return False
    try:
        async_to_sync(channel_layer.group_send)(doctor_group(emergency.doctor_id), emergency_payload(emergency))
    except Exception:
        logger.exception('failed to push emergency #%s to doctor %s', emergency.id, emergency.doctor_id)
        return False

    emergency.notification_sent = True
    emergency.save(update_fields=['notification_sent'])
    return True
