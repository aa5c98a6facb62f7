import json

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from care.models import DoctorProfile
from care.services.notifications import doctor_group


def _doctor_id_for(user):
    return DoctorProfile.objects.filter(user_id=user.pk).values_list("id", flat=True).first()


class EmergencyAlertConsumer(AsyncWebsocketConsumer):
    """Pushes emergency reports to the connected doctor."""

    async def connect(self):
        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4001)
            return
        if getattr(user, "role", None) != "doctor":
            await self.close(code=4003)
            return

        doctor_id = await sync_to_async(_doctor_id_for)(user)
        if doctor_id is None:
            await self.close(code=4004)
            return

        self.group_name = doctor_group(doctor_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "doctorId": doctor_id}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def emergency_alert(self, event):
        # event: {"type": "emergency.alert", "emergencyId": int, "priority": "...", ...}
        await self.send(json.dumps(event))
