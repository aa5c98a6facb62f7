import pytest
from asgiref.sync import async_to_sync
from channels.testing import WebsocketCommunicator

from care.models import Emergency
from care.realtime.consumers import EmergencyAlertConsumer
from care.services import notifications

pytestmark = pytest.mark.django_db


class RecordingLayer:
    def __init__(self):
        self.sent = []

    async def group_send(self, group, message):
        self.sent.append((group, message))


class BrokenLayer:
    async def group_send(self, group, message):
        raise ConnectionError('redis is down')


def report(client, patient, **extra):
    body = {'patient_id': patient.pk, 'description': 'Fell down the stairs', **extra}
    return client.post('/api/emergencies', body, format='json')


def test_guardian_report_alerts_the_patients_doctor(monkeypatch, client_for, guardian, patient, doctor):
    layer = RecordingLayer()
    monkeypatch.setattr(notifications, 'get_channel_layer', lambda: layer)

    r = report(client_for(guardian.user), patient, location='Kitchen')
    assert r.status_code == 201
    data = r.data['data']
    assert data['status'] == 'reported'
    assert data['priority'] == 'high'
    assert data['doctor']['id'] == doctor.pk
    assert data['guardian']['id'] == guardian.pk
    assert data['notification_sent'] is True

    [(group, message)] = layer.sent
    assert group == f'doctor.{doctor.pk}'
    assert message['type'] == 'emergency.alert'
    assert message['emergencyId'] == data['id']
    assert message['patientName'] == patient.user.name


def test_failed_push_still_records_the_report(monkeypatch, client_for, guardian, patient):
    monkeypatch.setattr(notifications, 'get_channel_layer', lambda: BrokenLayer())
    r = report(client_for(guardian.user), patient)
    assert r.status_code == 201
    assert r.data['message'] == 'Emergency reported successfully.'
    assert Emergency.objects.get(pk=r.data['data']['id']).notification_sent is False


def test_guardian_cannot_report_for_another_family(client_for, guardian, other_patient):
    r = report(client_for(guardian.user), other_patient)
    assert r.status_code == 403
    assert not Emergency.objects.exists()


def test_only_guardians_report(client_for, doctor, patient):
    r = report(client_for(doctor.user), patient)
    assert r.status_code == 403
    assert r.data['message'] == 'Only guardians can report emergencies'


def test_acknowledge_sets_timestamp_once(client_for, guardian, patient, doctor):
    emergency_id = report(client_for(guardian.user), patient).data['data']['id']
    client = client_for(doctor.user)

    first = client.post(f'/api/emergencies/{emergency_id}/acknowledge')
    assert first.status_code == 200
    stamped = first.data['data']['acknowledged_at']
    assert stamped is not None

    again = client.post(f'/api/emergencies/{emergency_id}/acknowledge')
    assert again.status_code == 200
    assert again.data['data']['acknowledged_at'] == stamped


def test_other_doctor_cannot_acknowledge(client_for, guardian, patient, other_doctor):
    emergency_id = report(client_for(guardian.user), patient).data['data']['id']
    r = client_for(other_doctor.user).post(f'/api/emergencies/{emergency_id}/acknowledge')
    assert r.status_code == 403


def test_resolved_emergency_cannot_be_reopened(client_for, guardian, patient, doctor):
    emergency_id = report(client_for(guardian.user), patient).data['data']['id']
    client = client_for(doctor.user)
    url = f'/api/emergencies/{emergency_id}'

    r = client.patch(url, {'status': 'resolved', 'response_notes': 'Ambulance sent'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['resolved_at'] is not None
    assert r.data['data']['acknowledged_at'] is None

    r = client.patch(url, {'status': 'in_progress'}, format='json')
    assert r.status_code == 422


def test_guardian_cannot_update_status(client_for, guardian, patient):
    client = client_for(guardian.user)
    emergency_id = report(client, patient).data['data']['id']
    r = client.patch(f'/api/emergencies/{emergency_id}', {'status': 'resolved'}, format='json')
    assert r.status_code == 403


def test_active_list_puts_most_urgent_first(client_for, guardian, patient, doctor):
    client = client_for(guardian.user)
    low = report(client, patient, priority='low').data['data']['id']
    critical = report(client, patient, priority='critical').data['data']['id']
    resolved = report(client, patient, priority='critical').data['data']['id']
    client_for(doctor.user).patch(f'/api/emergencies/{resolved}', {'status': 'resolved'}, format='json')

    r = client_for(doctor.user).get('/api/emergencies-active')
    assert [e['id'] for e in r.data['data']] == [critical, low]


def test_socket_rejects_anonymous_connections():
    async def attempt():
        communicator = WebsocketCommunicator(EmergencyAlertConsumer.as_asgi(), '/ws/emergencies/')
        connected, code = await communicator.connect()
        await communicator.disconnect()
        return connected, code

    assert async_to_sync(attempt)() == (False, 4001)
