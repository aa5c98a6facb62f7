"""
Appointment endpoints.

Every listing and lookup goes through the caller's visibility scope.
Patients and guardians may book only for patients they can see, and
"deleting" an appointment cancels it.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from care.models import Appointment, AppointmentStatus
from care.serializers.bookings import (
    AppointmentCreateSerializer, AppointmentListQuerySerializer, AppointmentSerializer,
    AppointmentUpdateSerializer,
)
from care.services import scope as kinds
from care.services.bookings import cancel_appointment, create_appointment, update_appointment
from care.views.common import STAFF_ROLES, ok, paginate, role_of, scope_for, upcoming_limit

# Fields only clinical staff may touch
STAFF_ONLY_FIELDS = {'diagnosis'}


def appointment_queryset():
    return Appointment.objects.select_related('patient__user', 'doctor__user')


def filter_appointments(qs, params: dict):
    if params.get('patient_id'):
        qs = qs.filter(patient_id=params['patient_id'])
    if params.get('doctor_id'):
        qs = qs.filter(doctor_id=params['doctor_id'])
    if params.get('status'):
        qs = qs.filter(status=params['status'])
    if params.get('start_date'):
        qs = qs.filter(appointment_date__gte=params['start_date'])
    if params.get('end_date'):
        qs = qs.filter(appointment_date__lte=params['end_date'])
    return qs


def get_appointment(request, pk) -> Appointment:
    return scope_for(request).get_or_raise(appointment_queryset(), kinds.APPOINTMENT, pk, label='Appointment')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    if request.method == 'POST':
        return _create(request)

    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = filter_appointments(appointment_queryset(), q.validated_data)
    qs = scope_for(request).filter(qs, kinds.APPOINTMENT).order_by('-appointment_date')
    return ok(paginate(qs, q.validated_data, AppointmentSerializer))


def _create(request):
    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    patient = vd['patient']
    if role_of(request) not in STAFF_ROLES and not scope_for(request).permits(patient, kinds.PATIENT):
        raise PermissionDenied('You can only book appointments for your own patients')

    appointment = create_appointment(
        actor=request.user,
        patient=patient,
        doctor=vd['doctor'],
        appointment_date=vd['appointment_date'],
        duration_minutes=vd.get('duration_minutes'),
        type=vd['type'],
        reason=vd['reason'],
        notes=vd.get('notes', ''),
    )
    appointment = appointment_queryset().get(pk=appointment.pk)
    return ok(AppointmentSerializer(appointment).data, message='Appointment created successfully', status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk: int):
    appointment = get_appointment(request, pk)

    if request.method == 'GET':
        return ok(AppointmentSerializer(appointment).data)

    if request.method == 'DELETE':
        cancel_appointment(appointment, actor=request.user)
        return ok(message='Appointment cancelled successfully')

    s = AppointmentUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    changes = dict(s.validated_data)
    if role_of(request) not in STAFF_ROLES:
        status_change = changes.get('status')
        if STAFF_ONLY_FIELDS & changes.keys() or (
                status_change and status_change not in (appointment.status, AppointmentStatus.CANCELLED)):
            raise PermissionDenied('Only doctors or administrators can change this field')

    update_appointment(appointment, actor=request.user, **changes)
    appointment = appointment_queryset().get(pk=appointment.pk)
    return ok(AppointmentSerializer(appointment).data, message='Appointment updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def upcoming_appointments(request):
    qs = appointment_queryset().filter(appointment_date__gt=timezone.now()).exclude(status=AppointmentStatus.CANCELLED)
    qs = scope_for(request).filter(qs, kinds.APPOINTMENT).order_by('appointment_date')[:upcoming_limit()]
    return ok(AppointmentSerializer(qs, many=True).data)
