"""
Doctor directory endpoints.

Any authenticated user may browse doctors; only administrators create,
update or delete them.  A doctor cannot be deleted while future
appointments or assigned patients still depend on them.
"""
from __future__ import annotations

from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated

from care.models import DoctorProfile
from care.permissions import ReadOnlyOrAdmin
from care.serializers.bookings import AppointmentListQuerySerializer, AppointmentSerializer
from care.serializers.people import DoctorListQuerySerializer, DoctorSerializer, DoctorWriteSerializer
from care.services import scope as kinds
from care.services.accounts import create_account, delete_account, update_account
from care.views.appointments import appointment_queryset, filter_appointments
from care.views.common import ok, paginate, scope_for


def _base_queryset():
    return DoctorProfile.objects.select_related('user')


def _get_doctor(pk) -> DoctorProfile:
    doctor = _base_queryset().filter(pk=pk).first()
    if doctor is None:
        raise NotFound('Doctor not found')
    return doctor


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ReadOnlyOrAdmin])
def doctors(request):
    if request.method == 'POST':
        s = DoctorWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        user = create_account(role='doctor', actor=request.user, **s.validated_data)
        return ok(DoctorSerializer(_get_doctor(user.doctor_profile.pk)).data,
                  message='Doctor created successfully', status=201)

    q = DoctorListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = _base_queryset()
    if vd.get('is_available') is not None:
        qs = qs.filter(is_available=vd['is_available'])
    if vd.get('specialty'):
        qs = qs.filter(specialty__icontains=vd['specialty'])
    if vd.get('search'):
        qs = qs.filter(Q(user__name__icontains=vd['search']) | Q(user__email__icontains=vd['search']))
    return ok(paginate(qs.order_by('user__name', 'id'), vd, DoctorSerializer))


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, ReadOnlyOrAdmin])
def doctor_detail(request, pk: int):
    doctor = _get_doctor(pk)

    if request.method == 'GET':
        return ok(DoctorSerializer(doctor).data)

    if request.method == 'DELETE':
        delete_account(doctor, role='doctor', actor=request.user)
        return ok(message='Doctor deleted successfully')

    s = DoctorWriteSerializer(data=request.data, partial=True, context={'user': doctor.user})
    s.is_valid(raise_exception=True)
    update_account(doctor, role='doctor', actor=request.user, **s.validated_data)
    return ok(DoctorSerializer(_get_doctor(pk)).data, message='Doctor updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_appointments(request, pk: int):
    doctor = _get_doctor(pk)
    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = filter_appointments(appointment_queryset().filter(doctor=doctor), q.validated_data)
    qs = scope_for(request).filter(qs, kinds.APPOINTMENT).order_by('-appointment_date')
    return ok(paginate(qs, q.validated_data, AppointmentSerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def available_doctors(request):
    qs = _base_queryset().filter(is_available=True).order_by('user__name', 'id')
    return ok(DoctorSerializer(qs, many=True).data)
