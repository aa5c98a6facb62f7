"""
Emergency endpoints.

Guardians report emergencies for their own patients; the patient's
doctor is alerted over the realtime channel.  Doctors and administrators
move the report through its statuses, and only doctors acknowledge.
"""
from __future__ import annotations

from django.db.models import Case, IntegerField, Value, When
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.throttling import UserRateThrottle

from care.models import Emergency, EmergencyStatus
from care.permissions import IsDoctorRole, IsGuardianRole
from care.serializers.emergency import (
    EmergencyListQuerySerializer, EmergencyReportSerializer, EmergencySerializer, EmergencyUpdateSerializer,
)
from care.services import scope as kinds
from care.services.emergencies import (
    acknowledge_emergency, delete_emergency, report_emergency, update_emergency,
)
from care.views.common import STAFF_ROLES, ok, paginate, require_role, scope_for

PRIORITY_ORDER = Case(
    *[When(priority=name, then=Value(rank)) for name, rank in Emergency.PRIORITY_RANK.items()],
    default=Value(0), output_field=IntegerField(),
)


def _base_queryset():
    return Emergency.objects.select_related('patient__user', 'guardian__user', 'doctor__user')


def _get_emergency(request, pk) -> Emergency:
    return scope_for(request).get_or_raise(_base_queryset(), kinds.EMERGENCY, pk, label='Emergency')


class EmergencyReportThrottle(UserRateThrottle):
    """Rate limit on new reports only; reads fall under the user rate."""
    scope = 'emergency_report'

    def allow_request(self, request, view):
        if request.method != 'POST':
            return True
        return super().allow_request(request, view)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([UserRateThrottle, EmergencyReportThrottle])
def emergencies(request):
    if request.method == 'POST':
        return _report(request)

    q = EmergencyListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = _base_queryset()
    for name in ('patient_id', 'status', 'priority'):
        if vd.get(name):
            qs = qs.filter(**{name: vd[name]})
    qs = scope_for(request).filter(qs, kinds.EMERGENCY).order_by('-created_at', '-id')
    return ok(paginate(qs, vd, EmergencySerializer))


def _report(request):
    require_role(request, {'guardian'}, IsGuardianRole.message)
    s = EmergencyReportSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    emergency = report_emergency(actor=request.user, **s.validated_data)
    message = 'Emergency reported successfully. Doctor has been notified.'
    if not emergency.notification_sent:
        message = 'Emergency reported successfully.'
    return ok(EmergencySerializer(_base_queryset().get(pk=emergency.pk)).data, message=message, status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def emergency_detail(request, pk: int):
    emergency = _get_emergency(request, pk)

    if request.method == 'GET':
        return ok(EmergencySerializer(emergency).data)

    if request.method == 'DELETE':
        require_role(request, {'admin'}, 'Only administrators can delete emergencies')
        delete_emergency(emergency, actor=request.user)
        return ok(message='Emergency deleted successfully')

    require_role(request, STAFF_ROLES, 'Only doctors or administrators can update emergencies')
    s = EmergencyUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    update_emergency(emergency, actor=request.user, **s.validated_data)
    return ok(EmergencySerializer(_base_queryset().get(pk=pk)).data, message='Emergency updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def active_emergencies(request):
    qs = _base_queryset().exclude(status=EmergencyStatus.RESOLVED)
    qs = scope_for(request).filter(qs, kinds.EMERGENCY)
    qs = qs.annotate(priority_rank=PRIORITY_ORDER).order_by('-priority_rank', '-created_at', '-id')
    return ok(EmergencySerializer(qs, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def acknowledge(request, pk: int):
    emergency = _get_emergency(request, pk)
    acknowledge_emergency(emergency, actor=request.user)
    return ok(EmergencySerializer(_base_queryset().get(pk=pk)).data, message='Emergency acknowledged')
