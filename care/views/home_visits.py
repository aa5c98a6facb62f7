from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from care.models import HomeVisit, HomeVisitStatus
from care.serializers.bookings import (
    HomeVisitCreateSerializer, HomeVisitListQuerySerializer, HomeVisitSerializer, HomeVisitUpdateSerializer,
)
from care.services import scope as kinds
from care.services.bookings import cancel_home_visit, create_home_visit, update_home_visit
from care.views.common import (
    STAFF_ROLES, ok, own_doctor_profile, paginate, require_role, role_of, scope_for, upcoming_limit,
)

STAFF_MESSAGE = 'Only doctors or administrators can manage home visits'


def _base_queryset():
    return HomeVisit.objects.select_related('patient__user', 'doctor__user')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def home_visits(request):
    if request.method == 'POST':
        return _create(request)

    q = HomeVisitListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = _base_queryset()
    if vd.get('patient_id'):
        qs = qs.filter(patient_id=vd['patient_id'])
    if vd.get('doctor_id'):
        qs = qs.filter(doctor_id=vd['doctor_id'])
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    if vd.get('start_date'):
        qs = qs.filter(visit_date__gte=vd['start_date'])
    if vd.get('end_date'):
        qs = qs.filter(visit_date__lte=vd['end_date'])
    qs = scope_for(request).filter(qs, kinds.HOME_VISIT).order_by('-visit_date')
    return ok(paginate(qs, vd, HomeVisitSerializer))


def _create(request):
    require_role(request, STAFF_ROLES, STAFF_MESSAGE)
    s = HomeVisitCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if role_of(request) == 'doctor' and vd['doctor'].pk != own_doctor_profile(request).pk:
        raise PermissionDenied('Doctors can only schedule their own home visits')

    visit = create_home_visit(
        actor=request.user,
        patient=vd['patient'],
        doctor=vd['doctor'],
        visit_date=vd['visit_date'],
        estimated_duration_minutes=vd.get('estimated_duration_minutes'),
        address=vd['address'],
        reason=vd['reason'],
        notes=vd.get('notes', ''),
    )
    visit = _base_queryset().get(pk=visit.pk)
    return ok(HomeVisitSerializer(visit).data, message='Home visit scheduled successfully', status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def home_visit_detail(request, pk: int):
    visit = scope_for(request).get_or_raise(_base_queryset(), kinds.HOME_VISIT, pk, label='Home visit')

    if request.method == 'GET':
        return ok(HomeVisitSerializer(visit).data)

    require_role(request, STAFF_ROLES, STAFF_MESSAGE)
    if request.method == 'DELETE':
        cancel_home_visit(visit, actor=request.user)
        return ok(message='Home visit cancelled successfully')

    s = HomeVisitUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    update_home_visit(visit, actor=request.user, **s.validated_data)
    visit = _base_queryset().get(pk=visit.pk)
    return ok(HomeVisitSerializer(visit).data, message='Home visit updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def upcoming_home_visits(request):
    qs = _base_queryset().filter(visit_date__gt=timezone.now()).exclude(status=HomeVisitStatus.CANCELLED)
    qs = scope_for(request).filter(qs, kinds.HOME_VISIT).order_by('visit_date')[:upcoming_limit()]
    return ok(HomeVisitSerializer(qs, many=True).data)
