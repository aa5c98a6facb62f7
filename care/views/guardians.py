from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated

from care.models import GuardianProfile, PatientProfile
from care.serializers.people import (
    GuardianListQuerySerializer, GuardianSerializer, GuardianWriteSerializer, PatientSerializer,
)
from care.services import scope as kinds
from care.services.accounts import create_account, delete_account, update_account
from care.views.common import STAFF_ROLES, ok, paginate, require_role, role_of, scope_for

ADMIN_MESSAGE = 'Only administrators can perform this action'


def _get_guardian(request, pk) -> GuardianProfile:
    """Guardians are visible to clinical staff and to themselves."""
    guardian = GuardianProfile.objects.select_related('user').filter(pk=pk).first()
    if guardian is None:
        raise NotFound('Guardian not found')
    if role_of(request) not in STAFF_ROLES and guardian.user_id != request.user.pk:
        raise PermissionDenied('You are not allowed to access this guardian')
    return guardian


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def guardians(request):
    if request.method == 'POST':
        require_role(request, {'admin'}, ADMIN_MESSAGE)
        s = GuardianWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        user = create_account(role='guardian', actor=request.user, **s.validated_data)
        return ok(GuardianSerializer(user.guardian_profile).data, message='Guardian created successfully', status=201)

    require_role(request, STAFF_ROLES, 'Only doctors or administrators can list guardians')
    q = GuardianListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = GuardianProfile.objects.select_related('user')
    if q.validated_data.get('search'):
        term = q.validated_data['search']
        qs = qs.filter(Q(user__name__icontains=term) | Q(user__email__icontains=term))
    return ok(paginate(qs.order_by('user__name', 'id'), q.validated_data, GuardianSerializer))


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def guardian_detail(request, pk: int):
    guardian = _get_guardian(request, pk)

    if request.method == 'GET':
        return ok(GuardianSerializer(guardian).data)

    require_role(request, {'admin'}, ADMIN_MESSAGE)
    if request.method == 'DELETE':
        delete_account(guardian, role='guardian', actor=request.user)
        return ok(message='Guardian deleted successfully')

    s = GuardianWriteSerializer(data=request.data, partial=True, context={'user': guardian.user})
    s.is_valid(raise_exception=True)
    update_account(guardian, role='guardian', actor=request.user, **s.validated_data)
    guardian.refresh_from_db()
    return ok(GuardianSerializer(guardian).data, message='Guardian updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def guardian_patients(request, pk: int):
    guardian = _get_guardian(request, pk)
    qs = PatientProfile.objects.select_related('user', 'guardian__user', 'doctor__user').filter(guardian=guardian)
    qs = scope_for(request).filter(qs, kinds.PATIENT).order_by('user__name', 'id')
    return ok(PatientSerializer(qs, many=True).data)
