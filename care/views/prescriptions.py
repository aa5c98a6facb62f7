from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from care.models import Prescription
from care.serializers.pharmacy import (
    PrescriptionCreateSerializer, PrescriptionListQuerySerializer, PrescriptionSerializer,
    PrescriptionUpdateSerializer,
)
from care.services import scope as kinds
from care.services.pharmacy import create_prescription, delete_prescription, update_prescription
from care.views.common import STAFF_ROLES, ok, own_doctor_profile, paginate, require_role, role_of, scope_for

STAFF_MESSAGE = 'Only doctors or administrators can manage prescriptions'


def _base_queryset():
    return Prescription.objects.select_related('patient__user', 'doctor__user', 'medication')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def prescriptions(request):
    if request.method == 'POST':
        return _create(request)

    q = PrescriptionListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = _base_queryset()
    if vd.get('patient_id'):
        qs = qs.filter(patient_id=vd['patient_id'])
    if vd.get('doctor_id'):
        qs = qs.filter(doctor_id=vd['doctor_id'])
    if vd.get('is_active') is not None:
        qs = qs.filter(is_active=vd['is_active'])
    qs = scope_for(request).filter(qs, kinds.PRESCRIPTION).order_by('-created_at', '-id')
    return ok(paginate(qs, vd, PrescriptionSerializer))


def _create(request):
    require_role(request, STAFF_ROLES, STAFF_MESSAGE)
    s = PrescriptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)

    if role_of(request) == 'doctor':
        own = own_doctor_profile(request)
        if vd.get('doctor') is not None and vd['doctor'].pk != own.pk:
            raise PermissionDenied('Doctors can only prescribe under their own name')
        vd['doctor'] = own
    elif vd.get('doctor') is None:
        # administrators default to the patient's assigned doctor
        vd['doctor'] = vd['patient'].doctor

    rx = create_prescription(actor=request.user, **vd)
    return ok(PrescriptionSerializer(_base_queryset().get(pk=rx.pk)).data,
              message='Prescription created successfully', status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def prescription_detail(request, pk: int):
    rx = scope_for(request).get_or_raise(_base_queryset(), kinds.PRESCRIPTION, pk, label='Prescription')

    if request.method == 'GET':
        return ok(PrescriptionSerializer(rx).data)

    require_role(request, STAFF_ROLES, STAFF_MESSAGE)
    if request.method == 'DELETE':
        delete_prescription(rx, actor=request.user)
        return ok(message='Prescription deleted successfully')

    s = PrescriptionUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    update_prescription(rx, actor=request.user, **s.validated_data)
    return ok(PrescriptionSerializer(_base_queryset().get(pk=pk)).data, message='Prescription updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def active_prescriptions(request):
    qs = _base_queryset().filter(is_active=True, end_date__gte=timezone.localdate())
    qs = scope_for(request).filter(qs, kinds.PRESCRIPTION).order_by('end_date', 'id')
    return ok(PrescriptionSerializer(qs, many=True).data)
