from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated

from care.models import Medication
from care.permissions import ReadOnlyOrClinicalStaff
from care.serializers.pharmacy import MedicationListQuerySerializer, MedicationSerializer, MedicationWriteSerializer
from care.services.audit import log_action
from care.services.pharmacy import delete_medication
from care.views.common import ok, paginate, require_role


def _get_medication(pk) -> Medication:
    medication = Medication.objects.filter(pk=pk).first()
    if medication is None:
        raise NotFound('Medication not found')
    return medication


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ReadOnlyOrClinicalStaff])
def medications(request):
    if request.method == 'POST':
        s = MedicationWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        medication = Medication.objects.create(**s.validated_data)
        log_action(user=request.user, action='create_medication', object_type='medication', object_id=medication.pk)
        return ok(MedicationSerializer(medication).data, message='Medication created successfully', status=201)

    q = MedicationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Medication.objects.all()
    if vd.get('is_active') is not None:
        qs = qs.filter(is_active=vd['is_active'])
    if vd.get('requires_prescription') is not None:
        qs = qs.filter(requires_prescription=vd['requires_prescription'])
    if vd.get('search'):
        qs = qs.filter(name__icontains=vd['search'])
    return ok(paginate(qs.order_by('name', 'id'), vd, MedicationSerializer))


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, ReadOnlyOrClinicalStaff])
def medication_detail(request, pk: int):
    medication = _get_medication(pk)

    if request.method == 'GET':
        return ok(MedicationSerializer(medication).data)

    if request.method == 'DELETE':
        require_role(request, {'admin'}, 'Only administrators can delete medications')
        delete_medication(medication, actor=request.user)
        return ok(message='Medication deleted successfully')

    s = MedicationWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    for name, value in s.validated_data.items():
        setattr(medication, name, value)
    medication.save()
    log_action(user=request.user, action='update_medication', object_type='medication', object_id=medication.pk,
               detail={'fields': sorted(s.validated_data)})
    return ok(MedicationSerializer(medication).data, message='Medication updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def active_medications(request):
    qs = Medication.objects.filter(is_active=True).order_by('name', 'id')
    return ok(MedicationSerializer(qs, many=True).data)
