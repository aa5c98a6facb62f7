"""
Patient management views.

Patients are listed through the caller's visibility scope: doctors see
the patients assigned to them, guardians the patients they look after
and patients only themselves.  Doctors and administrators may register
and update patients; only administrators delete them.
"""
from __future__ import annotations

from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from care.models import AppointmentStatus, PatientProfile
from care.permissions import ReadOnlyOrClinicalStaff
from care.serializers.bookings import AppointmentSerializer
from care.serializers.people import PatientListQuerySerializer, PatientSerializer, PatientWriteSerializer
from care.serializers.pharmacy import PrescriptionSerializer
from care.services import scope as kinds
from care.services.accounts import create_account, delete_account, update_account
from care.views.common import ok, paginate, require_role, scope_for


def _base_queryset():
    return PatientProfile.objects.select_related('user', 'guardian__user', 'doctor__user')


def get_patient(request, pk) -> PatientProfile:
    return scope_for(request).get_or_raise(_base_queryset(), kinds.PATIENT, pk, label='Patient')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ReadOnlyOrClinicalStaff])
def patients(request):
    if request.method == 'POST':
        s = PatientWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        user = create_account(role='patient', actor=request.user, **s.validated_data)
        patient = _base_queryset().get(user=user)
        return ok(PatientSerializer(patient).data, message='Patient created successfully', status=201)

    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = _base_queryset()
    if vd.get('doctor_id'):
        qs = qs.filter(doctor_id=vd['doctor_id'])
    if vd.get('guardian_id'):
        qs = qs.filter(guardian_id=vd['guardian_id'])
    if vd.get('search'):
        qs = qs.filter(Q(user__name__icontains=vd['search']) | Q(user__document_number=vd['search']))
    qs = scope_for(request).filter(qs, kinds.PATIENT).order_by('user__name', 'id')
    return ok(paginate(qs, vd, PatientSerializer))


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, ReadOnlyOrClinicalStaff])
def patient_detail(request, pk: int):
    patient = get_patient(request, pk)

    if request.method == 'GET':
        return ok(PatientSerializer(patient).data)

    if request.method == 'DELETE':
        require_role(request, {'admin'}, 'Only administrators can delete patients')
        delete_account(patient, role='patient', actor=request.user)
        return ok(message='Patient deleted successfully')

    s = PatientWriteSerializer(data=request.data, partial=True, context={'user': patient.user})
    s.is_valid(raise_exception=True)
    update_account(patient, role='patient', actor=request.user, **s.validated_data)
    return ok(PatientSerializer(_base_queryset().get(pk=pk)).data, message='Patient updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_medical_history(request, pk: int):
    """Completed appointments and all prescriptions, newest first."""
    patient = get_patient(request, pk)
    appointments = (patient.appointments.select_related('patient__user', 'doctor__user')
                    .filter(status=AppointmentStatus.COMPLETED).order_by('-appointment_date'))
    prescriptions = (patient.prescriptions.select_related('patient__user', 'doctor__user', 'medication')
                     .order_by('-created_at'))
    return ok({
        'patient': {
            'id': patient.id,
            'blood_type': patient.blood_type,
            'allergies': patient.allergies,
            'medical_history': patient.medical_history,
            'current_medications': patient.current_medications,
        },
        'appointments': AppointmentSerializer(appointments, many=True).data,
        'prescriptions': PrescriptionSerializer(prescriptions, many=True).data,
    })
