"""Doctor views: profile and clinical notes."""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import DoctorNote, DoctorProfile, PatientProfile
from care.permissions import IsDoctorRole
from care.serializers.clinical import NoteCreateSerializer, NotesQuerySerializer

logger = logging.getLogger(__name__)


def current_doctor(user) -> DoctorProfile:
    doctor = DoctorProfile.objects.select_related('user').filter(user=user).first()
    if not doctor:
        logger.warning('doctor not found user=%s', user.id)
        raise NotFound('Doctor not found')
    return doctor


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_profile(request):
    doctor = current_doctor(request.user)
    user = doctor.user
    return Response({
        'success': True,
        'id': str(doctor.id),
        'userId': str(user.id),
        'name': user.name,
        'email': user.email,
        'userType': user.role,
        'phone': user.phone or None,
        'specialization': doctor.specialization or 'General Practitioner',
        'licenseNumber': doctor.license_number or 'DOC123456',
        'hospitalAffiliation': doctor.hospital_affiliation or 'City Hospital',
        'yearsOfExperience': doctor.years_of_experience if doctor.years_of_experience is not None else 10,
        'createdAt': doctor.created_at.isoformat(),
    })


def _note(n: DoctorNote) -> dict:
    return {
        'id': str(n.id),
        'note': n.note,
        'createdAt': n.created_at.isoformat(),
        'patient': {
            'id': str(n.patient_id),
            'userId': str(n.patient.user_id),
            'name': n.patient.user.name,
            'email': n.patient.user.email,
        },
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_notes(request):
    if request.method == 'GET':
        q = NotesQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        doctor = current_doctor(request.user)
        qs = DoctorNote.objects.filter(doctor=doctor).select_related('patient__user')
        if q.validated_data.get('patientId'):
            qs = qs.filter(patient_id=q.validated_data['patientId'])
        notes = [_note(n) for n in qs.order_by('-created_at')]
        return Response({'success': True, 'notes': notes})

    s = NoteCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = current_doctor(request.user)
    patient = PatientProfile.objects.filter(id=s.validated_data['patientId']).first()
    if not patient:
        raise NotFound('Patient not found')
    note = DoctorNote.objects.create(doctor=doctor, patient=patient, note=s.validated_data['note'])
    logger.info('doctor note created id=%s doctor=%s patient=%s', note.id, doctor.id, patient.id)
    return Response({
        'success': True,
        'note': {
            'id': str(note.id),
            'note': note.note,
            'createdAt': note.created_at.isoformat(),
            'patientId': str(note.patient_id),
        },
    }, status=201)
