"""
Patient views: own profile, emergency contacts and medical records.

Admins see every patient's contacts and records; doctors get an empty
list from the contact and record listings.  Missing optional values are
filled with display defaults so the front-end can render a complete card.
"""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import MedicalRecord, PatientProfile, User
from care.permissions import IsPatientRole
from care.serializers.common import DateRangeQuerySerializer

logger = logging.getLogger(__name__)


def current_patient(user) -> PatientProfile:
    patient = PatientProfile.objects.select_related('user').filter(user=user).first()
    if not patient:
        logger.warning('patient not found user=%s', user.id)
        raise NotFound('Patient not found')
    return patient


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def patient_profile(request):
    patient = current_patient(request.user)
    user = patient.user
    return Response({
        'success': True,
        'id': str(patient.id),
        'userId': str(user.id),
        'name': user.name,
        'email': user.email,
        'userType': user.role,
        'phone': user.phone or '123-456-7890',
        'dob': user.dob.isoformat() if user.dob else '1990-01-01',
        'gender': user.gender or 'Not Specified',
        'address': user.address or '123 Health St, City, Country',
        'bloodType': patient.blood_type or 'O+',
        'height': patient.height or '170 cm',
        'weight': patient.weight or '70 kg',
        'allergies': patient.allergies or [],
        'medicalHistory': patient.medical_history or [],
        'createdAt': patient.created_at.isoformat(),
    })


def _contact(contact: dict, contact_id: str) -> dict:
    return {
        'id': contact_id,
        'name': contact.get('name') or 'Unknown Contact',
        'relationship': contact.get('relationship') or 'Not Specified',
        'phone': contact.get('phone') or 'Not Provided',
        'email': contact.get('email') or 'Not Provided',
        'image': contact.get('image'),
        'isPrimary': bool(contact.get('isPrimary')),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def emergency_contacts(request):
    role = request.user.role
    if role == User.ROLE_ADMIN:
        contacts = []
        for patient in PatientProfile.objects.select_related('user').order_by('user__created_at'):
            for i, c in enumerate(patient.emergency_contacts or []):
                contacts.append({**_contact(c, f'contact-{patient.user_id}-{i}'), 'patientName': patient.user.name})
        logger.info('emergency contacts listed for admin user=%s count=%s', request.user.id, len(contacts))
        return Response(contacts)
    if role != User.ROLE_PATIENT:
        return Response([])

    patient = current_patient(request.user)
    return Response([_contact(c, f'contact-{i}') for i, c in enumerate(patient.emergency_contacts or [])])


def _record(record: MedicalRecord, with_patient: bool = False) -> dict:
    data = {
        'id': str(record.id),
        'title': record.title or f'{record.record_type} - {record.date:%Y-%m-%d}',
        'date': record.date.isoformat(),
        'provider': record.doctor.user.name if record.doctor else 'Unknown Provider',
        'type': record.record_type or 'Other',
        'description': record.description or 'No description provided',
        'fileType': record.file_type or 'pdf',
        'fileSize': record.file_size or '1.2 MB',
    }
    if with_patient:
        data['patientName'] = record.patient.user.name
    return data


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def medical_records(request):
    q = DateRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    start, end = q.validated_data.get('startDate'), q.validated_data.get('endDate')

    role = request.user.role
    if role not in (User.ROLE_ADMIN, User.ROLE_PATIENT):
        return Response([])

    qs = MedicalRecord.objects.select_related('doctor__user', 'patient__user')
    if role == User.ROLE_PATIENT:
        qs = qs.filter(patient=current_patient(request.user))
    if start:
        qs = qs.filter(date__date__gte=start)
    if end:
        qs = qs.filter(date__date__lte=end)
    records = [_record(r, with_patient=role == User.ROLE_ADMIN) for r in qs.order_by('-date')]
    return Response(records)
