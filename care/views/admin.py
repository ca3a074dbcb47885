"""
Administrator listings.

All three routes are gated by :class:`IsAdminRole`; DRF rejects other
roles before the view body runs, so no listing query is issued for them.
"""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import DoctorProfile, PatientProfile, User
from care.permissions import IsAdminRole

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def list_users(request):
    users = [
        {
            'id': str(u.id),
            'name': u.name,
            'email': u.email,
            'userType': u.role,
            'createdAt': u.created_at.isoformat(),
        }
        for u in User.objects.order_by('-created_at')
    ]
    logger.info('users listed by admin user=%s count=%s', request.user.id, len(users))
    return Response(users)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def list_patients(request):
    patients = [
        {
            'id': str(p.id),
            'userId': str(p.user_id),
            'name': p.user.name,
            'email': p.user.email,
            'userType': p.user.role,
            'medicalHistory': p.medical_history or [],
            'allergies': p.allergies or [],
            'emergencyContacts': p.emergency_contacts or [],
            'createdAt': p.created_at.isoformat(),
        }
        for p in PatientProfile.objects.select_related('user').order_by('-created_at')
    ]
    logger.info('patients listed by admin user=%s count=%s', request.user.id, len(patients))
    return Response(patients)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def list_doctors(request):
    doctors = [
        {
            'id': str(d.id),
            'userId': str(d.user_id),
            'name': d.user.name,
            'email': d.user.email,
            'userType': d.user.role,
            'specialization': d.specialization or 'General Practitioner',
            'licenseNumber': d.license_number or 'DOC123456',
            'hospitalAffiliation': d.hospital_affiliation or 'City Hospital',
            'yearsOfExperience': d.years_of_experience if d.years_of_experience is not None else 10,
            'createdAt': d.created_at.isoformat(),
        }
        for d in DoctorProfile.objects.select_related('user').order_by('-created_at')
    ]
    logger.info('doctors listed by admin user=%s count=%s', request.user.id, len(doctors))
    return Response(doctors)
