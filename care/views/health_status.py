"""
Health status verdict from the external predictor.

Collects the patient's recent vitals and records plus history and
allergies, and asks the predictor for a risk assessment.  When the
predictor is unavailable the response carries the ``Unknown`` fallback.
"""
from __future__ import annotations

import logging

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import MedicalRecord, User, VitalReading
from care.permissions import HasAnyRole
from care.serializers.clinical import HealthStatusQuerySerializer
from care.services.predictor import get_predictor
from care.views.vitals import resolve_patient

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasAnyRole(User.ROLE_PATIENT, User.ROLE_DOCTOR, User.ROLE_ADMIN)])
def health_status(request):
    q = HealthStatusQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    patient = resolve_patient(request.user, q.validated_data.get('patientId'))

    vitals = VitalReading.objects.filter(patient=patient).order_by('-timestamp')[:10]
    records = MedicalRecord.objects.filter(patient=patient).order_by('-date')[:5]
    health_data = {
        'vitals': [
            {'type': v.type, 'value': v.value, 'unit': v.unit, 'timestamp': v.timestamp.isoformat()}
            for v in vitals
        ],
        'medicalHistory': patient.medical_history or [],
        'allergies': patient.allergies or [],
        'recentRecords': [
            {'type': r.record_type, 'description': r.description, 'date': r.date.isoformat()}
            for r in records
        ],
    }
    verdict = get_predictor().predict_health_risk(health_data)
    logger.info('health status evaluated patient=%s risk=%s', patient.id, verdict['riskLevel'])
    return Response({
        'success': True,
        'healthStatus': {
            'status': verdict['status'],
            'riskLevel': verdict['riskLevel'],
            'summary': verdict['summary'],
            'recommendations': verdict['recommendations'],
            'lastEvaluated': timezone.now().isoformat(),
        },
    })
