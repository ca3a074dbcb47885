"""
Vital sign readings.

Patients read and append their own readings; doctors and admins address
a patient explicitly with ``patientId``.  Every appended reading is run
through the predictor's anomaly detector and each anomaly becomes an
``anomaly`` alert for the patient.
"""
from __future__ import annotations

import logging

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import Alert, PatientProfile, User, VitalReading
from care.serializers.clinical import VitalCreateSerializer, VitalsQuerySerializer
from care.services.predictor import get_predictor

logger = logging.getLogger(__name__)


def resolve_patient(user, patient_id=None) -> PatientProfile:
    """Patient addressed by the request, scoped by the caller's role."""
    if user.role == User.ROLE_PATIENT:
        patient = PatientProfile.objects.select_related('user').filter(user=user).first()
        if not patient:
            raise NotFound('Patient not found')
        if patient_id and str(patient.id).lower() != patient_id.lower():
            raise PermissionDenied('Not authorized to access this patient')
        return patient
    if not patient_id:
        raise ValidationError({'patientId': ['Patient ID is required']})
    patient = PatientProfile.objects.select_related('user').filter(id=patient_id).first()
    if not patient:
        raise NotFound('Patient not found')
    return patient


def vital_payload(v: VitalReading) -> dict:
    return {
        'id': str(v.id),
        'patientId': str(v.patient_id),
        'type': v.type,
        'value': v.value,
        'unit': v.unit,
        'trend': v.trend,
        'timestamp': v.timestamp.isoformat(),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vitals(request):
    if request.method == 'POST':
        return _record_vital(request)

    q = VitalsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    v = q.validated_data
    patient = resolve_patient(request.user, v.get('patientId'))

    qs = VitalReading.objects.filter(patient=patient)
    if v.get('type'):
        qs = qs.filter(type=v['type'])
    if v.get('startDate'):
        qs = qs.filter(timestamp__date__gte=v['startDate'])
    if v.get('endDate'):
        qs = qs.filter(timestamp__date__lte=v['endDate'])
    readings = [vital_payload(r) for r in qs.order_by('-timestamp')[:v['limit']]]
    return Response({'success': True, 'vitals': readings})


def _record_vital(request):
    if request.user.role not in (User.ROLE_PATIENT, User.ROLE_DOCTOR):
        raise PermissionDenied('Not authorized to record vitals')
    s = VitalCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    patient = resolve_patient(request.user, v.get('patientId'))

    reading = VitalReading.objects.create(
        patient=patient,
        type=v['type'],
        value=v['value'],
        unit=v['unit'],
        trend=v['trend'],
        timestamp=v.get('timestamp') or timezone.now(),
    )
    payload = vital_payload(reading)
    anomalies = get_predictor().detect_anomalies([payload])
    alerts = [
        Alert(
            user=patient.user,
            type='anomaly',
            title=f'Abnormal {reading.type.replace("_", " ")}',
            message=f'Anomaly detected in {a.get("type") or reading.type}: '
                    f'{a.get("value", reading.value)} {a.get("unit", reading.unit)}'.strip(),
            severity=a.get('severity') or 'high',
        )
        for a in anomalies
    ]
    if alerts:
        Alert.objects.bulk_create(alerts)
    logger.info('vital recorded id=%s patient=%s type=%s anomalies=%s',
                reading.id, patient.id, reading.type, len(alerts))
    return Response({'success': True, 'vital': payload, 'anomalies': len(alerts)}, status=201)
