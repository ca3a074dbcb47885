"""
Emergency endpoints.

Thin adapters over :class:`care.services.dispatch.EmergencyDispatcher`:
validate the body, resolve the caller, hand over to the dispatcher and
shape its result.  The QR route is public so a bystander can scan a
patient's card.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from care.models import Emergency
from care.permissions import IsPatientRole
from care.serializers.emergency import CancelSerializer, QrTriggerSerializer, StatusQuerySerializer, TriggerSerializer
from care.services.dispatch import (
    QR_DEFAULT_NOTE,
    DispatchResult,
    EmergencyNotFound,
    PatientNotFound,
    get_dispatcher,
)


def _dispatch_payload(result: DispatchResult, *, with_patient: bool = False) -> dict:
    e = result.emergency
    data = {
        'id': str(e.id),
        'status': e.status,
        'location': e.location,
        'hospitalId': e.assigned_hospital_id,
        'hospitalName': e.assigned_hospital_name,
        'ambulanceId': e.assigned_ambulance_id,
        'estimatedAmbulanceArrival': e.estimated_arrival,
    }
    if with_patient:
        data['patientName'] = result.patient.user.name
    return {'success': True, 'emergency': data}


def _patient_for(dispatcher, user):
    try:
        return dispatcher.patient_for_user(user)
    except PatientNotFound as e:
        raise NotFound(str(e))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def trigger_emergency(request):
    s = TriggerSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    dispatcher = get_dispatcher()
    patient = _patient_for(dispatcher, request.user)
    result = dispatcher.trigger(
        patient,
        latitude=v['location']['latitude'],
        longitude=v['location']['longitude'],
        notes=v['notes'],
        vitals=v.get('currentVitals'),
    )
    return Response(_dispatch_payload(result), status=201)

trigger_emergency.cls.throttle_scope = 'emergency'


@api_view(['POST'])
@permission_classes([AllowAny])
def trigger_emergency_by_qr(request):
    s = QrTriggerSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    dispatcher = get_dispatcher()
    try:
        patient = dispatcher.patient_for_code(v['patientCode'])
    except PatientNotFound as e:
        raise NotFound(str(e))
    result = dispatcher.trigger(
        patient,
        latitude=v['location']['latitude'],
        longitude=v['location']['longitude'],
        notes=v['notes'] or QR_DEFAULT_NOTE,
        vitals=v.get('currentVitals'),
        triggered_by=Emergency.TRIGGER_QR,
    )
    return Response(_dispatch_payload(result, with_patient=True), status=201)

trigger_emergency_by_qr.cls.throttle_scope = 'emergency'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def emergency_status(request):
    q = StatusQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    dispatcher = get_dispatcher()
    patient = _patient_for(dispatcher, request.user)
    emergencies = dispatcher.status(
        patient, emergency_id=q.validated_data.get('emergencyId'), status=q.validated_data.get('status'),
    )
    if q.validated_data.get('emergencyId') and not emergencies:
        raise NotFound('Emergency not found')
    return Response({
        'success': True,
        'active': any(e['status'] == Emergency.STATUS_ACTIVE for e in emergencies),
        'emergencies': emergencies,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def cancel_emergency(request):
    s = CancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    dispatcher = get_dispatcher()
    patient = _patient_for(dispatcher, request.user)
    try:
        emergency = dispatcher.cancel(patient, s.validated_data['emergencyId'], s.validated_data['reason'])
    except EmergencyNotFound as e:
        raise NotFound(str(e))
    return Response({
        'success': True,
        'message': 'Emergency cancelled successfully',
        'emergency': {
            'id': str(emergency.id),
            'status': emergency.status,
            'cancelledAt': emergency.cancelled_at.isoformat(),
            'cancellationReason': emergency.cancellation_reason,
        },
    })
