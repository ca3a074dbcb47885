"""
Emergency dispatch workflow.

Turns a trigger (explicit patient call or QR-code scan) into a persisted
:class:`Emergency` with assigned responders and pending notifications:

1. resolve the patient profile
2. ask the predictor for the nearest hospital/ambulance (never blocks:
   the client falls back to a placeholder assignment)
3. insert the emergency row
4. write contact and responder notifications (best effort)

Steps run in order without a surrounding transaction.  Once the
emergency row exists it stays, whatever happens to the notifications.
Every trigger creates a new row, even when the patient already has an
active emergency.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import DatabaseError
from django.utils import timezone

from care.exceptions import UpstreamError
from care.models import Alert, Ambulance, Emergency, Hospital, PatientProfile, VitalReading
from care.services.notifications import NotificationWriter
from care.services.predictor import PredictorClient, ResourceAssignment, get_predictor

logger = logging.getLogger(__name__)

QR_DEFAULT_NOTE = 'Triggered via QR code - patient may be unconscious'
DEFAULT_CANCEL_REASON = 'Cancelled by patient'


class PatientNotFound(LookupError):
    pass


class EmergencyNotFound(LookupError):
    pass


@dataclass
class DispatchResult:
    emergency: Emergency
    assignment: ResourceAssignment
    patient: PatientProfile
    contacts_notified: int = 0
    responders_notified: int = 0


def _vital_snapshot(reading: VitalReading) -> dict:
    return {
        'type': reading.type,
        'value': reading.value,
        'unit': reading.unit,
        'timestamp': reading.timestamp.isoformat(),
    }


class EmergencyDispatcher:
    def __init__(self, predictor: PredictorClient, notifier: NotificationWriter):
        self.predictor = predictor
        self.notifier = notifier

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------
    def patient_for_user(self, user) -> PatientProfile:
        patient = PatientProfile.objects.select_related('user').filter(user=user).first()
        if not patient:
            raise PatientNotFound('Patient not found')
        return patient

    def patient_for_code(self, code) -> PatientProfile:
        patient = PatientProfile.objects.select_related('user').filter(id=code).first()
        if not patient:
            raise PatientNotFound('Invalid patient code')
        return patient

    # ------------------------------------------------------------------
    # trigger
    # ------------------------------------------------------------------
    def trigger(self, patient: PatientProfile, *, latitude: float, longitude: float,
                notes: str = '', vitals: Optional[list] = None,
                triggered_by: str = Emergency.TRIGGER_PATIENT) -> DispatchResult:
        location = {'latitude': latitude, 'longitude': longitude}

        assignment = self.predictor.find_nearest_resources(latitude, longitude)

        if vitals is not None:
            snapshot = vitals
        else:
            latest = VitalReading.objects.filter(patient=patient).order_by('-timestamp').first()
            snapshot = [_vital_snapshot(latest)] if latest else None

        try:
            emergency = Emergency.objects.create(
                patient=patient,
                latitude=latitude,
                longitude=longitude,
                status=Emergency.STATUS_ACTIVE,
                triggered_by=triggered_by,
                notes=notes or '',
                current_vitals=snapshot,
                assigned_hospital_id=assignment.hospital_id,
                assigned_hospital_name=assignment.hospital_name,
                assigned_ambulance_id=assignment.ambulance_id,
                estimated_arrival=assignment.estimated_arrival_time,
            )
        except DatabaseError as e:
            logger.exception('emergency insert failed patient=%s', patient.id)
            raise UpstreamError('Failed to trigger emergency') from e

        logger.info(
            'emergency triggered id=%s patient=%s by=%s hospital=%s ambulance=%s fallback=%s',
            emergency.id, patient.id, triggered_by, assignment.hospital_id,
            assignment.ambulance_id, assignment.fallback,
        )

        result = DispatchResult(emergency=emergency, assignment=assignment, patient=patient)
        result.contacts_notified = self.notifier.notify_contacts(patient, emergency, location)
        result.responders_notified = self.notifier.notify_responder(
            assignment.ambulance_id, emergency, patient, location
        )
        self._record_alert(patient, emergency, assignment)
        return result

    def _record_alert(self, patient: PatientProfile, emergency: Emergency, assignment: ResourceAssignment) -> None:
        try:
            Alert.objects.create(
                user=patient.user,
                type='emergency',
                title='Emergency triggered',
                message=f'Help is on the way from {assignment.hospital_name or "the nearest hospital"}.',
                severity='high',
            )
        except DatabaseError:
            logger.exception('emergency alert write failed emergency=%s', emergency.id)

    # ------------------------------------------------------------------
    # cancel
    # ------------------------------------------------------------------
    def cancel(self, patient: PatientProfile, emergency_id, reason: str = '') -> Emergency:
        """Move an owned active emergency to ``cancelled``.

        A single conditional UPDATE; a foreign, unknown or already
        cancelled emergency matches no row.
        """
        updated = Emergency.objects.filter(
            id=emergency_id, patient=patient, status=Emergency.STATUS_ACTIVE,
        ).update(
            status=Emergency.STATUS_CANCELLED,
            cancelled_at=timezone.now(),
            cancellation_reason=reason or DEFAULT_CANCEL_REASON,
        )
        if not updated:
            raise EmergencyNotFound('Active emergency not found')
        emergency = Emergency.objects.get(id=emergency_id)
        logger.info('emergency cancelled id=%s patient=%s', emergency.id, patient.id)
        self.notifier.notify_cancellation(emergency)
        return emergency

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------
    def status(self, patient: PatientProfile, *, emergency_id=None, status: Optional[str] = None) -> list[dict]:
        qs = Emergency.objects.filter(patient=patient)
        if emergency_id:
            qs = qs.filter(id=emergency_id)
        if status:
            qs = qs.filter(status=status)
        emergencies = list(qs.order_by('-triggered_at'))

        hospitals = Hospital.objects.in_bulk({e.assigned_hospital_id for e in emergencies if e.assigned_hospital_id})
        ambulances = Ambulance.objects.in_bulk({e.assigned_ambulance_id for e in emergencies if e.assigned_ambulance_id})
        return [serialize_emergency(e, hospitals.get(e.assigned_hospital_id), ambulances.get(e.assigned_ambulance_id))
                for e in emergencies]


def serialize_emergency(e: Emergency, hospital: Optional[Hospital] = None, ambulance: Optional[Ambulance] = None) -> dict:
    return {
        'id': str(e.id),
        'status': e.status,
        'location': e.location,
        'triggeredAt': e.triggered_at.isoformat() if e.triggered_at else None,
        'triggeredBy': e.triggered_by,
        'notes': e.notes,
        'currentVitals': e.current_vitals,
        'hospital': {
            'id': e.assigned_hospital_id or None,
            'name': hospital.name if hospital else (e.assigned_hospital_name or None),
            'address': hospital.address if hospital else None,
        },
        'ambulance': {
            'id': e.assigned_ambulance_id or None,
            'name': ambulance.name if ambulance else None,
            'currentLocation': ambulance.current_location if ambulance else None,
            'estimatedArrival': (ambulance.estimated_arrival_time if ambulance and ambulance.estimated_arrival_time
                                 else e.estimated_arrival or None),
        },
        'cancelledAt': e.cancelled_at.isoformat() if e.cancelled_at else None,
        'cancellationReason': e.cancellation_reason or None,
    }


def get_dispatcher() -> EmergencyDispatcher:
    """Wire a dispatcher with collaborators built from current settings."""
    return EmergencyDispatcher(predictor=get_predictor(), notifier=NotificationWriter())
