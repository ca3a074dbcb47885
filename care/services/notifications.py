"""
Notification writer.

Builds :class:`Notification` rows for emergency contacts and responder
services and writes each batch with a single ``bulk_create``.  Nothing is
delivered here; a downstream worker picks up ``pending`` rows.  Write
failures are logged and reported as zero rows so dispatch never fails on
a notification.
"""
from __future__ import annotations

import logging
from typing import Iterable

from django.db import DatabaseError

from care.models import Emergency, Notification, PatientProfile

logger = logging.getLogger(__name__)


def _patient_name(patient: PatientProfile) -> str:
    return patient.user.name or patient.user.email


class NotificationWriter:
    def _write(self, rows: Iterable[Notification], *, kind: str, emergency_id) -> int:
        rows = list(rows)
        if not rows:
            return 0
        try:
            Notification.objects.bulk_create(rows)
        except DatabaseError:
            logger.exception('notification write failed kind=%s emergency=%s', kind, emergency_id)
            return 0
        return len(rows)

    def notify_contacts(self, patient: PatientProfile, emergency: Emergency, location: dict) -> int:
        contacts = [c for c in (patient.emergency_contacts or []) if isinstance(c, dict)]
        if not contacts:
            logger.info('no emergency contacts to notify patient=%s', patient.id)
            return 0
        name = _patient_name(patient)
        rows = [
            Notification(
                type='emergency',
                recipient_type='emergency_contact',
                recipient_id=str(c.get('id') or f'contact-{i}'),
                recipient_email=c.get('email') or '',
                recipient_phone=c.get('phone') or '',
                title='Emergency Alert',
                message=f'{name} has triggered an emergency alert.',
                data={
                    'patientId': str(patient.id),
                    'patientName': name,
                    'emergencyId': str(emergency.id),
                    'contactName': c.get('name') or '',
                    'location': location,
                },
            )
            for i, c in enumerate(contacts)
        ]
        return self._write(rows, kind='contacts', emergency_id=emergency.id)

    def notify_responder(self, ambulance_id: str, emergency: Emergency, patient: PatientProfile, location: dict) -> int:
        if not ambulance_id:
            logger.info('no ambulance assigned to notify emergency=%s', emergency.id)
            return 0
        name = _patient_name(patient)
        row = Notification(
            type='emergency_dispatch',
            recipient_type='ambulance',
            recipient_id=ambulance_id,
            title='Emergency Dispatch',
            message=f'New emergency dispatch for patient {name}',
            data={
                'patientId': str(patient.id),
                'patientName': name,
                'emergencyId': str(emergency.id),
                'hospitalId': emergency.assigned_hospital_id,
                'medicalHistory': patient.medical_history or [],
                'allergies': patient.allergies or [],
                'currentVitals': emergency.current_vitals,
                'location': location,
            },
        )
        return self._write([row], kind='responder', emergency_id=emergency.id)

    def notify_cancellation(self, emergency: Emergency) -> int:
        if not emergency.assigned_ambulance_id:
            return 0
        row = Notification(
            type='emergency_cancelled',
            recipient_type='ambulance',
            recipient_id=emergency.assigned_ambulance_id,
            title='Emergency Cancelled',
            message='The emergency dispatch has been cancelled.',
            data={
                'emergencyId': str(emergency.id),
                'patientId': str(emergency.patient_id),
                'reason': emergency.cancellation_reason,
            },
        )
        return self._write([row], kind='cancellation', emergency_id=emergency.id)
