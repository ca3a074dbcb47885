"""
Emergency dispatch: trigger, QR trigger, status and cancel.

The predictor is replaced by a client over a fake HTTP session so each
test decides whether the ML service answers, fails or times out.
"""
import uuid

import pytest
import requests
from django.db import DatabaseError
from django.urls import reverse

from care.models import Alert, Emergency, Hospital, Notification, PatientProfile, VitalReading
from care.services.dispatch import EmergencyDispatcher
from care.services.notifications import NotificationWriter
from care.services.predictor import fallback_assignment
from care.tests.conftest import FakeSession, as_user, make_user

pytestmark = pytest.mark.django_db

BODY = {'location': {'latitude': 40.0, 'longitude': -73.0}}
ML_OK = {'hospitalId': 'hosp-1', 'hospitalName': 'Riverside', 'ambulanceId': 'amb-7',
         'estimatedArrivalTime': '6 minutes'}


def test_trigger_creates_active_emergency_with_assignment(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    r = as_user(patient_user).post(reverse('trigger_emergency'), BODY, format='json')
    assert r.status_code == 201
    e = r.data['emergency']
    assert r.data['success'] is True
    assert e['status'] == 'active'
    assert e['hospitalId'] == 'hosp-1' and e['hospitalName'] == 'Riverside'
    assert e['ambulanceId'] == 'amb-7' and e['estimatedAmbulanceArrival'] == '6 minutes'
    assert e['location'] == {'latitude': 40.0, 'longitude': -73.0}

    row = Emergency.objects.get(id=e['id'])
    assert row.status == Emergency.STATUS_ACTIVE
    assert row.triggered_by == Emergency.TRIGGER_PATIENT
    assert row.assigned_hospital_id and row.assigned_ambulance_id


def test_trigger_survives_predictor_http_500(patient_user, use_predictor):
    use_predictor(FakeSession(status=500, payload={'error': 'boom'}))
    r = as_user(patient_user).post(reverse('trigger_emergency'), BODY, format='json')
    assert r.status_code == 201
    assert r.data['emergency']['hospitalName'] == 'General Hospital'
    assert r.data['emergency']['ambulanceId'] == 'fallback-ambulance'
    assert Emergency.objects.filter(assigned_hospital_id='fallback-hospital').count() == 1


def test_trigger_survives_predictor_timeout(patient_user, use_predictor):
    session = use_predictor(FakeSession(exc=requests.Timeout('slow'))).session
    r = as_user(patient_user).post(reverse('trigger_emergency'), BODY, format='json')
    assert r.status_code == 201
    assert r.data['emergency']['estimatedAmbulanceArrival'] == '15 minutes'
    assert session.calls[0]['timeout'] == 2.0


def test_patient_without_contacts_gets_only_responder_notification(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    r = as_user(patient_user).post(reverse('trigger_emergency'), BODY, format='json')
    assert r.status_code == 201
    assert Emergency.objects.filter(patient__user=patient_user).count() == 1
    assert Notification.objects.filter(recipient_type='emergency_contact').count() == 0
    dispatch = Notification.objects.filter(recipient_type='ambulance')
    assert dispatch.count() == 1
    n = dispatch.get()
    assert n.type == 'emergency_dispatch' and n.recipient_id == 'amb-7' and n.status == 'pending'
    assert n.data['emergencyId'] == r.data['emergency']['id']
    assert Alert.objects.filter(user=patient_user, type='emergency').count() == 1


def test_one_notification_per_contact(use_predictor):
    user = make_user('p2@example.com', 'patient', emergency_contacts=[
        {'name': 'Ann', 'phone': '555-1', 'relationship': 'Sister', 'isPrimary': True},
        {'name': 'Bob', 'phone': '555-2', 'relationship': 'Friend'},
    ])
    use_predictor(FakeSession(payload=ML_OK))
    r = as_user(user).post(reverse('trigger_emergency'), BODY, format='json')
    assert r.status_code == 201
    contacts = Notification.objects.filter(recipient_type='emergency_contact').order_by('recipient_id')
    assert [n.recipient_id for n in contacts] == ['contact-0', 'contact-1']
    assert {n.recipient_phone for n in contacts} == {'555-1', '555-2'}


def test_every_trigger_creates_a_new_row(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    c = as_user(patient_user)
    ids = {c.post(reverse('trigger_emergency'), BODY, format='json').data['emergency']['id'] for _ in range(2)}
    assert len(ids) == 2
    assert Emergency.objects.filter(status='active').count() == 2


def test_vitals_snapshot_uses_supplied_then_latest_stored(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    c = as_user(patient_user)
    vitals = [{'type': 'heart_rate', 'value': '130', 'unit': 'bpm', 'timestamp': '2024-03-01T10:00:00Z'}]
    r = c.post(reverse('trigger_emergency'), {**BODY, 'currentVitals': vitals}, format='json')
    snap = Emergency.objects.get(id=r.data['emergency']['id']).current_vitals
    assert snap[0]['type'] == 'heart_rate' and snap[0]['value'] == '130'

    patient = PatientProfile.objects.get(user=patient_user)
    VitalReading.objects.create(patient=patient, type='oxygen_level', value='91', unit='%',
                                timestamp='2024-03-02T08:00:00Z')
    r = c.post(reverse('trigger_emergency'), BODY, format='json')
    snap = Emergency.objects.get(id=r.data['emergency']['id']).current_vitals
    assert snap[0]['type'] == 'oxygen_level' and snap[0]['value'] == '91'


@pytest.mark.parametrize('body', [
    {},
    {'location': {'latitude': 40.0}},
    {'location': {'latitude': 'north', 'longitude': -73.0}},
    {'location': {'latitude': 95.0, 'longitude': -73.0}},
    {**BODY, 'notes': 'x' * 501},
    {**BODY, 'currentVitals': [{'type': 'heart_rate', 'value': '80'}]},
    {'location': {'latitude': True, 'longitude': -73.0}},
    {'location': {'latitude': '40.0', 'longitude': -73.0}},
])
def test_invalid_trigger_is_rejected_before_any_call(patient_user, use_predictor, body):
    session = use_predictor(FakeSession(payload=ML_OK)).session
    r = as_user(patient_user).post(reverse('trigger_emergency'), body, format='json')
    assert r.status_code == 400
    assert 'error' in r.data
    assert session.calls == []
    assert Emergency.objects.count() == 0


def test_trigger_requires_patient_role(doctor_user):
    r = as_user(doctor_user).post(reverse('trigger_emergency'), BODY, format='json')
    assert r.status_code == 403


def test_trigger_requires_credentials(client):
    r = client.post(reverse('trigger_emergency'), BODY, format='json')
    assert r.status_code == 401


def test_qr_trigger_is_public_and_uses_default_note(client, patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    code = str(PatientProfile.objects.get(user=patient_user).id)
    r = client.post(reverse('trigger_emergency_by_qr'), {**BODY, 'patientCode': code}, format='json')
    assert r.status_code == 201
    assert r.data['emergency']['patientName'] == 'Pat One'
    row = Emergency.objects.get(id=r.data['emergency']['id'])
    assert row.triggered_by == Emergency.TRIGGER_QR
    assert row.notes == 'Triggered via QR code - patient may be unconscious'


def test_qr_trigger_rejects_malformed_and_unknown_codes(client, db):
    r = client.post(reverse('trigger_emergency_by_qr'), {**BODY, 'patientCode': 'not-a-uuid'}, format='json')
    assert r.status_code == 400
    r = client.post(reverse('trigger_emergency_by_qr'), {**BODY, 'patientCode': str(uuid.uuid4())}, format='json')
    assert r.status_code == 404
    assert r.data['error'] == 'Invalid patient code'


def test_cancel_twice_second_is_not_found(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    c = as_user(patient_user)
    eid = c.post(reverse('trigger_emergency'), BODY, format='json').data['emergency']['id']

    first = c.post(reverse('cancel_emergency'), {'emergencyId': eid, 'reason': 'False alarm'}, format='json')
    assert first.status_code == 200
    assert first.data['emergency']['status'] == 'cancelled'
    cancelled_at = Emergency.objects.get(id=eid).cancelled_at

    second = c.post(reverse('cancel_emergency'), {'emergencyId': eid}, format='json')
    assert second.status_code == 404
    assert second.data['error'] == 'Active emergency not found'
    row = Emergency.objects.get(id=eid)
    assert row.status == Emergency.STATUS_CANCELLED
    assert row.cancelled_at == cancelled_at
    assert row.cancellation_reason == 'False alarm'
    assert Notification.objects.filter(type='emergency_cancelled').count() == 1


def test_cancel_defaults_reason(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    c = as_user(patient_user)
    eid = c.post(reverse('trigger_emergency'), BODY, format='json').data['emergency']['id']
    c.post(reverse('cancel_emergency'), {'emergencyId': eid}, format='json')
    assert Emergency.objects.get(id=eid).cancellation_reason == 'Cancelled by patient'


def test_cannot_cancel_someone_elses_emergency(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    eid = as_user(patient_user).post(reverse('trigger_emergency'), BODY, format='json').data['emergency']['id']
    other = make_user('p3@example.com', 'patient')
    r = as_user(other).post(reverse('cancel_emergency'), {'emergencyId': eid}, format='json')
    assert r.status_code == 404
    assert Emergency.objects.get(id=eid).status == Emergency.STATUS_ACTIVE


def test_status_lists_emergencies_with_directory_data(patient_user, use_predictor):
    Hospital.objects.create(id='hosp-1', name='Riverside Medical', address='200 River Rd')
    use_predictor(FakeSession(payload=ML_OK))
    c = as_user(patient_user)
    eid = c.post(reverse('trigger_emergency'), BODY, format='json').data['emergency']['id']

    r = c.get(reverse('emergency_status'))
    assert r.status_code == 200
    assert r.data['active'] is True
    item = r.data['emergencies'][0]
    assert item['id'] == eid
    assert item['hospital'] == {'id': 'hosp-1', 'name': 'Riverside Medical', 'address': '200 River Rd'}
    assert item['ambulance']['id'] == 'amb-7'
    assert item['ambulance']['estimatedArrival'] == '6 minutes'

    r = c.get(reverse('emergency_status'), {'emergencyId': str(uuid.uuid4())})
    assert r.status_code == 404
    r = c.get(reverse('emergency_status'), {'emergencyId': 'abc'})
    assert r.status_code == 400


def test_insert_failure_returns_500(patient_user, monkeypatch):
    def broken_create(**kwargs):
        raise DatabaseError('disk full')

    monkeypatch.setattr(Emergency.objects, 'create', broken_create)
    r = as_user(patient_user).post(reverse('trigger_emergency'), BODY, format='json')
    assert r.status_code == 500
    assert r.data['error'] == 'Failed to trigger emergency'


def test_notification_failure_does_not_abort_dispatch(patient_user, monkeypatch):
    def broken_bulk_create(rows, *args, **kwargs):
        raise DatabaseError('notifications table locked')

    monkeypatch.setattr(Notification.objects, 'bulk_create', broken_bulk_create)

    class StubPredictor:
        def find_nearest_resources(self, latitude, longitude):
            return fallback_assignment()

    dispatcher = EmergencyDispatcher(predictor=StubPredictor(), notifier=NotificationWriter())
    patient = dispatcher.patient_for_user(patient_user)
    result = dispatcher.trigger(patient, latitude=40.0, longitude=-73.0)
    assert result.responders_notified == 0
    assert Emergency.objects.filter(id=result.emergency.id, status='active').exists()


def test_empty_vitals_snapshot_is_kept_as_sent(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    patient = PatientProfile.objects.get(user=patient_user)
    VitalReading.objects.create(patient=patient, type='heart_rate', value='70', unit='bpm',
                                timestamp='2024-03-02T08:00:00Z')
    r = as_user(patient_user).post(reverse('trigger_emergency'), {**BODY, 'currentVitals': []}, format='json')
    assert r.status_code == 201
    assert Emergency.objects.get(id=r.data['emergency']['id']).current_vitals == []


def test_notes_are_stored_as_typed_without_markup(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    c = as_user(patient_user)
    r = c.post(reverse('trigger_emergency'), {**BODY, 'notes': '<i>chest pain</i> & BP < 90'}, format='json')
    assert Emergency.objects.get(id=r.data['emergency']['id']).notes == 'chest pain & BP < 90'
    assert c.get(reverse('emergency_status')).data['emergencies'][0]['notes'] == 'chest pain & BP < 90'


def test_cancel_reason_stays_within_column_width(patient_user, use_predictor):
    use_predictor(FakeSession(payload=ML_OK))
    c = as_user(patient_user)
    eid = c.post(reverse('trigger_emergency'), BODY, format='json').data['emergency']['id']
    r = c.post(reverse('cancel_emergency'), {'emergencyId': eid, 'reason': '&' * 500}, format='json')
    assert r.status_code == 200
    reason = Emergency.objects.get(id=eid).cancellation_reason
    assert reason == '&' * 500
    assert len(reason) <= Emergency._meta.get_field('cancellation_reason').max_length
