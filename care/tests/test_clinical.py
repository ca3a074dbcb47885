import uuid
from datetime import datetime, timezone as dt_timezone

import pytest
from django.urls import reverse

from care.models import Alert, DoctorNote, DoctorProfile, MedicalRecord, PatientProfile, VitalReading
from care.tests.conftest import FakeSession, as_user, make_user

pytestmark = pytest.mark.django_db


def ts(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


@pytest.fixture
def january_vitals(patient_user):
    patient = PatientProfile.objects.get(user=patient_user)
    for moment, value in [
        (ts(2023, 12, 31, 23, 59, 59), '61'),
        (ts(2024, 1, 1, 0, 0, 0), '62'),
        (ts(2024, 1, 15, 12, 0, 0), '63'),
        (ts(2024, 1, 31, 23, 59, 59), '64'),
        (ts(2024, 2, 1, 0, 0, 0), '65'),
    ]:
        VitalReading.objects.create(patient=patient, type='heart_rate', value=value, unit='bpm', timestamp=moment)
    return patient


def test_vitals_date_range_is_inclusive(patient_user, january_vitals):
    r = as_user(patient_user).get(reverse('vitals'), {'startDate': '2024-01-01', 'endDate': '2024-01-31'})
    assert r.status_code == 200
    values = [v['value'] for v in r.data['vitals']]
    assert values == ['64', '63', '62']
    for v in r.data['vitals']:
        assert '2024-01-01' <= v['timestamp'][:10] <= '2024-01-31'


@pytest.mark.parametrize('params', [
    {'startDate': '2024/01/01'},
    {'endDate': '20240131'},
    {'startDate': '2024-02-30'},
    {'startDate': '2024-02-01', 'endDate': '2024-01-01'},
    {'type': 'mood'},
    {'patientId': '1234'},
])
def test_vitals_query_validation(patient_user, params):
    r = as_user(patient_user).get(reverse('vitals'), params)
    assert r.status_code == 400


def test_doctor_reads_vitals_by_patient_id(doctor_user, january_vitals):
    c = as_user(doctor_user)
    assert c.get(reverse('vitals')).status_code == 400
    r = c.get(reverse('vitals'), {'patientId': str(january_vitals.id), 'type': 'heart_rate'})
    assert r.status_code == 200 and len(r.data['vitals']) == 5
    assert c.get(reverse('vitals'), {'patientId': str(uuid.uuid4())}).status_code == 404


def test_patient_cannot_read_other_patient_vitals(patient_user):
    other = make_user('p4@example.com', 'patient')
    pid = str(PatientProfile.objects.get(user=other).id)
    assert as_user(patient_user).get(reverse('vitals'), {'patientId': pid}).status_code == 403


def test_post_vital_writes_anomaly_alerts(patient_user, use_predictor):
    session = use_predictor(FakeSession(payload={'anomalies': [
        {'type': 'heart_rate', 'value': '180', 'unit': 'bpm', 'severity': 'high'},
    ]})).session
    r = as_user(patient_user).post(reverse('vitals'), {'type': 'heart_rate', 'value': '180', 'unit': 'bpm'},
                                   format='json')
    assert r.status_code == 201
    assert r.data['anomalies'] == 1
    assert session.calls[0]['url'] == 'http://ml.test/anomalies'
    alert = Alert.objects.get(user=patient_user, type='anomaly')
    assert '180' in alert.message


def test_post_vital_admin_forbidden(admin_user):
    r = as_user(admin_user).post(reverse('vitals'), {'type': 'heart_rate', 'value': '80'}, format='json')
    assert r.status_code == 403


def test_alerts_list_and_create(patient_user, doctor_user):
    Alert.objects.create(user=patient_user, type='system', title='Welcome')
    r = as_user(doctor_user).post(reverse('alerts'), {
        'userId': str(patient_user.id), 'type': 'system', 'title': '<b>Check in</b>', 'severity': 'low',
    }, format='json')
    assert r.status_code == 201
    assert r.data['alert']['title'] == 'Check in'

    listing = as_user(patient_user).get(reverse('alerts'), {'type': 'system'})
    assert listing.status_code == 200
    assert {a['title'] for a in listing.data['alerts']} == {'Welcome', 'Check in'}


def test_patient_cannot_create_alert(patient_user):
    r = as_user(patient_user).post(reverse('alerts'), {'userId': str(patient_user.id), 'title': 'x'}, format='json')
    assert r.status_code == 403


def test_health_status_falls_back_when_predictor_down(patient_user, use_predictor):
    use_predictor(FakeSession(status=500, payload={}))
    r = as_user(patient_user).get(reverse('health_status'))
    assert r.status_code == 200
    assert r.data['healthStatus']['riskLevel'] == 'Unknown'
    assert r.data['healthStatus']['summary'] == 'Failed to predict health risks'


def test_health_status_passes_verdict_through(patient_user, use_predictor):
    use_predictor(FakeSession(payload={'status': 'Stable', 'riskLevel': 'Low', 'recommendations': ['Walk']}))
    r = as_user(patient_user).get(reverse('health_status'))
    assert r.data['healthStatus']['riskLevel'] == 'Low'
    assert r.data['healthStatus']['recommendations'] == ['Walk']


def test_doctor_notes_create_and_list(doctor_user, patient_user):
    pid = str(PatientProfile.objects.get(user=patient_user).id)
    c = as_user(doctor_user)
    r = c.post(reverse('doctor_notes'), {'patientId': pid, 'note': 'Stable <script>x</script>'}, format='json')
    assert r.status_code == 201
    assert '<script>' not in r.data['note']['note']

    listing = c.get(reverse('doctor_notes'), {'patientId': pid})
    assert listing.status_code == 200
    assert listing.data['notes'][0]['patient']['name'] == 'Pat One'


def test_doctor_note_validation(doctor_user, patient_user):
    pid = str(PatientProfile.objects.get(user=patient_user).id)
    c = as_user(doctor_user)
    assert c.post(reverse('doctor_notes'), {'patientId': 'bad', 'note': 'x'}, format='json').status_code == 400
    long = c.post(reverse('doctor_notes'), {'patientId': pid, 'note': 'x' * 1001}, format='json')
    assert long.status_code == 400
    assert 'max length of 1000' in long.data['error']
    missing = c.post(reverse('doctor_notes'), {'patientId': str(uuid.uuid4()), 'note': 'x'}, format='json')
    assert missing.status_code == 404
    assert DoctorNote.objects.count() == 0


def test_notes_are_doctor_only(patient_user):
    assert as_user(patient_user).get(reverse('doctor_notes')).status_code == 403


def test_patient_profile_defaults(patient_user):
    r = as_user(patient_user).get(reverse('patient_profile'))
    assert r.status_code == 200
    assert r.data['bloodType'] == 'O+'
    assert r.data['height'] == '170 cm'
    assert r.data['gender'] == 'Not Specified'


def test_doctor_profile_defaults(doctor_user):
    r = as_user(doctor_user).get(reverse('doctor_profile'))
    assert r.status_code == 200
    assert r.data['specialization'] == 'General Practitioner'
    assert r.data['hospitalAffiliation'] == 'City Hospital'


def test_emergency_contacts_by_role(admin_user, doctor_user):
    user = make_user('p2@example.com', 'patient', name='Pat Two',
                     emergency_contacts=[{'name': 'Ann', 'phone': '555-1'}])
    own = as_user(user).get(reverse('emergency_contacts'))
    assert own.data == [{'id': 'contact-0', 'name': 'Ann', 'relationship': 'Not Specified', 'phone': '555-1',
                         'email': 'Not Provided', 'image': None, 'isPrimary': False}]
    everyone = as_user(admin_user).get(reverse('emergency_contacts'))
    assert everyone.data[0]['patientName'] == 'Pat Two'
    assert as_user(doctor_user).get(reverse('emergency_contacts')).data == []


def test_medical_records_date_filter(patient_user, doctor_user):
    patient = PatientProfile.objects.get(user=patient_user)
    doctor = DoctorProfile.objects.get(user=doctor_user)
    MedicalRecord.objects.create(patient=patient, doctor=doctor, record_type='Lab', date=ts(2024, 1, 10))
    MedicalRecord.objects.create(patient=patient, record_type='Imaging', date=ts(2024, 3, 10))
    r = as_user(patient_user).get(reverse('medical_records'), {'startDate': '2024-01-01', 'endDate': '2024-01-31'})
    assert r.status_code == 200
    assert len(r.data) == 1
    assert r.data[0]['title'] == 'Lab - 2024-01-10'
    assert r.data[0]['provider'] == 'Doc One'
    assert r.data[0]['fileType'] == 'pdf'


def test_live_anomalies_respect_alert_date_window(patient_user, use_predictor):
    patient = PatientProfile.objects.get(user=patient_user)
    VitalReading.objects.create(patient=patient, type='heart_rate', value='190', unit='bpm',
                                timestamp=ts(2024, 6, 1))
    session = use_predictor(FakeSession(payload={'anomalies': [
        {'type': 'heart_rate', 'value': '190', 'unit': 'bpm', 'timestamp': '2024-06-01T00:00:00+00:00'},
    ]})).session
    c = as_user(patient_user)

    january = c.get(reverse('alerts'), {'startDate': '2024-01-01', 'endDate': '2024-01-31'})
    assert january.status_code == 200
    assert january.data['alerts'] == []
    assert session.calls == []

    june = c.get(reverse('alerts'), {'startDate': '2024-06-01', 'endDate': '2024-06-30'})
    assert [a['id'] for a in june.data['alerts']] == ['anomaly-2024-06-01T00:00:00+00:00']


def test_alert_text_is_plain_and_capped(doctor_user, patient_user):
    c = as_user(doctor_user)
    r = c.post(reverse('alerts'), {'userId': str(patient_user.id), 'title': 'BP < 90 & falling',
                                   'message': '<a href="x">see chart</a>'}, format='json')
    assert r.status_code == 201
    assert r.data['alert']['title'] == 'BP < 90 & falling'
    assert r.data['alert']['message'] == 'see chart'

    r = c.post(reverse('alerts'), {'userId': str(patient_user.id), 'title': '&' * 255}, format='json')
    assert r.status_code == 201
    assert len(Alert.objects.get(id=r.data['alert']['id']).title) == 255
