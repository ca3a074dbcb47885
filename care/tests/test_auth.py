import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from care.models import DoctorProfile, PatientProfile, User
from care.tests.conftest import make_user

pytestmark = pytest.mark.django_db

PATIENT = {
    'email': 'new@example.com',
    'password': 'secret123',
    'userType': 'patient',
    'name': 'New Patient',
    'phone': '555-0100',
    'emergencyContact': {'name': 'Kin', 'phone': '555-0199', 'relationship': 'Parent'},
}


def test_register_patient_creates_user_profile_and_tokens(client):
    r = client.post(reverse('register_view'), PATIENT, format='json')
    assert r.status_code == 201
    assert r.data['success'] is True
    assert r.data['token'] and r.data['refreshToken']
    assert r.data['user']['userType'] == 'patient'
    user = User.objects.get(email='new@example.com')
    profile = PatientProfile.objects.get(user=user)
    assert profile.emergency_contacts[0]['name'] == 'Kin'
    assert profile.emergency_contacts[0]['isPrimary'] is True


def test_register_duplicate_email_conflicts_without_new_row(client):
    assert client.post(reverse('register_view'), PATIENT, format='json').status_code == 201
    before = User.objects.count()
    r = client.post(reverse('register_view'), {**PATIENT, 'email': 'NEW@example.com'}, format='json')
    assert r.status_code == 409
    assert r.data['error'] == 'User with this email already exists'
    assert User.objects.count() == before


def test_register_patient_requires_emergency_contact(client):
    body = {k: v for k, v in PATIENT.items() if k != 'emergencyContact'}
    r = client.post(reverse('register_view'), body, format='json')
    assert r.status_code == 400
    assert r.data['error'] == 'Emergency contact is required for patients'
    assert not User.objects.exists()


def test_register_rejects_unknown_role(client):
    r = client.post(reverse('register_view'), {**PATIENT, 'userType': 'super'}, format='json')
    assert r.status_code == 400


def test_register_doctor_without_contact(client):
    body = {**PATIENT, 'email': 'doc@example.com', 'userType': 'doctor'}
    body.pop('emergencyContact')
    r = client.post(reverse('register_view'), body, format='json')
    assert r.status_code == 201
    assert DoctorProfile.objects.filter(user__email='doc@example.com').exists()


def test_login_returns_bearer_tokens_usable_on_profile():
    make_user('p9@example.com', 'patient', name='Pat Nine', password='P@ssw0rd1')
    c = APIClient()
    r = c.post(reverse('login_view'), {'email': 'p9@example.com', 'password': 'P@ssw0rd1'}, format='json')
    assert r.status_code == 200
    assert r.data['user']['userType'] == 'patient'
    c.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['token']}")
    p = c.get(reverse('profile_view'))
    assert p.status_code == 200
    assert p.data['profile']['email'] == 'p9@example.com'
    assert p.data['profile']['emergencyContacts'] == []


def test_login_ignores_role_in_body():
    u = make_user('p8@example.com', 'patient')
    r = APIClient().post(reverse('login_view'),
                         {'email': 'p8@example.com', 'password': 'P@ssw0rd1', 'role': 'admin'}, format='json')
    assert r.status_code == 200
    assert r.data['user']['userType'] == 'patient'
    u.refresh_from_db()
    assert u.role == 'patient'


def test_login_bad_credentials():
    make_user('p7@example.com', 'patient')
    r = APIClient().post(reverse('login_view'), {'email': 'p7@example.com', 'password': 'nope'}, format='json')
    assert r.status_code == 400
    assert r.data['error'] == 'Invalid email or password'


def test_invalid_bearer_is_401(client):
    client.credentials(HTTP_AUTHORIZATION='Bearer not.a.jwt')
    r = client.get(reverse('profile_view'))
    assert r.status_code == 401
    assert 'error' in r.data


def test_refresh_and_logout_blacklists_refresh_token():
    make_user('p6@example.com', 'patient')
    c = APIClient()
    tokens = c.post(reverse('login_view'), {'email': 'p6@example.com', 'password': 'P@ssw0rd1'}, format='json').data
    r = c.post(reverse('refresh_view'), {'refreshToken': tokens['refreshToken']}, format='json')
    assert r.status_code == 200 and r.data['token']

    c.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['token']}")
    out = c.post(reverse('logout_view'), {'refreshToken': tokens['refreshToken']}, format='json')
    assert out.status_code == 200 and out.data['blacklisted'] == 1

    again = APIClient().post(reverse('refresh_view'), {'refreshToken': tokens['refreshToken']}, format='json')
    assert again.status_code == 401


def test_reset_password():
    make_user('p5@example.com', 'patient')
    c = APIClient()
    bad = c.post(reverse('reset_password_view'),
                 {'email': 'p5@example.com', 'currentPassword': 'wrong', 'newPassword': 'another1'}, format='json')
    assert bad.status_code == 400 and bad.data['error'] == 'Current password is incorrect'
    short = c.post(reverse('reset_password_view'),
                   {'email': 'p5@example.com', 'currentPassword': 'P@ssw0rd1', 'newPassword': '123'}, format='json')
    assert short.status_code == 400
    ok = c.post(reverse('reset_password_view'),
                {'email': 'p5@example.com', 'currentPassword': 'P@ssw0rd1', 'newPassword': 'another1'}, format='json')
    assert ok.status_code == 200
    assert c.post(reverse('login_view'), {'email': 'p5@example.com', 'password': 'another1'},
                  format='json').status_code == 200


def test_profile_update_is_role_aware(doctor_user):
    c = APIClient()
    c.force_authenticate(user=doctor_user)
    r = c.put(reverse('profile_view'), {'name': 'Dr. Who', 'specialization': 'Cardiology',
                                         'yearsOfExperience': 12, 'role': 'admin'}, format='json')
    assert r.status_code == 200
    assert r.data['profile']['name'] == 'Dr. Who'
    assert r.data['profile']['specialization'] == 'Cardiology'
    doctor_user.refresh_from_db()
    assert doctor_user.role == 'doctor'
    assert DoctorProfile.objects.get(user=doctor_user).years_of_experience == 12
