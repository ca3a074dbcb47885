import pytest
import requests
from django.core.cache import cache
from rest_framework.test import APIClient

from care.models import AdminProfile, DoctorProfile, PatientProfile, User
from care.services.predictor import PredictorClient


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def client():
    return APIClient()


def make_user(email, role, *, name='', password='P@ssw0rd1', **profile):
    user = User.objects.create_user(username=email, email=email, password=password, role=role, name=name or email)
    model = {'patient': PatientProfile, 'doctor': DoctorProfile, 'admin': AdminProfile}[role]
    model.objects.create(user=user, **profile)
    return user


@pytest.fixture
def patient_user(db):
    return make_user('p1@example.com', 'patient', name='Pat One')


@pytest.fixture
def doctor_user(db):
    return make_user('d1@example.com', 'doctor', name='Doc One')


@pytest.fixture
def admin_user(db):
    return make_user('a1@example.com', 'admin', name='Admin One')


def as_user(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


class FakeResponse:
    def __init__(self, status=200, payload=None):
        self.status_code = status
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Server Error', response=self)

    def json(self):
        if self._payload is None:
            raise ValueError('no json body')
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session``; records every POST."""

    def __init__(self, status=200, payload=None, exc=None):
        self.status = status
        self.payload = payload
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'headers': headers, 'timeout': timeout})
        if self.exc is not None:
            raise self.exc
        return FakeResponse(self.status, self.payload)


@pytest.fixture
def use_predictor(monkeypatch):
    """Route every predictor lookup through a client backed by ``session``."""

    def install(session):
        client = PredictorClient(
            resource_url='http://ml.test/resources',
            anomaly_url='http://ml.test/anomalies',
            risk_url='http://ml.test/risk',
            api_key='k-test',
            timeout=2.0,
            session=session,
        )
        factory = lambda: client  # noqa: E731
        monkeypatch.setattr('care.services.dispatch.get_predictor', factory)
        monkeypatch.setattr('care.views.vitals.get_predictor', factory)
        monkeypatch.setattr('care.views.alerts.get_predictor', factory)
        monkeypatch.setattr('care.views.health_status.get_predictor', factory)
        return client

    return install
