"""
Client for the external ML predictor.

Three synchronous POST calls with bearer-key authorisation: nearest
emergency resources for a location, anomaly detection over vitals, and
a health-risk verdict.  None of them raise.  Any transport error,
timeout, non-2xx status or malformed body returns the fallback value so
dispatch and status endpoints keep working while the ML service is down.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

FALLBACK_HOSPITAL_ID = 'fallback-hospital'
FALLBACK_AMBULANCE_ID = 'fallback-ambulance'
# width of the Emergency.assigned_*_id columns
MAX_ID_LENGTH = 64


@dataclass
class ResourceAssignment:
    hospital_id: str
    hospital_name: str
    ambulance_id: str
    estimated_arrival_time: str
    fallback: bool = False

    def as_payload(self) -> dict:
        return {
            'hospitalId': self.hospital_id,
            'hospitalName': self.hospital_name,
            'ambulanceId': self.ambulance_id,
            'estimatedArrivalTime': self.estimated_arrival_time,
        }


def fallback_assignment() -> ResourceAssignment:
    return ResourceAssignment(
        hospital_id=FALLBACK_HOSPITAL_ID,
        hospital_name='General Hospital',
        ambulance_id=FALLBACK_AMBULANCE_ID,
        estimated_arrival_time='15 minutes',
        fallback=True,
    )


def fallback_risk() -> dict:
    return {
        'status': 'Unknown',
        'riskLevel': 'Unknown',
        'summary': 'Failed to predict health risks',
        'recommendations': [],
    }


class PredictorError(Exception):
    pass


class PredictorClient:
    def __init__(self, *, resource_url: str = '', anomaly_url: str = '', risk_url: str = '',
                 api_key: str = '', timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.resource_url = resource_url
        self.anomaly_url = anomaly_url
        self.risk_url = risk_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, url: str, payload: dict) -> Any:
        if not url:
            raise PredictorError('endpoint not configured')
        headers = {'Authorization': f'Bearer {self.api_key}'} if self.api_key else {}
        r = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def find_nearest_resources(self, latitude: float, longitude: float) -> ResourceAssignment:
        try:
            data = self._post(self.resource_url, {'latitude': latitude, 'longitude': longitude})
            if not isinstance(data, dict):
                raise PredictorError('unexpected response shape')
            hospital_id = data.get('hospitalId')
            ambulance_id = data.get('ambulanceId')
            if not hospital_id or not ambulance_id:
                raise PredictorError('response missing hospitalId/ambulanceId')
            if len(str(hospital_id)) > MAX_ID_LENGTH or len(str(ambulance_id)) > MAX_ID_LENGTH:
                raise PredictorError('resource id too long')
            return ResourceAssignment(
                hospital_id=str(hospital_id),
                hospital_name=str(data.get('hospitalName') or '')[:255],
                ambulance_id=str(ambulance_id),
                estimated_arrival_time=str(data.get('estimatedArrivalTime') or '')[:MAX_ID_LENGTH],
            )
        except (requests.RequestException, ValueError, PredictorError) as e:
            logger.warning('resource prediction failed, using fallback lat=%s lng=%s err=%s', latitude, longitude, e)
            return fallback_assignment()

    def detect_anomalies(self, vitals: list[dict]) -> list[dict]:
        try:
            data = self._post(self.anomaly_url, {'vitals': vitals})
            anomalies = data.get('anomalies') if isinstance(data, dict) else None
            if not isinstance(anomalies, list):
                return []
            return [a for a in anomalies if isinstance(a, dict)]
        except (requests.RequestException, ValueError, PredictorError) as e:
            logger.warning('anomaly detection failed count=%s err=%s', len(vitals), e)
            return []

    def predict_health_risk(self, health_data: dict) -> dict:
        try:
            data = self._post(self.risk_url, health_data)
            if not isinstance(data, dict) or not data:
                return {
                    'status': 'Stable',
                    'riskLevel': 'Stable',
                    'summary': 'No immediate concerns',
                    'recommendations': [],
                }
            return {
                'status': data.get('status') or data.get('riskLevel') or 'Unknown',
                'riskLevel': data.get('riskLevel') or 'Unknown',
                'summary': data.get('summary') or '',
                'recommendations': data.get('recommendations') or [],
            }
        except (requests.RequestException, ValueError, PredictorError) as e:
            logger.warning('health risk prediction failed err=%s', e)
            return fallback_risk()


def get_predictor() -> PredictorClient:
    """Build a predictor client from current settings."""
    return PredictorClient(
        resource_url=settings.ML_RESOURCE_ENDPOINT,
        anomaly_url=settings.ML_ANOMALY_ENDPOINT,
        risk_url=settings.ML_RISK_ENDPOINT,
        api_key=settings.ML_API_KEY,
        timeout=settings.ML_TIMEOUT,
    )
