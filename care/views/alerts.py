"""Alert listing and creation."""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import Alert, User, VitalReading
from care.serializers.clinical import AlertCreateSerializer, AlertsQuerySerializer
from care.services.predictor import get_predictor

logger = logging.getLogger(__name__)

ANOMALY_WINDOW = 50


def alert_payload(a: Alert) -> dict:
    return {
        'id': str(a.id),
        'type': a.type,
        'title': a.title,
        'message': a.message,
        'severity': a.severity,
        'timestamp': a.created_at.isoformat(),
    }


def _live_anomalies(user, start=None, end=None) -> list[dict]:
    qs = VitalReading.objects.filter(patient__user=user)
    if start:
        qs = qs.filter(timestamp__date__gte=start)
    if end:
        qs = qs.filter(timestamp__date__lte=end)
    readings = list(qs.order_by('-timestamp')[:ANOMALY_WINDOW])
    if not readings:
        return []
    vitals = [
        {'type': r.type, 'value': r.value, 'unit': r.unit, 'timestamp': r.timestamp.isoformat()}
        for r in readings
    ]
    return [
        {
            'id': f'anomaly-{a.get("timestamp", "")}',
            'type': 'anomaly',
            'title': 'Anomaly detected',
            'message': f'Anomaly detected in {a.get("type")}: {a.get("value")} {a.get("unit", "")}'.strip(),
            'severity': a.get('severity') or 'high',
            'timestamp': a.get('timestamp'),
        }
        for a in get_predictor().detect_anomalies(vitals)
    ]


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def alerts(request):
    if request.method == 'POST':
        return _create_alert(request)

    q = AlertsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    v = q.validated_data
    qs = Alert.objects.filter(user=request.user)
    if v.get('type'):
        qs = qs.filter(type=v['type'])
    if v.get('startDate'):
        qs = qs.filter(created_at__date__gte=v['startDate'])
    if v.get('endDate'):
        qs = qs.filter(created_at__date__lte=v['endDate'])

    items = [alert_payload(a) for a in qs.order_by('-created_at')]
    if request.user.role == User.ROLE_PATIENT and v.get('type') in (None, 'anomaly'):
        items = _live_anomalies(request.user, v.get('startDate'), v.get('endDate')) + items
    return Response({'success': True, 'alerts': items})


def _create_alert(request):
    if request.user.role not in (User.ROLE_DOCTOR, User.ROLE_ADMIN):
        raise PermissionDenied('Not authorized to create alerts')
    s = AlertCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    target = User.objects.filter(id=v['userId']).first()
    if not target:
        raise NotFound('User not found')
    alert = Alert.objects.create(
        user=target, type=v['type'], title=v['title'], message=v['message'], severity=v['severity'],
    )
    logger.info('alert created id=%s user=%s by=%s type=%s', alert.id, target.id, request.user.id, alert.type)
    return Response({'success': True, 'alert': alert_payload(alert)}, status=201)
