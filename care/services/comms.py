"""
Communication sessions between patients, doctors and responders.

Session identity tokens are signed with :mod:`django.core.signing` over
``{sessionId, userId}``; the WebSocket consumer accepts the same token
to subscribe a participant to ``comms.<sessionId>``.  Lifecycle events
(join, leave, end) are pushed to that group through the channel layer.
"""
from __future__ import annotations

import logging
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core import signing
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from care.exceptions import NotImplementedFeature
from care.models import CommSession, Emergency, SessionParticipant, User

logger = logging.getLogger(__name__)

TOKEN_SALT = 'care.comms.session'


def ensure_enabled() -> None:
    if not settings.COMMS_ENABLE:
        raise NotImplementedFeature('Communication sessions are not enabled')


def group_name(session_id) -> str:
    return f'comms.{session_id}'


def issue_token(session_id, user_id) -> str:
    return signing.dumps({'sessionId': str(session_id), 'userId': str(user_id)}, salt=TOKEN_SALT)


def read_token(token: str) -> Optional[dict]:
    try:
        return signing.loads(token, salt=TOKEN_SALT, max_age=settings.COMMS_TOKEN_MAX_AGE)
    except signing.BadSignature:
        return None


def broadcast(session_id, event: str, **payload) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(
        group_name(session_id),
        {'type': 'comms.event', 'event': event, 'sessionId': str(session_id), **payload},
    )


def _participant(session_id, user) -> Optional[SessionParticipant]:
    return SessionParticipant.objects.filter(session_id=session_id, user=user).first()


def create_session(user: User, *, session_type: str, participant_ids: list[str],
                   emergency_id: Optional[str] = None) -> tuple[CommSession, str]:
    ids = {str(pid).lower() for pid in participant_ids}
    ids.add(str(user.id))
    found = set(str(pk) for pk in User.objects.filter(id__in=ids).values_list('id', flat=True))
    missing = ids - found
    if missing:
        raise ValidationError({'participantIds': [f'Unknown participant: {sorted(missing)[0]}']})

    emergency = None
    if emergency_id:
        emergency = Emergency.objects.filter(id=emergency_id).first()
        if emergency is None:
            raise NotFound('Emergency not found')

    with transaction.atomic():
        session = CommSession.objects.create(session_type=session_type, created_by=user, emergency=emergency)
        SessionParticipant.objects.bulk_create(
            [SessionParticipant(session=session, user_id=pid) for pid in sorted(ids)]
        )
    logger.info('comms session created id=%s type=%s participants=%s', session.id, session_type, len(ids))
    return session, issue_token(session.id, user.id)


def end_session(user: User, session_id) -> CommSession:
    if _participant(session_id, user) is None:
        raise PermissionDenied('Not authorized to end this session')
    now = timezone.now()
    with transaction.atomic():
        updated = CommSession.objects.filter(id=session_id, status=CommSession.STATUS_ACTIVE).update(
            status=CommSession.STATUS_ENDED, ended_at=now, ended_by=user,
        )
        if not updated:
            raise NotFound('Active session not found')
        SessionParticipant.objects.filter(session_id=session_id, status='active').update(
            status='inactive', left_at=now,
        )
    logger.info('comms session ended id=%s by=%s', session_id, user.id)
    broadcast(session_id, 'ended', userId=str(user.id))
    return CommSession.objects.get(id=session_id)


def list_sessions(user: User, status: str = CommSession.STATUS_ACTIVE):
    return (CommSession.objects
            .filter(participants__user=user, status=status)
            .order_by('-created_at')
            .distinct())


def join_session(user: User, session_id) -> tuple[CommSession, str]:
    session = CommSession.objects.filter(id=session_id, status=CommSession.STATUS_ACTIVE).first()
    if session is None:
        raise NotFound('Active session not found')
    participant, created = SessionParticipant.objects.get_or_create(session=session, user=user)
    if not created and participant.status != 'active':
        participant.status = 'active'
        participant.joined_at = timezone.now()
        participant.left_at = None
        participant.save(update_fields=['status', 'joined_at', 'left_at'])
    broadcast(session.id, 'joined', userId=str(user.id))
    return session, issue_token(session.id, user.id)


def leave_session(user: User, session_id) -> None:
    updated = SessionParticipant.objects.filter(session_id=session_id, user=user, status='active').update(
        status='inactive', left_at=timezone.now(),
    )
    if not updated:
        raise NotFound('Active participation not found')
    broadcast(session_id, 'left', userId=str(user.id))


def list_participants(user: User, session_id):
    if _participant(session_id, user) is None:
        raise PermissionDenied('Not authorized to view this session')
    return SessionParticipant.objects.filter(session_id=session_id).select_related('user').order_by('joined_at')


def session_payload(session: CommSession) -> dict:
    return {
        'id': str(session.id),
        'type': session.session_type,
        'createdAt': session.created_at.isoformat() if session.created_at else None,
        'status': session.status,
        'emergencyId': str(session.emergency_id) if session.emergency_id else None,
    }


def participant_payload(p: SessionParticipant) -> dict:
    return {
        'id': str(p.id),
        'status': p.status,
        'joinedAt': p.joined_at.isoformat() if p.joined_at else None,
        'leftAt': p.left_at.isoformat() if p.left_at else None,
        'user': {
            'id': str(p.user.id),
            'name': p.user.name,
            'email': p.user.email,
            'userType': p.user.role,
        },
    }
