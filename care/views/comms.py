"""
Communication session endpoints.

Every route answers 501 while ``COMMS_ENABLE`` is off.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.serializers.comms import SessionCreateSerializer, SessionListQuerySerializer
from care.services import comms


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sessions(request):
    comms.ensure_enabled()
    if request.method == 'GET':
        q = SessionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items = [comms.session_payload(s) for s in comms.list_sessions(request.user, q.validated_data['status'])]
        return Response({'success': True, 'sessions': items})

    s = SessionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    session, token = comms.create_session(
        request.user,
        session_type=v['sessionType'],
        participant_ids=v['participantIds'],
        emergency_id=v.get('emergencyId'),
    )
    return Response({'success': True, 'session': {'id': str(session.id), 'type': session.session_type, 'token': token}},
                    status=201)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def end_session(request, session_id):
    comms.ensure_enabled()
    comms.end_session(request.user, session_id)
    return Response({'success': True, 'message': 'Communication session ended successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def join_session(request, session_id):
    comms.ensure_enabled()
    session, token = comms.join_session(request.user, session_id)
    return Response({'success': True, 'session': {'id': str(session.id), 'type': session.session_type, 'token': token}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def leave_session(request, session_id):
    comms.ensure_enabled()
    comms.leave_session(request.user, session_id)
    return Response({'success': True, 'message': 'Successfully left communication session'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def session_participants(request, session_id):
    comms.ensure_enabled()
    participants = [comms.participant_payload(p) for p in comms.list_participants(request.user, session_id)]
    return Response({'success': True, 'participants': participants})
