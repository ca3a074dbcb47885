import json
from urllib.parse import parse_qs

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from care.models import CommSession, SessionParticipant
from care.services.comms import group_name, read_token


def _is_active_participant(session_id, user_id) -> bool:
    return SessionParticipant.objects.filter(
        session_id=session_id,
        user_id=user_id,
        status="active",
        session__status=CommSession.STATUS_ACTIVE,
    ).exists()


class CommsSessionConsumer(AsyncWebsocketConsumer):
    """Push lifecycle events of one comms session to its participants.

    Connect with ``/ws/comms/<sessionId>/?token=<session token>``; the token
    is the one returned when creating or joining the session.
    """

    async def connect(self):
        self.session_id = str(self.scope["url_route"]["kwargs"]["session_id"])
        query = parse_qs(self.scope.get("query_string", b"").decode())
        claims = read_token((query.get("token") or [""])[0])
        if not claims or claims.get("sessionId") != self.session_id:
            await self.close(code=4001)
            return

        allowed = await sync_to_async(_is_active_participant)(self.session_id, claims.get("userId"))
        if not allowed:
            await self.close(code=4003)
            return

        self.user_id = claims["userId"]
        self.group_name = group_name(self.session_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "sessionId": self.session_id}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # media and chat go through the external service; this socket only pushes events
        await self.send(json.dumps({"type": "error", "code": 4002, "message": "unsupported_type"}))

    # event: {"type": "comms.event", "event": "joined"|"left"|"ended", "sessionId": ..., "userId": ...}
    async def comms_event(self, event):
        await self.send(json.dumps({**event, "type": "event"}))
        if event.get("event") == "ended":
            await self.close(code=1000)
