from rest_framework import serializers

from care.models import CommSession
from .common import uuid_field


class SessionCreateSerializer(serializers.Serializer):
    sessionType = serializers.ChoiceField(choices=['video', 'audio', 'chat'])
    participantIds = serializers.ListField(child=uuid_field('Participant ID'), allow_empty=True, max_length=20)
    emergencyId = uuid_field('Emergency ID', required=False, allow_null=True)


class SessionListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[c[0] for c in CommSession.STATUS_CHOICES], required=False, default=CommSession.STATUS_ACTIVE
    )
