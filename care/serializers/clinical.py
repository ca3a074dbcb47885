"""Request serializers for vitals, alerts, doctor notes and health status."""
from rest_framework import serializers

from care.models import Alert, VitalReading
from .common import DateRangeQuerySerializer, plain_text, uuid_field

VITAL_TYPES = [c[0] for c in VitalReading.TYPE_CHOICES]


class VitalsQuerySerializer(DateRangeQuerySerializer):
    patientId = uuid_field('Patient ID', required=False)
    type = serializers.ChoiceField(choices=VITAL_TYPES, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=500, required=False, default=100)


class VitalCreateSerializer(serializers.Serializer):
    patientId = uuid_field('Patient ID', required=False)
    type = serializers.ChoiceField(choices=VITAL_TYPES)
    value = serializers.CharField(max_length=32)
    unit = serializers.CharField(max_length=16, required=False, allow_blank=True, default='')
    trend = serializers.ChoiceField(choices=['up', 'down', 'stable'], required=False, default='stable')
    timestamp = serializers.DateTimeField(required=False)


class AlertsQuerySerializer(DateRangeQuerySerializer):
    type = serializers.ChoiceField(choices=[c[0] for c in Alert.TYPE_CHOICES], required=False)


class AlertCreateSerializer(serializers.Serializer):
    userId = uuid_field('User ID')
    type = serializers.ChoiceField(choices=[c[0] for c in Alert.TYPE_CHOICES], default='system')
    title = serializers.CharField(max_length=255)
    message = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')
    severity = serializers.ChoiceField(choices=['low', 'medium', 'high'], required=False, default='medium')

    def validate_title(self, v):
        v = plain_text(v, 255)
        if not v:
            raise serializers.ValidationError('Title is required')
        return v

    def validate_message(self, v):
        return plain_text(v, 2000)


class NotesQuerySerializer(serializers.Serializer):
    patientId = uuid_field('Patient ID', required=False)


class NoteCreateSerializer(serializers.Serializer):
    patientId = uuid_field('Patient ID')
    note = serializers.CharField(
        max_length=1000,
        error_messages={'max_length': 'Note must be a string with max length of 1000 characters'},
    )

    def validate_note(self, v):
        v = plain_text(v, 1000)
        if not v:
            raise serializers.ValidationError('Note is required')
        return v


class HealthStatusQuerySerializer(serializers.Serializer):
    patientId = uuid_field('Patient ID', required=False)
