from rest_framework import serializers

from care.models import Emergency, VitalReading
from .common import plain_text, uuid_field


class CoordinateField(serializers.FloatField):
    """JSON number only; booleans and numeric strings are rejected."""

    def to_internal_value(self, data):
        if isinstance(data, bool) or not isinstance(data, (int, float)):
            self.fail('invalid')
        return super().to_internal_value(data)


class LocationSerializer(serializers.Serializer):
    latitude = CoordinateField(min_value=-90, max_value=90)
    longitude = CoordinateField(min_value=-180, max_value=180)


class VitalSnapshotSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[c[0] for c in VitalReading.TYPE_CHOICES])
    value = serializers.CharField(max_length=32)
    unit = serializers.CharField(max_length=16)
    timestamp = serializers.DateTimeField()

    def to_internal_value(self, data):
        # stored as JSON, so keep the timestamp textual
        value = super().to_internal_value(data)
        value['timestamp'] = value['timestamp'].isoformat()
        return value


class TriggerSerializer(serializers.Serializer):
    location = LocationSerializer()
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    currentVitals = VitalSnapshotSerializer(many=True, required=False)

    def validate_notes(self, v):
        return plain_text(v, 500)


class QrTriggerSerializer(TriggerSerializer):
    patientCode = uuid_field('Patient code')


class CancelSerializer(serializers.Serializer):
    emergencyId = uuid_field('Emergency ID')
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')

    def validate_reason(self, v):
        return plain_text(v, 500)


class StatusQuerySerializer(serializers.Serializer):
    emergencyId = uuid_field('Emergency ID', required=False)
    status = serializers.ChoiceField(choices=[c[0] for c in Emergency.STATUS_CHOICES], required=False)
