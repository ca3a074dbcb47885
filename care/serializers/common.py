"""Shared field validators for request serializers."""
from __future__ import annotations

import html
import re
from datetime import date
from typing import Optional

import bleach
from rest_framework import serializers

UUID_PATTERN = r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$'
DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def plain_text(value, max_length: Optional[int] = None) -> str:
    """Drop every tag and keep the remaining text as typed (no entity escaping)."""
    v = html.unescape(bleach.clean((value or '').strip(), tags=set(), strip=True)).strip()
    if max_length is not None and len(v) > max_length:
        raise serializers.ValidationError(f'Ensure this field has no more than {max_length} characters.')
    return v


def uuid_field(label: str, **kwargs) -> serializers.RegexField:
    return serializers.RegexField(
        UUID_PATTERN,
        error_messages={'invalid': f'{label} must be a valid UUID'},
        **kwargs,
    )


class IsoDateField(serializers.CharField):
    """``YYYY-MM-DD`` string converted to :class:`datetime.date`."""

    def __init__(self, name: str, **kwargs):
        kwargs.setdefault('required', False)
        super().__init__(**kwargs)
        self.date_label = name

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            if not DATE_RE.match(value):
                raise ValueError(value)
            return date.fromisoformat(value)
        except ValueError:
            raise serializers.ValidationError(f'{self.date_label} must be in YYYY-MM-DD format')

    def to_representation(self, value):
        return value.isoformat() if isinstance(value, date) else value


class DateRangeQuerySerializer(serializers.Serializer):
    startDate = IsoDateField('startDate')
    endDate = IsoDateField('endDate')

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and start > end:
            raise serializers.ValidationError('startDate must not be after endDate')
        return attrs
