"""
Database models for the care coordination backend.

These models are the record store: users and their role profiles,
vitals, medical records, doctor notes, the responder directory,
emergencies, alerts, notifications and communication sessions.  Column
names follow the snake_case table layout the front-end payloads are
reshaped from; views convert them to camelCase.
"""
from __future__ import annotations

import uuid
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Account with an immutable role.

    ``username`` mirrors the e-mail so Django's authentication backend can
    be used unchanged; ``email`` is the login identifier.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone = models.CharField(max_length=32, blank=True)
    dob = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=32, blank=True)
    address = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class PatientProfile(models.Model):
    """Patient specific data owned by a :class:`User` with role 'patient'.

    ``emergency_contacts`` holds a list of ``{name, phone, relationship,
    isPrimary, email}`` objects; ``medical_history`` and ``allergies`` are
    plain JSON lists.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    medical_history = models.JSONField(default=list, blank=True)
    allergies = models.JSONField(default=list, blank=True)
    emergency_contacts = models.JSONField(default=list, blank=True)
    blood_type = models.CharField(max_length=8, blank=True)
    height = models.CharField(max_length=32, blank=True)
    weight = models.CharField(max_length=32, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"patient {self.user.email}"


class DoctorProfile(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialization = models.CharField(max_length=255, blank=True)
    license_number = models.CharField(max_length=64, blank=True)
    hospital_affiliation = models.CharField(max_length=255, blank=True)
    years_of_experience = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"doctor {self.user.email}"


class AdminProfile(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='admin_profile')
    title = models.CharField(max_length=64, blank=True)
    permissions = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"admin {self.user.email}"


class VitalReading(models.Model):
    """A single vital sign measurement.  Append-only."""
    TYPE_CHOICES = [
        ('heart_rate', 'Heart rate'),
        ('blood_pressure', 'Blood pressure'),
        ('temperature', 'Temperature'),
        ('oxygen_level', 'Oxygen level'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='vitals')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    # blood pressure arrives as "120/80", so the value is kept textual
    value = models.CharField(max_length=32)
    unit = models.CharField(max_length=16, blank=True)
    trend = models.CharField(max_length=16, default='stable')
    timestamp = models.DateTimeField(db_index=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [models.Index(fields=['patient', 'type', 'timestamp'], name='care_vitalr_patient_5b0f1c_idx')]

    def __str__(self) -> str:
        return f"{self.type}={self.value}{self.unit} @ {self.timestamp:%F %T}"


class MedicalRecord(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='medical_records')
    doctor = models.ForeignKey(
        DoctorProfile, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_records'
    )
    record_type = models.CharField(max_length=64, blank=True)
    title = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    date = models.DateTimeField(db_index=True)
    file_type = models.CharField(max_length=16, blank=True)
    file_size = models.CharField(max_length=16, blank=True)

    class Meta:
        ordering = ['-date']

    def __str__(self) -> str:
        return f"{self.record_type} {self.date:%F}"


class DoctorNote(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='notes')
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='doctor_notes')
    note = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"note {self.id} d={self.doctor_id} p={self.patient_id}"


# ---------------------------------------------------------------------------
# Responder directory
# ---------------------------------------------------------------------------

class Hospital(models.Model):
    id = models.CharField(max_length=64, primary_key=True)
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    def __str__(self) -> str:
        return self.name


class Ambulance(models.Model):
    id = models.CharField(max_length=64, primary_key=True)
    name = models.CharField(max_length=255)
    hospital = models.ForeignKey(Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='ambulances')
    current_location = models.CharField(max_length=255, blank=True)
    estimated_arrival_time = models.CharField(max_length=64, blank=True)

    def __str__(self) -> str:
        return self.name


# ---------------------------------------------------------------------------
# Emergencies, alerts & notifications
# ---------------------------------------------------------------------------

class Emergency(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_CANCELLED = 'cancelled'
    STATUS_RESOLVED = 'resolved'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'active'),
        (STATUS_CANCELLED, 'cancelled'),
        (STATUS_RESOLVED, 'resolved'),
    )

    TRIGGER_PATIENT = 'patient'
    TRIGGER_QR = 'qr_code'
    TRIGGER_CHOICES = ((TRIGGER_PATIENT, 'patient'), (TRIGGER_QR, 'qr_code'))

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='emergencies')
    latitude = models.FloatField()
    longitude = models.FloatField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    triggered_at = models.DateTimeField(auto_now_add=True)
    triggered_by = models.CharField(max_length=16, choices=TRIGGER_CHOICES, default=TRIGGER_PATIENT)
    notes = models.TextField(blank=True)
    current_vitals = models.JSONField(null=True, blank=True)
    # ids come from the predictor and may be fallback values outside the directory
    assigned_hospital_id = models.CharField(max_length=64, blank=True)
    assigned_hospital_name = models.CharField(max_length=255, blank=True)
    assigned_ambulance_id = models.CharField(max_length=64, blank=True)
    estimated_arrival = models.CharField(max_length=64, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=500, blank=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'status', 'triggered_at'], name='care_emerge_patient_8d3a27_idx')]

    @property
    def location(self) -> dict:
        return {'latitude': self.latitude, 'longitude': self.longitude}

    def __str__(self) -> str:
        return f"emergency {self.id} p={self.patient_id} {self.status}"


class Alert(models.Model):
    TYPE_CHOICES = (
        ('anomaly', 'anomaly'),
        ('emergency', 'emergency'),
        ('system', 'system'),
    )
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='alerts')
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default='system')
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True)
    severity = models.CharField(max_length=16, default='medium')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.type}: {self.title}"


class Notification(models.Model):
    """Intent-to-notify row.  Delivery and status updates happen downstream."""
    STATUS_CHOICES = (
        ('pending', 'pending'),
        ('sent', 'sent'),
        ('failed', 'failed'),
    )
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    type = models.CharField(max_length=32)
    recipient_type = models.CharField(max_length=32)
    recipient_id = models.CharField(max_length=64, blank=True)
    recipient_email = models.CharField(max_length=255, blank=True)
    recipient_phone = models.CharField(max_length=32, blank=True)
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='pending', db_index=True)
    data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['recipient_type', 'status', 'created_at'], name='care_notifi_recipie_41c9e2_idx')]

    def __str__(self) -> str:
        return f"{self.type} -> {self.recipient_type}:{self.recipient_id}"


# ---------------------------------------------------------------------------
# Communication sessions
# ---------------------------------------------------------------------------

class CommSession(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_ENDED = 'ended'
    STATUS_CHOICES = ((STATUS_ACTIVE, 'active'), (STATUS_ENDED, 'ended'))

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session_type = models.CharField(max_length=32)
    created_by = models.ForeignKey(User, on_delete=models.CASCADE, related_name='comm_sessions_created')
    emergency = models.ForeignKey(
        Emergency, null=True, blank=True, on_delete=models.SET_NULL, related_name='comm_sessions'
    )
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    ended_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='comm_sessions_ended'
    )

    def __str__(self) -> str:
        return f"session {self.id} ({self.session_type}, {self.status})"


class SessionParticipant(models.Model):
    STATUS_CHOICES = (('active', 'active'), ('inactive', 'inactive'))

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.ForeignKey(CommSession, on_delete=models.CASCADE, related_name='participants')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='session_participations')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='active')
    joined_at = models.DateTimeField(default=timezone.now)
    left_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = [('session', 'user')]

    def __str__(self) -> str:
        return f"{self.user_id} in {self.session_id} ({self.status})"
