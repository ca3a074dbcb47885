"""
Django admin registrations for the care models.

Superusers can inspect users, profiles, the responder directory and the
emergency/notification trail at ``/admin/``.
"""

from django.contrib import admin

from .models import (
    User,
    PatientProfile,
    DoctorProfile,
    AdminProfile,
    VitalReading,
    MedicalRecord,
    DoctorNote,
    Hospital,
    Ambulance,
    Emergency,
    Alert,
    Notification,
    CommSession,
    SessionParticipant,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'is_staff', 'is_superuser', 'created_at')
    list_filter = ('role',)
    search_fields = ('email', 'name', 'phone')


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'blood_type', 'created_at')
    search_fields = ('id', 'user__email', 'user__name')


@admin.register(DoctorProfile)
class DoctorProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialization', 'license_number', 'hospital_affiliation')
    search_fields = ('user__email', 'user__name', 'license_number')


@admin.register(AdminProfile)
class AdminProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'title', 'created_at')


@admin.register(VitalReading)
class VitalReadingAdmin(admin.ModelAdmin):
    list_display = ('patient', 'type', 'value', 'unit', 'trend', 'timestamp')
    list_filter = ('type',)


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('patient', 'record_type', 'title', 'doctor', 'date')
    list_filter = ('record_type',)


@admin.register(DoctorNote)
class DoctorNoteAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'patient', 'created_at')


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'address')
    search_fields = ('id', 'name')


@admin.register(Ambulance)
class AmbulanceAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'hospital', 'current_location', 'estimated_arrival_time')
    search_fields = ('id', 'name')


@admin.register(Emergency)
class EmergencyAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'status', 'triggered_by', 'assigned_hospital_name',
                    'assigned_ambulance_id', 'triggered_at')
    list_filter = ('status', 'triggered_by')
    search_fields = ('id', 'patient__user__email')


@admin.register(Alert)
class AlertAdmin(admin.ModelAdmin):
    list_display = ('user', 'type', 'title', 'severity', 'created_at')
    list_filter = ('type', 'severity')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('type', 'recipient_type', 'recipient_id', 'status', 'created_at')
    list_filter = ('type', 'recipient_type', 'status')


@admin.register(CommSession)
class CommSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'session_type', 'status', 'created_by', 'created_at', 'ended_at')
    list_filter = ('status', 'session_type')


@admin.register(SessionParticipant)
class SessionParticipantAdmin(admin.ModelAdmin):
    list_display = ('session', 'user', 'status', 'joined_at', 'left_at')
