"""
URL mappings for the care dispatch API.

Paths mirror the front-end client.  Trailing slashes are
omitted (``APPEND_SLASH = False``).
"""
from django.urls import include, path

from .views import admin, alerts, auth, comms, doctor, emergency, health, health_status, patient, vitals

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/register', auth.register_view, name='register_view'),
    path('api/auth/login', auth.login_view, name='login_view'),
    path('api/auth/refresh', auth.refresh_view, name='refresh_view'),
    path('api/auth/logout', auth.logout_view, name='logout_view'),
    path('api/auth/reset-password', auth.reset_password_view, name='reset_password_view'),
    path('api/auth/profile', auth.profile_view, name='profile_view'),
    # Patients
    path('api/patient/profile', patient.patient_profile, name='patient_profile'),
    path('api/patient/emergency-contacts', patient.emergency_contacts, name='emergency_contacts'),
    path('api/patient/medical-records', patient.medical_records, name='medical_records'),
    # Doctors
    path('api/doctor/profile', doctor.doctor_profile, name='doctor_profile'),
    path('api/doctor/notes', doctor.doctor_notes, name='doctor_notes'),
    # Vitals, alerts, health status
    path('api/vitals', vitals.vitals, name='vitals'),
    path('api/alerts', alerts.alerts, name='alerts'),
    path('api/health-status', health_status.health_status, name='health_status'),
    # Emergencies
    path('api/emergency/trigger', emergency.trigger_emergency, name='trigger_emergency'),
    path('api/emergency/trigger-by-qr', emergency.trigger_emergency_by_qr, name='trigger_emergency_by_qr'),
    path('api/emergency/status', emergency.emergency_status, name='emergency_status'),
    path('api/emergency/cancel', emergency.cancel_emergency, name='cancel_emergency'),
    # Admin
    path('api/admin/users', admin.list_users, name='admin_users'),
    path('api/admin/patients', admin.list_patients, name='admin_patients'),
    path('api/admin/doctors', admin.list_doctors, name='admin_doctors'),
    # Communication sessions
    path('api/comms/sessions', comms.sessions, name='comms_sessions'),
    path('api/comms/sessions/<uuid:session_id>/end', comms.end_session, name='comms_end_session'),
    path('api/comms/sessions/<uuid:session_id>/join', comms.join_session, name='comms_join_session'),
    path('api/comms/sessions/<uuid:session_id>/leave', comms.leave_session, name='comms_leave_session'),
    path('api/comms/sessions/<uuid:session_id>/participants', comms.session_participants,
         name='comms_session_participants'),
]
