"""
Account helpers: registration, password reset and profile shaping.

Registration writes the ``User`` row first and the role profile second.
The profile insert is a side step: when it fails the account still
exists, the failure is logged, and the profile is created lazily on the
next profile read.
"""
from __future__ import annotations

import logging

from django.db import DatabaseError, IntegrityError, transaction

from care.exceptions import Conflict, UpstreamError
from care.models import AdminProfile, DoctorProfile, PatientProfile, User

logger = logging.getLogger(__name__)

PROFILE_MODELS = {
    User.ROLE_PATIENT: PatientProfile,
    User.ROLE_DOCTOR: DoctorProfile,
    User.ROLE_ADMIN: AdminProfile,
}

USER_FIELDS = {'name': 'name', 'phone': 'phone', 'dob': 'dob', 'gender': 'gender', 'address': 'address'}
PATIENT_FIELDS = {
    'bloodType': 'blood_type',
    'height': 'height',
    'weight': 'weight',
    'allergies': 'allergies',
    'medicalHistory': 'medical_history',
    'emergencyContacts': 'emergency_contacts',
}
DOCTOR_FIELDS = {
    'specialization': 'specialization',
    'licenseNumber': 'license_number',
    'hospitalAffiliation': 'hospital_affiliation',
    'yearsOfExperience': 'years_of_experience',
}


def register_user(*, email: str, password: str, role: str, name: str, phone: str,
                  emergency_contact: dict | None = None) -> User:
    if User.objects.filter(email__iexact=email).exists():
        raise Conflict('User with this email already exists')
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=email, email=email, password=password, role=role, name=name, phone=phone,
            )
    except IntegrityError:
        # lost a race against a concurrent registration
        raise Conflict('User with this email already exists')
    except DatabaseError as e:
        logger.exception('user insert failed email=%s', email)
        raise UpstreamError('Failed to register user') from e

    try:
        with transaction.atomic():
            create_role_profile(user, emergency_contact=emergency_contact)
    except DatabaseError:
        logger.exception('profile insert failed user=%s role=%s', user.id, role)
    logger.info('user registered id=%s role=%s', user.id, role)
    return user


def create_role_profile(user: User, *, emergency_contact: dict | None = None):
    model = PROFILE_MODELS[user.role]
    if user.role == User.ROLE_PATIENT:
        contacts = [dict(emergency_contact, isPrimary=True)] if emergency_contact else []
        return model.objects.create(user=user, emergency_contacts=contacts)
    return model.objects.create(user=user)


def role_profile(user: User):
    """Return the caller's role profile, creating an empty one if missing."""
    model = PROFILE_MODELS.get(user.role)
    if model is None:
        return None
    profile, created = model.objects.get_or_create(user=user)
    if created:
        logger.info('created missing %s profile user=%s', user.role, user.id)
    return profile


def update_profile(user: User, data: dict):
    """Apply a validated partial update to the user and its role profile."""
    user_changes = []
    for key, field in USER_FIELDS.items():
        if key in data:
            setattr(user, field, data[key])
            user_changes.append(field)
    if user_changes:
        user.save(update_fields=user_changes)

    profile = role_profile(user)
    mapping = {User.ROLE_PATIENT: PATIENT_FIELDS, User.ROLE_DOCTOR: DOCTOR_FIELDS}.get(user.role, {})
    profile_changes = []
    for key, field in mapping.items():
        if key in data:
            setattr(profile, field, data[key])
            profile_changes.append(field)
    if profile is not None and profile_changes:
        profile.save(update_fields=profile_changes)
    return profile


def user_payload(user: User) -> dict:
    return {
        'id': str(user.id),
        'email': user.email,
        'userType': user.role,
        'name': user.name,
        'phone': user.phone,
    }


def profile_payload(user: User, profile) -> dict:
    data = user_payload(user)
    data.update({
        'dob': user.dob.isoformat() if user.dob else None,
        'gender': user.gender or None,
        'address': user.address or None,
        'createdAt': user.created_at.isoformat() if user.created_at else None,
    })
    if isinstance(profile, PatientProfile):
        data.update({
            'patientId': str(profile.id),
            'bloodType': profile.blood_type or None,
            'height': profile.height or None,
            'weight': profile.weight or None,
            'allergies': profile.allergies or [],
            'medicalHistory': profile.medical_history or [],
            'emergencyContacts': profile.emergency_contacts or [],
        })
    elif isinstance(profile, DoctorProfile):
        data.update({
            'doctorId': str(profile.id),
            'specialization': profile.specialization or None,
            'licenseNumber': profile.license_number or None,
            'hospitalAffiliation': profile.hospital_affiliation or None,
            'yearsOfExperience': profile.years_of_experience,
        })
    elif isinstance(profile, AdminProfile):
        data.update({
            'adminId': str(profile.id),
            'title': profile.title or None,
            'permissions': profile.permissions or [],
        })
    return data
