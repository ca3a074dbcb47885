from rest_framework import serializers

from care.models import User


class EmergencyContactSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=32)
    relationship = serializers.CharField(max_length=64, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    isPrimary = serializers.BooleanField(required=False, default=False)


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    userType = serializers.ChoiceField(choices=[c[0] for c in User.ROLE_CHOICES])
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=32)
    emergencyContact = EmergencyContactSerializer(required=False)

    def validate_email(self, v):
        return v.strip().lower()

    def validate(self, attrs):
        if attrs['userType'] == User.ROLE_PATIENT and not attrs.get('emergencyContact'):
            raise serializers.ValidationError('Emergency contact is required for patients')
        return attrs


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()

    def validate_email(self, v):
        return v.strip().lower()


class ResetPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()
    currentPassword = serializers.CharField()
    newPassword = serializers.CharField(
        min_length=6,
        error_messages={'min_length': 'New password must be at least 6 characters long'},
    )

    def validate_email(self, v):
        return v.strip().lower()


class ProfileUpdateSerializer(serializers.Serializer):
    """Partial profile update; unknown keys are ignored, role is never writable."""
    name = serializers.CharField(max_length=255, required=False)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    dob = serializers.DateField(required=False, allow_null=True, input_formats=['%Y-%m-%d'])
    gender = serializers.CharField(max_length=32, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    # patient
    bloodType = serializers.CharField(max_length=8, required=False, allow_blank=True)
    height = serializers.CharField(max_length=32, required=False, allow_blank=True)
    weight = serializers.CharField(max_length=32, required=False, allow_blank=True)
    allergies = serializers.ListField(child=serializers.CharField(max_length=255), required=False)
    medicalHistory = serializers.ListField(child=serializers.JSONField(), required=False)
    emergencyContacts = EmergencyContactSerializer(many=True, required=False)
    # doctor
    specialization = serializers.CharField(max_length=255, required=False, allow_blank=True)
    licenseNumber = serializers.CharField(max_length=64, required=False, allow_blank=True)
    hospitalAffiliation = serializers.CharField(max_length=255, required=False, allow_blank=True)
    yearsOfExperience = serializers.IntegerField(min_value=0, required=False, allow_null=True)
