import bleach
from rest_framework import serializers

from core.models import User

PHONE_REGEX = r'^[0-9]{10,15}$'


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField(max_length=254)
    password = serializers.CharField(max_length=128, write_only=True, trim_whitespace=False)
    phone_number = serializers.RegexField(PHONE_REGEX, error_messages={'invalid': 'Phone number must be 10-15 digits'})
    full_name = serializers.CharField(min_length=2, max_length=100)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    user_type = serializers.ChoiceField(choices=[User.TYPE_PATIENT, User.TYPE_DONOR])
    blood_group_id = serializers.IntegerField(min_value=1)
    date_of_birth = serializers.DateField(required=False, allow_null=True)

    def validate_email(self, v):
        return v.strip().lower()

    def validate_full_name(self, v):
        v = bleach.clean(v.strip(), tags=[], strip=True)
        if len(v) < 2:
            raise serializers.ValidationError('Full name must be at least 2 characters')
        return v

    def validate(self, attrs):
        if attrs['user_type'] == User.TYPE_PATIENT and not attrs.get('date_of_birth'):
            raise serializers.ValidationError({'date_of_birth': ['Date of birth is required for patients']})
        return attrs


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)
    remember_me = serializers.BooleanField(required=False, default=False)


class EmailSerializer(serializers.Serializer):
    email = serializers.EmailField()


class RefreshSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


class LogoutSerializer(serializers.Serializer):
    refresh_token = serializers.CharField(required=False, allow_blank=True)


class RevokeSerializer(serializers.Serializer):
    token_id = serializers.CharField(required=False, allow_blank=True)
    revoke_all = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if not attrs.get('token_id') and not attrs.get('revoke_all'):
            raise serializers.ValidationError('Either token_id or revoke_all is required')
        return attrs


class ResetPasswordSerializer(serializers.Serializer):
    token = serializers.CharField()
    password = serializers.CharField(max_length=128, trim_whitespace=False)
    confirmPassword = serializers.CharField(max_length=128, trim_whitespace=False)


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(trim_whitespace=False)
    newPassword = serializers.CharField(max_length=128, trim_whitespace=False)
    confirmPassword = serializers.CharField(max_length=128, trim_whitespace=False)


class ProfileUpdateSerializer(serializers.Serializer):
    full_name = serializers.CharField(min_length=2, max_length=100, required=False)
    phone_number = serializers.RegexField(PHONE_REGEX, required=False)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    blood_group_id = serializers.IntegerField(min_value=1, required=False)
    emergency_contact_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    emergency_contact_phone = serializers.RegexField(PHONE_REGEX, required=False, allow_blank=True)
    medical_conditions = serializers.CharField(required=False, allow_blank=True)
    allergies = serializers.CharField(required=False, allow_blank=True)
    current_medications = serializers.CharField(required=False, allow_blank=True)
    preferred_donation_time = serializers.ChoiceField(
        choices=['morning', 'afternoon', 'evening', 'any'], required=False
    )
    notification_preferences = serializers.DictField(required=False)

    def validate(self, attrs):
        for key in ('full_name', 'medical_conditions', 'allergies', 'current_medications', 'emergency_contact_name'):
            if key in attrs and isinstance(attrs[key], str):
                attrs[key] = bleach.clean(attrs[key].strip(), tags=[], strip=True)
        return attrs
