"""
Account management views: registration, email verification, password
flows and the caller's profile.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated

from core.responses import ok
from core.serializers.auth import (
    ChangePasswordSerializer, EmailSerializer, ProfileUpdateSerializer, RegisterSerializer,
    ResetPasswordSerializer,
)
from core.services import accounts, passwords
from core.services.emails import validate_email_format
from core.throttling import client_ip, throttle_scope

RESET_SENT = 'If an account with this email exists, a password reset link has been sent.'


@throttle_scope('auth')
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def register(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.register(s.validated_data, ip=client_ip(request))
    data = {
        'user_id': user.pk,
        'email': user.email,
        'full_name': user.full_name,
        'user_type': user.user_type,
        'is_verified': user.is_verified,
        'created_at': user.created_at,
    }
    return ok(data, 'Registration successful. Please check your email to verify your account.',
              status=status.HTTP_201_CREATED)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def verify_email(request, token):
    user = accounts.verify_email(token)
    return ok({'user_id': user.pk, 'email': user.email, 'is_verified': True}, 'Email verified successfully')


@throttle_scope('auth')
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def resend_verification(request):
    s = EmailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.resend_verification(s.validated_data['email'])
    return ok(None, 'If the account exists and is not verified, a new verification email has been sent.')


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def check_email(request):
    email = (request.query_params.get('email') or '').strip().lower()
    if not email or not validate_email_format(email):
        raise ValidationError({'email': ['A valid email is required']})
    return ok({'email': email, 'available': accounts.email_available(email)})


@throttle_scope('auth')
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def forgot_password(request):
    s = EmailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.forgot_password(s.validated_data['email'], ip=client_ip(request))
    return ok(None, RESET_SENT)


@throttle_scope('auth')
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def reset_password(request):
    s = ResetPasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    accounts.reset_password(vd['token'], vd['password'], vd['confirmPassword'], ip=client_ip(request))
    return ok(None, 'Password has been reset. Please log in with your new password.')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    s = ChangePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    accounts.change_password(request.user, vd['currentPassword'], vd['newPassword'], vd['confirmPassword'])
    return ok(None, 'Password changed successfully. Please log in again on your other devices.')


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def password_requirements(request):
    return ok(passwords.requirements())


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile(request):
    if request.method == 'GET':
        return ok(accounts.serialize_profile(request.user))
    s = ProfileUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    return ok(accounts.update_profile(request.user, s.validated_data), 'Profile updated successfully')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profile_stats(request):
    return ok(accounts.profile_stats(request.user))
