"""
Bearer JWT authentication.

A thin subclass of simplejwt's ``JWTAuthentication`` that reports
each failure with its own error code (expired, invalid, revoked,
unknown or inactive user) and honours the access-token revocation list
kept by ``core.services.tokens``.
"""
from __future__ import annotations

import hmac

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import exceptions
from rest_framework import authentication as drf_authentication
from rest_framework_simplejwt import authentication
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from core.services.tokens import is_access_revoked

User = get_user_model()


def _is_expired(raw_token) -> bool:
    """True only for a correctly signed token whose ``exp`` has passed."""
    key = api_settings.VERIFYING_KEY or api_settings.SIGNING_KEY
    try:
        jwt.decode(raw_token, key, algorithms=[api_settings.ALGORITHM], options={'verify_aud': False})
    except jwt.ExpiredSignatureError:
        return True
    except jwt.PyJWTError:
        return False
    return False


class JWTAuthentication(authentication.JWTAuthentication):
    """``Authorization: Bearer <access token>``; other schemes count as no token."""

    def get_validated_token(self, raw_token):
        try:
            token = AccessToken(raw_token)
        except TokenError:
            if _is_expired(raw_token):
                raise exceptions.AuthenticationFailed('Access token has expired', code='AUTH_TOKEN_EXPIRED')
            raise exceptions.AuthenticationFailed('Invalid access token', code='AUTH_TOKEN_INVALID')
        if is_access_revoked(token.get(api_settings.JTI_CLAIM)):
            raise exceptions.AuthenticationFailed('Token has been revoked', code='AUTH_TOKEN_REVOKED')
        return token

    def get_user(self, validated_token):
        user_id = validated_token.get(api_settings.USER_ID_CLAIM)
        if user_id is None:
            raise exceptions.AuthenticationFailed('Invalid access token', code='AUTH_TOKEN_INVALID')
        user = User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
        if user is None:
            raise exceptions.AuthenticationFailed('User not found', code='AUTH_USER_NOT_FOUND')
        if not user.is_active:
            raise exceptions.AuthenticationFailed('Account is inactive', code='AUTH_ACCOUNT_INACTIVE')
        return user


class PartnerKeyAuthentication(drf_authentication.BaseAuthentication):
    """``X-API-Key`` must equal ``PARTNER_API_KEY``; an unset key rejects every call.

    Partners are not users, so a successful check yields ``(None, 'partner')``.
    """
    keyword = 'X-API-Key'

    def authenticate(self, request):
        expected = settings.PARTNER_API_KEY or ''
        supplied = request.headers.get(self.keyword) or ''
        if not expected or not supplied or not hmac.compare_digest(supplied.encode(), expected.encode()):
            raise exceptions.AuthenticationFailed('Invalid or missing API key', code='PARTNER_KEY_INVALID')
        return (None, 'partner')

    def authenticate_header(self, request):
        return self.keyword
