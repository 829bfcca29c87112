"""
JWT lifecycle: issuing pairs, refresh rotation, revocation and sessions.

Refresh tokens are tracked by simplejwt's token_blacklist app
(``OutstandingToken`` / ``BlacklistedToken``); ``RefreshSession`` adds
the client's IP and user agent. Access tokens cannot be blacklisted
there, so revoked access-token ids are kept in the cache until the
token would have expired anyway.
"""
from __future__ import annotations

from django.core.cache import cache
from django.db import transaction
from django.utils import timezone
from rest_framework import exceptions
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from core.models import RefreshSession, User

_REVOKED_PREFIX = 'jwt:revoked:'


def access_lifetime_seconds() -> int:
    return int(api_settings.ACCESS_TOKEN_LIFETIME.total_seconds())


def refresh_lifetime_seconds() -> int:
    return int(api_settings.REFRESH_TOKEN_LIFETIME.total_seconds())


def issue_token_pair(user: User, *, ip=None, user_agent: str = '') -> dict:
    """Mint a refresh/access pair carrying the user's claims."""
    refresh = RefreshToken.for_user(user)
    refresh['email'] = user.email
    refresh['user_type'] = user.user_type
    refresh['is_verified'] = user.is_verified

    access = refresh.access_token
    access['sid'] = refresh[api_settings.JTI_CLAIM]

    outstanding = OutstandingToken.objects.filter(jti=refresh[api_settings.JTI_CLAIM]).first()
    if outstanding is not None:
        RefreshSession.objects.create(token=outstanding, ip_address=ip, user_agent=(user_agent or '')[:255])

    return {
        'access_token': str(access),
        'refresh_token': str(refresh),
        'expires_in': access_lifetime_seconds(),
        'refresh_expires_in': refresh_lifetime_seconds(),
        'token_type': 'Bearer',
    }


def _load_refresh(raw: str) -> RefreshToken:
    try:
        # verify() also rejects blacklisted tokens
        return RefreshToken(raw)
    except TokenError:
        raise exceptions.AuthenticationFailed('Invalid or expired refresh token', code='AUTH_REFRESH_INVALID')


def rotate_refresh_token(raw: str, *, ip=None, user_agent: str = '') -> tuple[User, dict]:
    """Exchange a refresh token for a new pair; the old one is blacklisted."""
    refresh = _load_refresh(raw)
    user = User.objects.filter(pk=refresh.get(api_settings.USER_ID_CLAIM)).first()
    if user is None:
        raise exceptions.AuthenticationFailed('User not found', code='AUTH_REFRESH_INVALID')
    if not user.is_active:
        raise exceptions.AuthenticationFailed('Account is inactive', code='AUTH_ACCOUNT_INACTIVE')
    with transaction.atomic():
        refresh.blacklist()
        pair = issue_token_pair(user, ip=ip, user_agent=user_agent)
    return user, pair


def revoke_access_token(token) -> None:
    """Put an access token's jti on the revocation list until it expires."""
    jti = token.get(api_settings.JTI_CLAIM)
    if not jti:
        return
    exp = token.get('exp')
    ttl = access_lifetime_seconds()
    if exp:
        ttl = max(int(exp - timezone.now().timestamp()), 1)
    cache.set(_REVOKED_PREFIX + jti, True, timeout=ttl)


def is_access_revoked(jti) -> bool:
    return bool(jti) and bool(cache.get(_REVOKED_PREFIX + jti))


def blacklist_refresh(raw: str, user: User) -> int:
    """Blacklist a refresh token presented by ``user``; foreign tokens are ignored."""
    try:
        refresh = RefreshToken(raw)
    except TokenError:
        return 0
    if str(refresh.get(api_settings.USER_ID_CLAIM)) != str(user.pk):
        return 0
    refresh.blacklist()
    return 1


def _active_outstanding(user: User):
    return (
        OutstandingToken.objects.filter(user=user, expires_at__gt=timezone.now(), blacklistedtoken__isnull=True)
    )


def revoke_refresh_by_jti(user: User, jti: str) -> int:
    token = _active_outstanding(user).filter(jti=jti).first()
    if token is None:
        return 0
    BlacklistedToken.objects.get_or_create(token=token)
    return 1


def revoke_all_refresh(user: User) -> int:
    count = 0
    for token in _active_outstanding(user):
        _, created = BlacklistedToken.objects.get_or_create(token=token)
        count += int(created)
    return count


def list_sessions(user: User, current_jti=None) -> list[dict]:
    rows = _active_outstanding(user).select_related('session').order_by('-created_at')
    sessions = []
    for token in rows:
        meta = getattr(token, 'session', None)
        sessions.append({
            'token_id': token.jti,
            'created_at': token.created_at,
            'expires_at': token.expires_at,
            'ip_address': meta.ip_address if meta else None,
            'user_agent': meta.user_agent if meta else '',
            'is_current': bool(current_jti) and token.jti == current_jti,
        })
    return sessions
