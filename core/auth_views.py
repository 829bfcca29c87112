"""
Authentication views: login, token refresh/rotation, logout,
revocation and session listing.

Account management (registration, verification, passwords, profile)
lives in ``core.views.accounts``; the token mechanics themselves are in
``core.services.tokens``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.settings import api_settings

from core.responses import ok
from core.serializers.auth import LoginSerializer, LogoutSerializer, RefreshSerializer, RevokeSerializer
from core.services import accounts, tokens
from core.services.audit import log_action
from core.throttling import client_ip


def _user_agent(request) -> str:
    return request.META.get('HTTP_USER_AGENT', '')


# ---------------------------------------------------------------------
# Email/password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def login_view(request):
    """
    Exchange email and password for a token pair.

    Guarded by the per-account lockout (423) and the per-client failed
    login tracker (429).
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    payload = accounts.login(vd['email'], vd['password'], ip=client_ip(request), user_agent=_user_agent(request))
    return ok(payload, 'Login successful')


# ---------------------------------------------------------------------
# Refresh-token rotation
# ---------------------------------------------------------------------
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def refresh_view(request):
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user, pair = tokens.rotate_refresh_token(
        s.validated_data['refresh_token'], ip=client_ip(request), user_agent=_user_agent(request)
    )
    return ok(pair, 'Token refreshed')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Revoke the presented access token and its (or the given) refresh token."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    access = request.auth
    tokens.revoke_access_token(access)
    raw = s.validated_data.get('refresh_token')
    if raw:
        tokens.blacklist_refresh(raw, request.user)
    elif access.get('sid'):
        tokens.revoke_refresh_by_jti(request.user, access['sid'])
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.pk,
               detail={'ip': client_ip(request)})
    return ok(None, 'Logged out successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def revoke_view(request):
    s = RevokeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if vd.get('revoke_all'):
        count = tokens.revoke_all_refresh(request.user)
    else:
        count = tokens.revoke_refresh_by_jti(request.user, vd['token_id'])
    log_action(user=request.user, action='token_revoke', object_type='user', object_id=request.user.pk,
               detail={'revoked_count': count, 'all': bool(vd.get('revoke_all'))})
    return ok({'revoked_count': count}, 'Tokens revoked')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sessions_view(request):
    current = request.auth.get('sid')
    sessions = tokens.list_sessions(request.user, current_jti=current)
    return ok({'sessions': sessions, 'total': len(sessions), 'current_jti': request.auth.get(api_settings.JTI_CLAIM)})
