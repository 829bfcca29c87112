"""
Custom permission classes for user-type and ownership checks.
"""
from rest_framework import exceptions
from rest_framework.permissions import BasePermission

from core.models import User


class _UserTypePermission(BasePermission):
    user_type = None
    message = 'Insufficient permissions'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and user.user_type == self.user_type)


class IsPatient(_UserTypePermission):
    """Allow access only to patients."""
    user_type = User.TYPE_PATIENT
    message = 'Only patients can perform this action'


class IsDonor(_UserTypePermission):
    """Allow access only to donors."""
    user_type = User.TYPE_DONOR
    message = 'Only donors can perform this action'


class IsAdminType(_UserTypePermission):
    """Platform administrators (``user_type == Admin``)."""
    user_type = User.TYPE_ADMIN
    message = 'Admin access required'


class IsVerified(BasePermission):
    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if user and user.is_authenticated and not user.is_verified:
            raise exceptions.PermissionDenied('Email address not verified', code='AUTH_EMAIL_NOT_VERIFIED')
        return bool(user and user.is_authenticated)


def ensure_self_or_admin(user, owner_id) -> None:
    """Raise 403 unless ``user`` is ``owner_id`` or an admin."""
    if user.user_type == User.TYPE_ADMIN:
        return
    if str(user.pk) != str(owner_id):
        raise exceptions.PermissionDenied('Access denied', code='FORBIDDEN')
