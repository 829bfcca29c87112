"""
API exceptions and the unified exception handler.

Every error leaves the API as
``{"ok": false, "error": {"code": ..., "message": ...}}``; validation
errors add the per-field ``details``.
"""
import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'CONFLICT'


class AccountLocked(exceptions.APIException):
    status_code = status.HTTP_423_LOCKED
    default_detail = 'Account is locked.'
    default_code = 'AUTH_ACCOUNT_LOCKED'

    def __init__(self, detail=None, *, locked_until=None):
        super().__init__(detail)
        self.locked_until = locked_until


class TooManyAttempts(exceptions.APIException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = 'Too many failed login attempts. Try again later.'
    default_code = 'AUTH_TOO_MANY_ATTEMPTS'

    def __init__(self, detail=None, *, retry_after=None):
        super().__init__(detail)
        self.retry_after = retry_after


class InvalidCredentials(exceptions.AuthenticationFailed):
    default_detail = 'Invalid email or password'
    default_code = 'AUTH_INVALID_CREDENTIALS'

    def __init__(self, detail=None, *, attempts_remaining=None):
        super().__init__(detail)
        self.attempts_remaining = attempts_remaining


# DRF's own classes carry lowercase codes; map them onto the API's codes.
_DRF_CODES = {
    exceptions.NotAuthenticated: 'AUTH_TOKEN_MISSING',
    exceptions.AuthenticationFailed: 'AUTH_TOKEN_INVALID',
    exceptions.PermissionDenied: 'AUTH_INSUFFICIENT_PERMISSIONS',
    exceptions.NotFound: 'NOT_FOUND',
    exceptions.ValidationError: 'VALIDATION_ERROR',
    exceptions.ParseError: 'BAD_REQUEST',
    exceptions.MethodNotAllowed: 'METHOD_NOT_ALLOWED',
    exceptions.UnsupportedMediaType: 'UNSUPPORTED_MEDIA_TYPE',
    exceptions.Throttled: 'RATE_LIMIT_EXCEEDED',
}


def _error_code(exc) -> str:
    detail = getattr(exc, 'detail', None)
    code = getattr(detail, 'code', None)
    if isinstance(code, str) and code.isupper():
        return code
    default = getattr(exc, 'default_code', '')
    if isinstance(default, str) and default.isupper():
        return default
    for cls in type(exc).__mro__:
        if cls in _DRF_CODES:
            return _DRF_CODES[cls]
    return 'ERROR'


def _message(data) -> str:
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail'])
        return 'Validation failed'
    if isinstance(data, list):
        return ' '.join(str(x) for x in data) or 'Validation failed'
    return str(data)


def api_exception_handler(exc, context):
    # rest_framework.views resolves the throttle classes, which import this module
    from rest_framework.views import exception_handler as drf_exception_handler

    if isinstance(exc, Http404):
        exc = exceptions.NotFound(str(exc) or None)
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled API error', exc_info=exc)
        error = {'code': 'INTERNAL_ERROR', 'message': 'Something went wrong!'}
        if settings.DEBUG:
            error['detail'] = str(exc)
        return Response({'ok': False, 'error': error}, status=500)

    error = {'code': _error_code(exc), 'message': _message(resp.data)}
    if isinstance(exc, exceptions.ValidationError):
        error['details'] = resp.data
    if isinstance(exc, AccountLocked) and exc.locked_until:
        error['locked_until'] = exc.locked_until.isoformat()
    if isinstance(exc, TooManyAttempts) and exc.retry_after is not None:
        error['retry_after'] = exc.retry_after
        resp['Retry-After'] = str(exc.retry_after)
    if isinstance(exc, InvalidCredentials) and exc.attempts_remaining is not None:
        error['attempts_remaining'] = exc.attempts_remaining
    if isinstance(exc, exceptions.Throttled) and exc.wait is not None:
        error['retry_after'] = int(exc.wait)
    resp.data = {'ok': False, 'error': error}
    return resp
