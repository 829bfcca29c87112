"""
Rate limiting.

DRF throttles cover the general and per-scope request limits. Rates
accept a window multiplier, e.g. ``5/15m`` or ``3/1h``, on top of
DRF's plain ``N/unit`` syntax.

``LoginAttemptTracker`` is the per-client failed-login counter. It
lives in the Django cache, keyed by client IP: process-local with the
default LocMem backend, shared when Redis is configured.
"""
from __future__ import annotations

import re
import time

from django.conf import settings
from django.core.cache import cache
from rest_framework.throttling import AnonRateThrottle, ScopedRateThrottle, UserRateThrottle

from core.exceptions import TooManyAttempts

_RATE_RE = re.compile(r'^(\d+)/(\d*)([smhd])\w*$')
_UNIT_SECONDS = {'s': 1, 'm': 60, 'h': 3600, 'd': 86400}


class WindowRateMixin:
    def parse_rate(self, rate):
        if rate is None:
            return (None, None)
        m = _RATE_RE.match(rate.strip())
        if not m:
            raise ValueError(f'invalid throttle rate: {rate!r}')
        num, mult, unit = m.groups()
        return int(num), int(mult or 1) * _UNIT_SECONDS[unit]


class AnonWindowThrottle(WindowRateMixin, AnonRateThrottle):
    pass


class UserWindowThrottle(WindowRateMixin, UserRateThrottle):
    pass


class ScopedWindowThrottle(WindowRateMixin, ScopedRateThrottle):
    pass


def throttle_scope(scope: str):
    """Attach a ScopedRateThrottle scope to an ``@api_view`` function."""
    def decorator(view):
        view.cls.throttle_scope = scope
        return view
    return decorator


def client_ip(request) -> str | None:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return request.META.get('REMOTE_ADDR')


class LoginAttemptTracker:
    """Failed-login counter per client; locks the client out after too many."""

    def __init__(self, *, max_failures=None, window=None, lock_seconds=None):
        self.max_failures = max_failures or settings.LOGIN_CLIENT_MAX_FAILURES
        self.window = window or settings.LOGIN_CLIENT_WINDOW_SECONDS
        self.lock_seconds = lock_seconds or settings.LOGIN_CLIENT_LOCK_SECONDS

    @staticmethod
    def _key(client_id: str) -> str:
        return f'login-attempts:{client_id}'

    def check(self, client_id: str) -> None:
        data = cache.get(self._key(client_id)) or {}
        locked_until = data.get('locked_until')
        now = time.time()
        if locked_until and locked_until > now:
            raise TooManyAttempts(
                'Too many failed login attempts. Account temporarily locked.',
                retry_after=int(locked_until - now) + 1,
            )

    def record_failure(self, client_id: str) -> int:
        key = self._key(client_id)
        now = time.time()
        data = cache.get(key) or {}
        failures = [t for t in data.get('failures', []) if t > now - self.window]
        failures.append(now)
        data['failures'] = failures
        if len(failures) >= self.max_failures:
            data['locked_until'] = now + self.lock_seconds
        cache.set(key, data, timeout=max(self.window, self.lock_seconds))
        return len(failures)

    def clear(self, client_id: str) -> None:
        cache.delete(self._key(client_id))


class SOSCreateThrottle(WindowRateMixin, UserRateThrottle):
    """
    ``sos`` rate, counted per user, for request creation with ``urgency=SOS`` only.

    The check runs before the view, but only requests that were actually
    created count: the view calls ``record`` after a successful create.
    """
    scope = 'sos'

    def allow_request(self, request, view):
        data = request.data if hasattr(request.data, 'get') else {}
        if request.method != 'POST' or data.get('urgency') != 'SOS' or self.rate is None:
            return True
        self.key = self.get_cache_key(request, view)
        if self.key is None:
            return True
        self.now = self.timer()
        self.history = [t for t in self.cache.get(self.key, []) if t > self.now - self.duration]
        return len(self.history) < self.num_requests

    @classmethod
    def record(cls, request) -> None:
        throttle = cls()
        key = throttle.get_cache_key(request, None)
        if key is None or throttle.rate is None:
            return
        now = throttle.timer()
        history = [t for t in throttle.cache.get(key, []) if t > now - throttle.duration]
        history.insert(0, now)
        throttle.cache.set(key, history, throttle.duration)
