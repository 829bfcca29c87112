"""Interest ("taste keyword") storage for patients and donors."""
from __future__ import annotations

from collections import Counter

import bleach
from rest_framework.exceptions import PermissionDenied, ValidationError

from core.models import Donor, Patient, User
from core.services import qloo

MAX_INTERESTS = 20
MIN_LEN = 2
MAX_LEN = 50


def sanitize_interests(values) -> list[str]:
    if not isinstance(values, (list, tuple)):
        raise ValidationError({'interests': ['Interests must be an array']})
    seen: list[str] = []
    for v in values:
        if not isinstance(v, str):
            continue
        v = bleach.clean(v, tags=[], strip=True).strip().lower()
        if MIN_LEN <= len(v) <= MAX_LEN and v not in seen:
            seen.append(v)
        if len(seen) >= MAX_INTERESTS:
            break
    return seen


def _profile(user: User):
    if user.user_type == User.TYPE_PATIENT:
        profile = Patient.objects.filter(pk=user.pk).first()
        field = 'taste_keywords'
    elif user.user_type == User.TYPE_DONOR:
        profile = Donor.objects.filter(pk=user.pk).first()
        field = 'qloo_taste_keywords'
    else:
        raise PermissionDenied('Only patients and donors have interests')
    if profile is None:
        raise PermissionDenied('Profile not found')
    return profile, field


def get_interests(user: User) -> list[str]:
    profile, field = _profile(user)
    return list(getattr(profile, field) or [])


def set_interests(user: User, values) -> list[str]:
    interests = sanitize_interests(values)
    if not interests:
        raise ValidationError({'interests': ['At least one valid interest is required']})
    profile, field = _profile(user)
    setattr(profile, field, interests)
    profile.save(update_fields=[field])
    return interests


def enrich_interests(user: User) -> dict:
    """Merge Qloo taste keywords (or the defaults) into the user's interests."""
    profile, field = _profile(user)
    current = list(getattr(profile, field) or [])
    keywords, source = qloo.taste_keywords_or_default(current)
    merged = sanitize_interests(current + keywords)
    setattr(profile, field, merged)
    profile.save(update_fields=[field])
    return {'interests': merged, 'added': [k for k in merged if k not in current], 'source': source}


def interest_stats(top: int = 20) -> list[dict]:
    counter: Counter = Counter()
    for kws in Patient.objects.values_list('taste_keywords', flat=True):
        counter.update(k for k in (kws or []) if isinstance(k, str))
    for kws in Donor.objects.values_list('qloo_taste_keywords', flat=True):
        counter.update(k for k in (kws or []) if isinstance(k, str))
    return [{'interest': k, 'count': n} for k, n in counter.most_common(top)]
