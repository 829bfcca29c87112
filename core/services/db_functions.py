"""
Gateway to the database-side functions.

The hosted Postgres schema ships stored procedures for the heavy
lifting (SOS fan-out, coupon matching and issuing, bank search). When
``DB_FUNCTIONS_ENABLED`` is on and the connection is PostgreSQL they are
called directly; otherwise, or when a call fails, the ORM versions
below produce the same result.

Expected signatures on the database side:

* ``create_sos_notifications(p_request_id bigint, p_max_distance_km float)``
  returns the number of notifications created
* ``find_matching_coupons_by_interests(p_interests text[], p_limit int)``
  returns rows ``(coupon_id, match_score)``
* ``match_donor_with_coupons(p_donor_id bigint)``
  returns rows ``(coupon_id, match_score)``
* ``issue_coupon_to_donor(p_donor_id bigint, p_coupon_id bigint)``
  returns the id of the new donor coupon
* ``find_nearby_banks(p_latitude float, p_longitude float, p_radius_km float)``
  returns rows ``(bank_id, distance_km)``
"""
from __future__ import annotations

import logging
import secrets
import string
import time

from django.conf import settings
from django.db import DatabaseError, IntegrityError, InterfaceError, OperationalError, connection, transaction
from django.db.models import F, Q
from django.utils import timezone

from core.models import BloodBank, Coupon, DonationRequest, Donor, DonorCoupon, Notification
from core.services.matching import calculate_match_score, haversine_km

logger = logging.getLogger(__name__)

ALLOWED_FUNCTIONS = frozenset({
    'create_sos_notifications',
    'find_matching_coupons_by_interests',
    'match_donor_with_coupons',
    'issue_coupon_to_donor',
    'find_nearby_banks',
})

CODE_ALPHABET = string.ascii_uppercase + string.digits


class CouponUnavailable(Exception):
    """The coupon is inactive, expired or sold out."""


def retry_query(fn, *, attempts=None, base_delay=None):
    """Run ``fn`` retrying transient connection errors with exponential backoff."""
    attempts = attempts or settings.DB_RETRY_ATTEMPTS
    base_delay = settings.DB_RETRY_BASE_DELAY if base_delay is None else base_delay
    for n in range(attempts):
        try:
            return fn()
        except (OperationalError, InterfaceError) as e:
            if n == attempts - 1:
                raise
            delay = base_delay * (2 ** n)
            logger.warning('DB call failed (%s), retry %d/%d in %.2fs', e, n + 1, attempts - 1, delay)
            time.sleep(delay)


def use_db_functions() -> bool:
    return bool(settings.DB_FUNCTIONS_ENABLED) and connection.vendor == 'postgresql'


def call_db_function(name: str, **params) -> list[dict]:
    if name not in ALLOWED_FUNCTIONS:
        raise ValueError(f'unknown database function: {name}')
    args = ', '.join(f'{key} => %s' for key in params)
    sql = f'SELECT * FROM {name}({args})'

    def run():
        with connection.cursor() as c:
            c.execute(sql, list(params.values()))
            cols = [col[0] for col in c.description or []]
            return [dict(zip(cols, row)) for row in c.fetchall()]

    return retry_query(run)


def _call_or_none(name: str, **params):
    """Call the database function; ``None`` means fall back to the ORM."""
    if not use_db_functions():
        return None
    try:
        # savepoint, so a failing function doesn't poison an outer transaction
        with transaction.atomic():
            return call_db_function(name, **params)
    except DatabaseError as e:
        logger.warning('DB function %s failed, using ORM fallback: %s', name, e)
        return None


def _first_value(rows):
    if not rows:
        return None
    return next(iter(rows[0].values()))


# ---------------------------------------------------------------------
# SOS fan-out
# ---------------------------------------------------------------------
def create_sos_notifications(request_id: int, max_distance_km: float | None = None) -> int:
    """Notify every eligible donor near the request; returns the count."""
    radius = settings.SOS_RADIUS_KM if max_distance_km is None else max_distance_km
    rows = _call_or_none('create_sos_notifications', p_request_id=request_id, p_max_distance_km=radius)
    if rows is not None:
        return int(_first_value(rows) or 0)
    return len(_orm_create_sos_notifications(request_id, radius))


def sos_message(req: DonationRequest) -> str:
    hospital = req.hospital_name or 'a nearby hospital'
    return (
        f'URGENT SOS: {req.units_required} unit(s) of {req.blood_group.group_name} '
        f'{req.component.component_name} needed at {hospital}. Can you help?'
    )


def _orm_create_sos_notifications(request_id: int, radius_km: float) -> list[Notification]:
    req = DonationRequest.objects.select_related('blood_group', 'component').filter(pk=request_id).first()
    if req is None or req.latitude is None or req.longitude is None:
        return []
    already = Notification.objects.filter(request=req).values_list('donor_id', flat=True)
    candidates = (
        Donor.objects.filter(
            is_available_for_sos=True,
            blood_group_id=req.blood_group_id,
            user__is_active=True,
            latitude__isnull=False,
            longitude__isnull=False,
        )
        .exclude(pk__in=already)
    )
    message = sos_message(req)
    created = []
    for donor in candidates:
        if haversine_km(req.latitude, req.longitude, donor.latitude, donor.longitude) <= radius_km:
            created.append(Notification(donor=donor, request=req, message=message))
    if created:
        Notification.objects.bulk_create(created)
    return created


# ---------------------------------------------------------------------
# Coupon matching & issuing
# ---------------------------------------------------------------------
def available_coupons():
    today = timezone.localdate()
    return (
        Coupon.objects.filter(is_active=True, quantity_redeemed__lt=F('quantity_total'))
        .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=today))
    )


def _coupons_from_rows(rows) -> list[tuple[Coupon, int]]:
    ids = [r.get('coupon_id') for r in rows if r.get('coupon_id') is not None]
    by_id = Coupon.objects.in_bulk(ids)
    return [(by_id[r['coupon_id']], int(r.get('match_score') or 0)) for r in rows if r.get('coupon_id') in by_id]


def _rank(coupons, interests, limit: int) -> list[tuple[Coupon, int]]:
    scored = [(c, calculate_match_score(interests, c.target_keywords)) for c in coupons]
    scored = [pair for pair in scored if pair[1] > 0]
    scored.sort(key=lambda pair: (-pair[1], pair[0].pk))
    return scored[:limit]


def find_matching_coupons_by_interests(interests, limit: int = 5) -> list[tuple[Coupon, int]]:
    interests = list(interests or [])
    if not interests:
        return []
    rows = _call_or_none('find_matching_coupons_by_interests', p_interests=interests, p_limit=limit)
    if rows is not None:
        return _coupons_from_rows(rows)
    return _rank(available_coupons(), interests, limit)


def match_donor_with_coupons(donor_id: int, limit: int = 5) -> list[tuple[Coupon, int]]:
    rows = _call_or_none('match_donor_with_coupons', p_donor_id=donor_id)
    if rows is not None:
        return _coupons_from_rows(rows)[:limit]
    donor = Donor.objects.filter(pk=donor_id).first()
    if donor is None or not donor.qloo_taste_keywords:
        return []
    held = DonorCoupon.objects.filter(donor=donor).values_list('coupon_id', flat=True)
    return _rank(available_coupons().exclude(pk__in=held), donor.qloo_taste_keywords, limit)


def generate_redemption_code() -> str:
    return 'BW-' + ''.join(secrets.choice(CODE_ALPHABET) for _ in range(8))


def issue_coupon_to_donor(donor_id: int, coupon_id: int) -> DonorCoupon:
    rows = _call_or_none('issue_coupon_to_donor', p_donor_id=donor_id, p_coupon_id=coupon_id)
    if rows is not None:
        issued_id = _first_value(rows)
        if issued_id is None:
            raise CouponUnavailable(f'coupon {coupon_id} could not be issued')
        return DonorCoupon.objects.select_related('coupon').get(pk=issued_id)
    return _orm_issue_coupon(donor_id, coupon_id)


def _orm_issue_coupon(donor_id: int, coupon_id: int) -> DonorCoupon:
    with transaction.atomic():
        coupon = available_coupons().select_for_update().filter(pk=coupon_id).first()
        if coupon is None:
            raise CouponUnavailable(f'coupon {coupon_id} is not available')
        for _ in range(5):
            code = generate_redemption_code()
            if not DonorCoupon.objects.filter(redemption_code=code).exists():
                break
        else:
            raise IntegrityError('could not generate a unique redemption code')
        issued = DonorCoupon.objects.create(donor_id=donor_id, coupon=coupon, redemption_code=code)
        Coupon.objects.filter(pk=coupon.pk).update(quantity_redeemed=F('quantity_redeemed') + 1)
    return issued


# ---------------------------------------------------------------------
# Blood bank search
# ---------------------------------------------------------------------
def find_nearby_banks(latitude: float, longitude: float, radius_km: float = 25, queryset=None) -> list[tuple[BloodBank, float]]:
    """Banks within ``radius_km``, nearest first, as ``(bank, distance_km)``."""
    rows = _call_or_none('find_nearby_banks', p_latitude=latitude, p_longitude=longitude, p_radius_km=radius_km)
    if rows is not None:
        by_id = (queryset if queryset is not None else BloodBank.objects).in_bulk(
            [r['bank_id'] for r in rows if r.get('bank_id') is not None]
        )
        return [(by_id[r['bank_id']], float(r['distance_km'])) for r in rows if r.get('bank_id') in by_id]

    qs = queryset if queryset is not None else BloodBank.objects.all()
    found = []
    for bank in qs.filter(latitude__isnull=False, longitude__isnull=False):
        d = haversine_km(latitude, longitude, bank.latitude, bank.longitude)
        if d <= radius_km:
            found.append((bank, round(d, 2)))
    found.sort(key=lambda pair: pair[1])
    return found
