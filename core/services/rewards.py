"""
Donation rewards.

After a recorded donation the donor is matched against partner coupons
by interest keywords and receives the best one, subject to a cap on
unredeemed coupons and a cooldown between rewards.
"""
from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from core.models import Coupon, Donor, DonorCoupon
from core.services import db_functions
from core.services.notifications import notify_donor

logger = logging.getLogger(__name__)


def reward_message(coupon: Coupon) -> str:
    return (
        "🎉 Thank you for your donation! You've earned a reward: "
        f"{coupon.coupon_title} from {coupon.partner_name}"
    )


def is_eligible(donor: Donor) -> bool:
    held = DonorCoupon.objects.filter(donor=donor, status=DonorCoupon.STATUS_ISSUED).count()
    if held >= settings.MAX_COUPONS_PER_DONOR:
        return False
    since = timezone.now() - timedelta(hours=settings.REWARD_COOLDOWN_HOURS)
    return not DonorCoupon.objects.filter(donor=donor, issued_at__gte=since).exists()


def reward_donor_for_donation(donor: Donor) -> DonorCoupon | None:
    """Issue the best-matching coupon to ``donor``, or ``None`` when none applies."""
    if not is_eligible(donor):
        logger.info('Donor %s not eligible for a reward right now', donor.pk)
        return None
    for coupon, score in db_functions.match_donor_with_coupons(donor.pk):
        try:
            issued = db_functions.issue_coupon_to_donor(donor.pk, coupon.pk)
        except db_functions.CouponUnavailable:
            continue
        notify_donor(donor, reward_message(issued.coupon))
        logger.info('Issued coupon %s to donor %s (score %s)', coupon.pk, donor.pk, score)
        return issued
    return None


def serialize_donor_coupon(dc: DonorCoupon) -> dict:
    c = dc.coupon
    return {
        'id': dc.pk,
        'redemption_code': dc.redemption_code,
        'status': dc.status,
        'issued_at': dc.issued_at,
        'redeemed_at': dc.redeemed_at,
        'coupon': {
            'coupon_id': c.pk,
            'partner_name': c.partner_name,
            'coupon_title': c.coupon_title,
            'description': c.description,
            'discount_percentage': c.discount_percentage,
            'expiry_date': c.expiry_date,
        },
    }


def redeem(donor: Donor, code: str) -> DonorCoupon:
    dc = (
        DonorCoupon.objects.select_related('coupon')
        .filter(redemption_code=(code or '').strip().upper(), donor=donor, status=DonorCoupon.STATUS_ISSUED)
        .first()
    )
    if dc is None:
        raise NotFound('Coupon not found or already redeemed')
    if dc.coupon.is_expired:
        dc.status = DonorCoupon.STATUS_EXPIRED
        dc.save(update_fields=['status'])
        raise ValidationError({'redemption_code': ['Coupon has expired']})
    dc.status = DonorCoupon.STATUS_REDEEMED
    dc.redeemed_at = timezone.now()
    dc.save(update_fields=['status', 'redeemed_at'])
    return dc


def validate_code(code: str) -> dict:
    dc = (
        DonorCoupon.objects.select_related('coupon')
        .filter(redemption_code=(code or '').strip().upper())
        .first()
    )
    if dc is None:
        return {'is_valid': False, 'is_expired': False, 'is_redeemed': False, 'coupon': None,
                'message': 'Invalid redemption code'}
    is_expired = dc.status == DonorCoupon.STATUS_EXPIRED or dc.coupon.is_expired
    is_redeemed = dc.status == DonorCoupon.STATUS_REDEEMED
    is_valid = not (is_expired or is_redeemed)
    if is_redeemed:
        message = 'Coupon has already been redeemed'
    elif is_expired:
        message = 'Coupon has expired'
    else:
        message = 'Coupon is valid'
    return {'is_valid': is_valid, 'is_expired': is_expired, 'is_redeemed': is_redeemed,
            'coupon': serialize_donor_coupon(dc), 'message': message}


def donor_reward_stats(donor: Donor) -> dict:
    agg = DonorCoupon.objects.filter(donor=donor).aggregate(
        total=Count('id'),
        issued=Count('id', filter=Q(status=DonorCoupon.STATUS_ISSUED)),
        redeemed=Count('id', filter=Q(status=DonorCoupon.STATUS_REDEEMED)),
        expired=Count('id', filter=Q(status=DonorCoupon.STATUS_EXPIRED)),
    )
    return agg


def coupon_analytics() -> dict:
    today = timezone.localdate()
    coupons = Coupon.objects.all()
    total = coupons.count()
    active = coupons.filter(is_active=True).filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=today)).count()
    expired = coupons.filter(expiry_date__lt=today).count()
    issued = DonorCoupon.objects.count()
    redeemed = DonorCoupon.objects.filter(status=DonorCoupon.STATUS_REDEEMED).count()
    breakdown = (
        DonorCoupon.objects.values('coupon__partner_name')
        .annotate(issued=Count('id'), redeemed=Count('id', filter=Q(status=DonorCoupon.STATUS_REDEEMED)))
        .order_by('coupon__partner_name')
    )
    return {
        'total': total,
        'active': active,
        'expired': expired,
        'issued': issued,
        'redeemed': redeemed,
        'redemption_rate': round(redeemed / issued * 100, 2) if issued else 0.0,
        'partner_breakdown': [
            {'partner_name': row['coupon__partner_name'], 'issued': row['issued'], 'redeemed': row['redeemed']}
            for row in breakdown
        ],
    }
