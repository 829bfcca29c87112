from __future__ import annotations

from django.db import transaction
from rest_framework.exceptions import NotFound

from core.models import Coupon, DonorCoupon
from core.services.db_functions import available_coupons


def list_available(partner_name=None):
    qs = available_coupons()
    if partner_name:
        qs = qs.filter(partner_name__icontains=partner_name)
    return qs.order_by('-created_at', '-id')


def get_coupon(coupon_id) -> Coupon:
    coupon = Coupon.objects.filter(pk=coupon_id).first()
    if coupon is None:
        raise NotFound('Coupon not found')
    return coupon


def delete_coupon(coupon: Coupon) -> str:
    """Deactivate a coupon that was already issued; delete it otherwise."""
    with transaction.atomic():
        if DonorCoupon.objects.filter(coupon=coupon).exists():
            coupon.is_active = False
            coupon.save(update_fields=['is_active'])
            return 'deactivated'
        coupon.delete()
    return 'deleted'
