"""
Partner coupon endpoints.

Donors browse, redeem and validate coupons; administrators manage the
catalogue and read redemption analytics under ``/api/coupons/admin``.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from core.models import Donor
from core.permissions import IsAdminType, IsDonor, IsVerified
from core.responses import ok
from core.serializers.coupons import CouponListQuerySerializer, CouponSerializer, RedemptionCodeSerializer
from core.services import coupons as coupon_service
from core.services import rewards
from core.services.audit import log_action


def _donor(request) -> Donor:
    donor = Donor.objects.filter(pk=request.user.pk).first()
    if donor is None:
        raise PermissionDenied('Donor profile not found')
    return donor


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_coupons(request):
    q = CouponListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = coupon_service.list_available(q.validated_data.get('partner_name'))
    return ok(CouponSerializer(qs, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def coupon_detail(request, coupon_id):
    return ok(CouponSerializer(coupon_service.get_coupon(coupon_id)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDonor, IsVerified])
def redeem(request):
    s = RedemptionCodeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    dc = rewards.redeem(_donor(request), s.validated_data['redemption_code'])
    log_action(user=request.user, action='coupon_redeemed', object_type='donor_coupon', object_id=dc.pk)
    return ok(rewards.serialize_donor_coupon(dc), 'Coupon redeemed successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def validate(request):
    s = RedemptionCodeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return ok(rewards.validate_code(s.validated_data['redemption_code']))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDonor])
def reward_stats(request):
    return ok(rewards.donor_reward_stats(_donor(request)))


# ---------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminType])
def admin_create(request):
    s = CouponSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    coupon = s.save()
    log_action(user=request.user, action='coupon_create', object_type='coupon', object_id=coupon.pk)
    return ok(CouponSerializer(coupon).data, 'Coupon created', status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminType])
def admin_detail(request, coupon_id):
    coupon = coupon_service.get_coupon(coupon_id)
    if request.method == 'DELETE':
        outcome = coupon_service.delete_coupon(coupon)
        log_action(user=request.user, action=f'coupon_{outcome}', object_type='coupon', object_id=coupon_id)
        return ok({'coupon_id': int(coupon_id), 'result': outcome}, f'Coupon {outcome}')
    s = CouponSerializer(coupon, data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    coupon = s.save()
    log_action(user=request.user, action='coupon_update', object_type='coupon', object_id=coupon.pk)
    return ok(CouponSerializer(coupon).data, 'Coupon updated')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminType])
def admin_analytics(request):
    return ok(rewards.coupon_analytics())
