"""
Donor endpoints: directory, self-service settings, inbox, coupons and
donation recording.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated

from core.models import Donor, DonorCoupon, Notification
from core.responses import ok
from core.serializers.donors import (
    CouponQuerySerializer, DonationCreateSerializer, DonorListQuerySerializer, LocationSerializer,
    NotificationQuerySerializer, SOSAvailabilitySerializer,
)
from core.services import donation_requests as request_service
from core.services.notifications import serialize_notification
from core.services.personalization import sanitize_interests
from core.services.rewards import serialize_donor_coupon


def _serialize_donor(d: Donor) -> dict:
    u = d.user
    return {
        'donor_id': d.pk,
        'full_name': u.full_name,
        'email': u.email,
        'phone_number': u.phone_number,
        'city': u.city,
        'state': u.state,
        'blood_group': {'blood_group_id': d.blood_group_id, 'group_name': d.blood_group.group_name}
        if d.blood_group else None,
        'last_donation_date': d.last_donation_date,
        'donation_count': d.donation_count,
        'is_available_for_sos': d.is_available_for_sos,
        'latitude': d.latitude,
        'longitude': d.longitude,
        'qloo_taste_keywords': d.qloo_taste_keywords,
        'preferred_donation_time': d.preferred_donation_time,
    }


def _own_donor(request, donor_id) -> Donor:
    """The donor ``donor_id`` if it is the caller; 404/403 otherwise."""
    donor = Donor.objects.select_related('user', 'blood_group').filter(pk=donor_id).first()
    if donor is None:
        raise NotFound('Donor not found')
    if donor.pk != request.user.pk:
        raise PermissionDenied('You can only manage your own donor profile', code='FORBIDDEN')
    return donor


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_donors(request):
    q = DonorListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = Donor.objects.select_related('user', 'blood_group').filter(is_available_for_sos=True)
    if q.validated_data.get('blood_group_id'):
        qs = qs.filter(blood_group_id=q.validated_data['blood_group_id'])
    rows = [_serialize_donor(d) for d in qs.order_by('-donation_count', 'pk')]
    return ok({'donors': rows, 'total': len(rows)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def donor_detail(request, donor_id):
    donor = Donor.objects.select_related('user', 'blood_group').filter(pk=donor_id).first()
    if donor is None:
        raise NotFound('Donor not found')
    return ok(_serialize_donor(donor))


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_location(request, donor_id):
    donor = _own_donor(request, donor_id)
    s = LocationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    donor.latitude = s.validated_data['latitude']
    donor.longitude = s.validated_data['longitude']
    donor.save(update_fields=['latitude', 'longitude'])
    return ok({'latitude': donor.latitude, 'longitude': donor.longitude}, 'Location updated')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_sos_availability(request, donor_id):
    donor = _own_donor(request, donor_id)
    s = SOSAvailabilitySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    donor.is_available_for_sos = s.validated_data['is_available_for_sos']
    donor.save(update_fields=['is_available_for_sos'])
    return ok({'is_available_for_sos': donor.is_available_for_sos}, 'SOS availability updated')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_interests(request, donor_id):
    donor = _own_donor(request, donor_id)
    donor.qloo_taste_keywords = sanitize_interests(request.data.get('interests'))
    donor.save(update_fields=['qloo_taste_keywords'])
    return ok({'interests': donor.qloo_taste_keywords}, 'Interests updated')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def donor_notifications(request, donor_id):
    donor = _own_donor(request, donor_id)
    q = NotificationQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Notification.objects.filter(donor=donor)
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    total = qs.count()
    page = qs.order_by('-sent_at', '-id')[vd['offset']:vd['offset'] + vd['limit']]
    return ok({'notifications': [serialize_notification(n) for n in page], 'total': total})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def donor_coupons(request, donor_id):
    donor = _own_donor(request, donor_id)
    q = CouponQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = DonorCoupon.objects.select_related('coupon').filter(donor=donor)
    if q.validated_data.get('status'):
        qs = qs.filter(status=q.validated_data['status'])
    rows = [serialize_donor_coupon(dc) for dc in qs.order_by('-issued_at', '-id')]
    return ok({'coupons': rows, 'total': len(rows)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def record_donation(request, donor_id):
    donor = _own_donor(request, donor_id)
    s = DonationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    donation, reward = request_service.record_donation(donor, s.validated_data)
    data = {
        'donation': request_service.serialize_donation(donation),
        'reward': serialize_donor_coupon(reward) if reward else None,
    }
    return ok(data, 'Donation recorded', status=status.HTTP_201_CREATED)
