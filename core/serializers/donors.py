from rest_framework import serializers

from core.models import DonorCoupon, Notification
from core.serializers.auth import PHONE_REGEX
from core.serializers.donation_requests import LATITUDE, LONGITUDE


class DonorListQuerySerializer(serializers.Serializer):
    blood_group_id = serializers.IntegerField(min_value=1, required=False)


class LocationSerializer(serializers.Serializer):
    latitude = serializers.FloatField(**LATITUDE)
    longitude = serializers.FloatField(**LONGITUDE)


class SOSAvailabilitySerializer(serializers.Serializer):
    is_available_for_sos = serializers.BooleanField()


class NotificationQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Notification.STATUS_CHOICES], required=False)
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False, default=50)
    offset = serializers.IntegerField(min_value=0, required=False, default=0)


class CouponQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in DonorCoupon.STATUS_CHOICES], required=False)


class DonationCreateSerializer(serializers.Serializer):
    bank_id = serializers.IntegerField(min_value=1)
    request_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    donation_date = serializers.DateField()
    units_donated = serializers.IntegerField(min_value=1, max_value=10, required=False, default=1)


class PartnerDonorSerializer(serializers.Serializer):
    email = serializers.EmailField()
    full_name = serializers.CharField(min_length=2, max_length=100)
    phone_number = serializers.RegexField(PHONE_REGEX)
    blood_group_id = serializers.IntegerField(min_value=1)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    latitude = serializers.FloatField(required=False, allow_null=True, **LATITUDE)
    longitude = serializers.FloatField(required=False, allow_null=True, **LONGITUDE)
