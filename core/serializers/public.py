from rest_framework import serializers

from core.serializers.donation_requests import LATITUDE, LONGITUDE


class BankQuerySerializer(serializers.Serializer):
    city = serializers.CharField(max_length=100, required=False)
    state = serializers.CharField(max_length=100, required=False)
    latitude = serializers.FloatField(required=False, **LATITUDE)
    longitude = serializers.FloatField(required=False, **LONGITUDE)
    radius = serializers.FloatField(required=False, default=25)

    def validate_radius(self, v):
        if v <= 0:
            raise serializers.ValidationError('radius must be positive')
        return v


class DashboardLimitSerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=5)
    donor_id = serializers.IntegerField(min_value=1, required=False)
    user_type = serializers.ChoiceField(choices=['Patient', 'Donor'], required=False)
