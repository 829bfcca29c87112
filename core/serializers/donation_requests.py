from rest_framework import serializers

from core.models import DonationRequest

LATITUDE = dict(min_value=-90, max_value=90)
LONGITUDE = dict(min_value=-180, max_value=180)


class DonationRequestCreateSerializer(serializers.Serializer):
    blood_group_id = serializers.IntegerField(min_value=1)
    component_id = serializers.IntegerField(min_value=1)
    units_required = serializers.IntegerField(min_value=1, max_value=10)
    urgency = serializers.ChoiceField(choices=[c for c, _ in DonationRequest.URGENCY_CHOICES])
    hospital_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    hospital_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    latitude = serializers.FloatField(required=False, allow_null=True, **LATITUDE)
    longitude = serializers.FloatField(required=False, allow_null=True, **LONGITUDE)


class RequestListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in DonationRequest.STATUS_CHOICES], required=False)
    urgency = serializers.ChoiceField(choices=[c for c, _ in DonationRequest.URGENCY_CHOICES], required=False)


class RespondSerializer(serializers.Serializer):
    response = serializers.ChoiceField(choices=['accept', 'decline'])


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in DonationRequest.STATUS_CHOICES])


class PartnerSOSSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField(min_value=1)
    blood_group_id = serializers.IntegerField(min_value=1)
    component_id = serializers.IntegerField(min_value=1)
    units_required = serializers.IntegerField(min_value=1, max_value=10)
    latitude = serializers.FloatField(**LATITUDE)
    longitude = serializers.FloatField(**LONGITUDE)
    hospital_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)
