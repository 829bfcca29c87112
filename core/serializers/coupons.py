from rest_framework import serializers

from core.models import Coupon


class CouponSerializer(serializers.ModelSerializer):
    coupon_id = serializers.IntegerField(source='id', read_only=True)
    remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = Coupon
        fields = [
            'coupon_id', 'partner_name', 'coupon_title', 'description', 'target_keywords',
            'quantity_total', 'quantity_redeemed', 'remaining', 'discount_percentage',
            'expiry_date', 'is_active', 'created_at',
        ]
        read_only_fields = ['quantity_redeemed', 'created_at']

    def validate_target_keywords(self, v):
        if not isinstance(v, list) or not all(isinstance(k, str) for k in v):
            raise serializers.ValidationError('target_keywords must be a list of strings')
        return [k.strip().lower() for k in v if k.strip()]

    def validate_discount_percentage(self, v):
        if v > 100:
            raise serializers.ValidationError('discount_percentage must be between 0 and 100')
        return v


class CouponListQuerySerializer(serializers.Serializer):
    partner_name = serializers.CharField(max_length=255, required=False)


class RedemptionCodeSerializer(serializers.Serializer):
    redemption_code = serializers.CharField(max_length=16)
