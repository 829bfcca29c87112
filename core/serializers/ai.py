from rest_framework import serializers


class CareBotQuerySerializer(serializers.Serializer):
    message = serializers.CharField(max_length=1000)


class HistoryQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False, default=50)
    offset = serializers.IntegerField(min_value=0, required=False, default=0)
