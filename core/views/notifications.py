from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.models import Notification
from core.responses import ok
from core.services import notifications as notification_service


class NotificationResponseSerializer(serializers.Serializer):
    response = serializers.ChoiceField(choices=[Notification.STATUS_ACCEPTED, Notification.STATUS_DECLINED])


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def mark_read(request, notification_id):
    n = notification_service.mark_read(request.user, notification_id)
    return ok(notification_service.serialize_notification(n), 'Notification marked as read')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def respond(request, notification_id):
    n = notification_service.get_owned_notification(request.user, notification_id)
    s = NotificationResponseSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    n = notification_service.respond(n, s.validated_data['response'] == Notification.STATUS_ACCEPTED)
    return ok(notification_service.serialize_notification(n), 'Response recorded')


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_notification(request, notification_id):
    n = notification_service.get_owned_notification(request.user, notification_id)
    n.delete()
    return ok(None, 'Notification deleted', status=status.HTTP_200_OK)
