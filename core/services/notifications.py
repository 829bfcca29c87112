import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from core.models import DonationRequest, Donor, Notification

logger = logging.getLogger(__name__)


def donor_group(donor_id) -> str:
    return f'donor.{donor_id}'


def serialize_notification(n: Notification) -> dict:
    return {
        'notification_id': n.pk,
        'donor_id': n.donor_id,
        'request_id': n.request_id,
        'message': n.message,
        'status': n.status,
        'sent_at': n.sent_at.isoformat() if n.sent_at else None,
        'responded_at': n.responded_at.isoformat() if n.responded_at else None,
    }


def push_notifications(notifications) -> int:
    """Forward notifications to connected donors over the channels layer."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return 0
    sent = 0
    for n in notifications:
        try:
            async_to_sync(channel_layer.group_send)(
                donor_group(n.donor_id), {'type': 'notification.push', 'notification': serialize_notification(n)}
            )
            sent += 1
        except OSError as e:
            logger.warning('Realtime push to donor %s failed: %s', n.donor_id, e)
    return sent


def notify_donor(donor: Donor, message: str, *, request=None) -> Notification:
    n = Notification.objects.create(donor=donor, request=request, message=message)
    push_notifications([n])
    return n


def get_owned_notification(user, notification_id) -> Notification:
    n = Notification.objects.select_related('request').filter(pk=notification_id).first()
    if n is None:
        raise NotFound('Notification not found')
    if n.donor_id != user.pk:
        raise PermissionDenied('Not your notification', code='FORBIDDEN')
    return n


def mark_read(user, notification_id) -> Notification:
    n = get_owned_notification(user, notification_id)
    n.status = Notification.STATUS_READ
    n.save(update_fields=['status'])
    return n


def respond(notification: Notification, accepted: bool) -> Notification:
    """Record the donor's answer; an accept moves an open request to In Progress."""
    with transaction.atomic():
        notification.status = Notification.STATUS_ACCEPTED if accepted else Notification.STATUS_DECLINED
        notification.responded_at = timezone.now()
        notification.save(update_fields=['status', 'responded_at'])
        if accepted and notification.request_id:
            DonationRequest.objects.filter(
                pk=notification.request_id, status=DonationRequest.STATUS_OPEN
            ).update(status=DonationRequest.STATUS_IN_PROGRESS, updated_at=timezone.now())
    return notification


def respond_to_request(donor: Donor, req: DonationRequest, accepted: bool) -> Notification:
    if req.status not in (DonationRequest.STATUS_OPEN, DonationRequest.STATUS_IN_PROGRESS):
        raise ValidationError({'status': [f'Request is {req.status}']})
    n = Notification.objects.filter(donor=donor, request=req).order_by('-sent_at').first()
    if n is None:
        n = Notification.objects.create(
            donor=donor, request=req, message=f'Response to request #{req.pk}'
        )
    return respond(n, accepted)
