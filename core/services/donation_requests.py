"""
Donation requests: creation with SOS fan-out, listing, status changes
and donation recording.
"""
from __future__ import annotations

import logging

import bleach
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from core.models import (
    BloodBank, BloodComponent, BloodGroup, Donation, DonationRequest, Donor, Notification, Patient, User,
)
from core.services import db_functions, rewards
from core.services.audit import log_action
from core.services.notifications import push_notifications, serialize_notification

logger = logging.getLogger(__name__)

# allowed moves; Fulfilled and Cancelled are final
TRANSITIONS = {
    DonationRequest.STATUS_OPEN: {
        DonationRequest.STATUS_IN_PROGRESS, DonationRequest.STATUS_FULFILLED, DonationRequest.STATUS_CANCELLED,
    },
    DonationRequest.STATUS_IN_PROGRESS: {DonationRequest.STATUS_FULFILLED, DonationRequest.STATUS_CANCELLED},
}


def serialize_request(req: DonationRequest) -> dict:
    return {
        'request_id': req.pk,
        'patient_id': req.patient_id,
        'blood_group': {'blood_group_id': req.blood_group_id, 'group_name': req.blood_group.group_name},
        'component': {'component_id': req.component_id, 'component_name': req.component.component_name},
        'units_required': req.units_required,
        'urgency': req.urgency,
        'status': req.status,
        'hospital_name': req.hospital_name,
        'hospital_address': req.hospital_address,
        'notes': req.notes,
        'latitude': req.latitude,
        'longitude': req.longitude,
        'request_datetime': req.request_datetime,
        'updated_at': req.updated_at,
    }


def fan_out(req: DonationRequest, *, actor=None) -> int:
    """Notify nearby donors of an SOS request and push the notifications live."""
    count = db_functions.create_sos_notifications(req.pk)
    push_notifications(Notification.objects.filter(request=req, status=Notification.STATUS_SENT))
    log_action(user=actor, action='sos_fanout', object_type='donation_request', object_id=req.pk,
               detail={'notified': count})
    logger.info('SOS request %s notified %s donors', req.pk, count)
    return count


def create_request(patient: Patient, data: dict, *, actor=None) -> tuple[DonationRequest, int]:
    group = BloodGroup.objects.filter(pk=data['blood_group_id']).first()
    if group is None:
        raise ValidationError({'blood_group_id': ['Invalid blood group']})
    component = BloodComponent.objects.filter(pk=data['component_id']).first()
    if component is None:
        raise ValidationError({'component_id': ['Invalid blood component']})
    urgency = data['urgency']
    lat, lng = data.get('latitude'), data.get('longitude')
    if urgency == DonationRequest.URGENCY_SOS and (lat is None or lng is None):
        raise ValidationError({'location': ['latitude and longitude are required for SOS requests']})

    req = DonationRequest.objects.create(
        patient=patient,
        blood_group=group,
        component=component,
        units_required=data['units_required'],
        urgency=urgency,
        hospital_name=data.get('hospital_name') or '',
        hospital_address=data.get('hospital_address') or '',
        notes=bleach.clean(data.get('notes') or '', tags=[], strip=True),
        latitude=lat,
        longitude=lng,
    )
    count = 0
    if urgency == DonationRequest.URGENCY_SOS:
        count = fan_out(req, actor=actor)
    return req, count


def list_requests(user: User, *, status=None, urgency=None):
    qs = DonationRequest.objects.select_related('blood_group', 'component')
    if user.user_type == User.TYPE_PATIENT:
        qs = qs.filter(patient_id=user.pk)
        if status:
            qs = qs.filter(status=status)
    else:
        qs = qs.filter(status=status or DonationRequest.STATUS_OPEN)
    if urgency:
        qs = qs.filter(urgency=urgency)
    return qs.order_by('-request_datetime', '-id')


def get_request(request_id) -> DonationRequest:
    req = DonationRequest.objects.select_related('blood_group', 'component').filter(pk=request_id).first()
    if req is None:
        raise NotFound('Request not found')
    return req


def request_detail(user: User, request_id) -> dict:
    req = get_request(request_id)
    if user.user_type == User.TYPE_PATIENT and req.patient_id != user.pk:
        raise PermissionDenied('Access denied', code='FORBIDDEN')
    data = serialize_request(req)
    if user.user_type == User.TYPE_DONOR:
        n = Notification.objects.filter(request=req, donor_id=user.pk).order_by('-sent_at').first()
        data['notification'] = serialize_notification(n) if n else None
    return data


def change_status(user: User, request_id, new_status: str) -> DonationRequest:
    req = get_request(request_id)
    if req.patient_id != user.pk:
        raise PermissionDenied('Only the requesting patient can change the status', code='FORBIDDEN')
    if new_status not in TRANSITIONS.get(req.status, set()):
        raise ValidationError({'status': [f'Cannot change status from {req.status} to {new_status}']})
    req.status = new_status
    req.save(update_fields=['status', 'updated_at'])
    return req


def record_donation(donor: Donor, data: dict) -> tuple[Donation, object]:
    """Store a donation, fulfil its request and reward the donor."""
    bank = BloodBank.objects.filter(pk=data['bank_id']).first()
    if bank is None:
        raise ValidationError({'bank_id': ['Invalid blood bank']})
    req = None
    if data.get('request_id'):
        req = DonationRequest.objects.filter(pk=data['request_id']).first()
        if req is None:
            raise ValidationError({'request_id': ['Invalid request']})
        if req.status in DonationRequest.FINAL_STATUSES:
            raise ValidationError({'request_id': [f'Request is already {req.status}']})

    with transaction.atomic():
        donation = Donation.objects.create(
            donor=donor,
            bank=bank,
            request=req,
            donation_date=data['donation_date'],
            units_donated=data.get('units_donated') or 1,
        )
        Donor.objects.filter(pk=donor.pk).update(
            last_donation_date=donation.donation_date, donation_count=F('donation_count') + 1
        )
        if req is not None:
            DonationRequest.objects.filter(pk=req.pk).update(
                status=DonationRequest.STATUS_FULFILLED, updated_at=timezone.now()
            )
        donor.refresh_from_db()
        reward = rewards.reward_donor_for_donation(donor)
    log_action(user=donor.user, action='donation_recorded', object_type='donation', object_id=donation.pk,
               detail={'request_id': req.pk if req else None, 'reward': reward.pk if reward else None})
    if reward is not None:
        log_action(user=donor.user, action='coupon_issued', object_type='donor_coupon', object_id=reward.pk)
    return donation, reward


def serialize_donation(d: Donation) -> dict:
    return {
        'donation_id': d.pk,
        'donor_id': d.donor_id,
        'bank_id': d.bank_id,
        'bank_name': d.bank.name,
        'request_id': d.request_id,
        'donation_date': d.donation_date,
        'units_donated': d.units_donated,
        'created_at': d.created_at,
    }
