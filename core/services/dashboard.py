"""Per-user dashboard aggregates for patients and donors."""
from __future__ import annotations

from core.models import Donation, DonationRequest, Donor, DonorCoupon, Notification
from core.services.notifications import serialize_notification

PATIENT_TIPS = [
    'Take your prescribed medications exactly as directed by your doctor',
    'Maintain regular follow-ups with your hematologist',
    'Monitor your iron levels regularly to prevent iron overload',
    'Stay up to date with vaccinations to prevent infections',
    'Maintain a healthy diet rich in iron and vitamins',
]

DONOR_TIPS = [
    'Stay hydrated by drinking plenty of water before and after donation',
    'Eat iron-rich foods to maintain healthy blood levels',
    'Get adequate rest before donating blood',
    'Wait at least 8 weeks between whole blood donations',
    'Avoid alcohol and smoking before donation',
]


def patient_stats(user_id) -> dict:
    qs = DonationRequest.objects.filter(patient_id=user_id)
    return {
        'total_requests': qs.count(),
        'active_requests': qs.filter(
            status__in=[DonationRequest.STATUS_OPEN, DonationRequest.STATUS_IN_PROGRESS]
        ).count(),
        'fulfilled_requests': qs.filter(status=DonationRequest.STATUS_FULFILLED).count(),
        'cancelled_requests': qs.filter(status=DonationRequest.STATUS_CANCELLED).count(),
        'urgent_requests': qs.filter(urgency=DonationRequest.URGENCY_URGENT).count(),
        'sos_requests': qs.filter(urgency=DonationRequest.URGENCY_SOS).count(),
    }


def donor_stats(user_id) -> dict:
    coupons = DonorCoupon.objects.filter(donor_id=user_id)
    notifications = Notification.objects.filter(donor_id=user_id)
    return {
        'total_donations': Donation.objects.filter(donor_id=user_id).count(),
        'available_coupons': coupons.filter(status=DonorCoupon.STATUS_ISSUED).count(),
        'redeemed_coupons': coupons.filter(status=DonorCoupon.STATUS_REDEEMED).count(),
        'unread_notifications': notifications.filter(status=Notification.STATUS_SENT).count(),
        'accepted_requests': notifications.filter(status=Notification.STATUS_ACCEPTED).count(),
    }


def _request_row(req: DonationRequest) -> dict:
    return {
        'request_id': req.pk,
        'blood_group': req.blood_group.group_name,
        'component': req.component.component_name,
        'units_required': req.units_required,
        'urgency': req.urgency,
        'status': req.status,
        'hospital_name': req.hospital_name or 'Unknown Hospital',
        'request_datetime': req.request_datetime,
    }


def patient_requests(user_id, limit: int = 5) -> list[dict]:
    qs = (
        DonationRequest.objects.select_related('blood_group', 'component')
        .filter(patient_id=user_id)
        .order_by('-request_datetime', '-id')[:limit]
    )
    return [_request_row(r) for r in qs]


def available_requests(limit: int = 5, donor_id=None) -> list[dict]:
    qs = (
        DonationRequest.objects.select_related('blood_group', 'component', 'patient__user')
        .filter(status=DonationRequest.STATUS_OPEN)
    )
    if donor_id:
        donor = Donor.objects.filter(pk=donor_id).first()
        if donor is not None and donor.blood_group_id:
            qs = qs.filter(blood_group_id=donor.blood_group_id)
    rows = []
    for r in qs.order_by('-request_datetime', '-id')[:limit]:
        row = _request_row(r)
        row['patient_name'] = r.patient.user.full_name
        rows.append(row)
    return rows


def donor_notifications(donor_id, limit: int = 5) -> list[dict]:
    qs = Notification.objects.filter(donor_id=donor_id).order_by('-sent_at', '-id')[:limit]
    return [serialize_notification(n) for n in qs]


def donor_donations(donor_id, limit: int = 5) -> list[dict]:
    qs = Donation.objects.select_related('bank').filter(donor_id=donor_id).order_by('-donation_date', '-id')[:limit]
    return [
        {
            'donation_id': d.pk,
            'donation_date': d.donation_date,
            'units_donated': d.units_donated,
            'bank_name': d.bank.name,
            'request_id': d.request_id,
        }
        for d in qs
    ]


def health_tips(user_type: str | None) -> list[str]:
    return list(PATIENT_TIPS if user_type == 'Patient' else DONOR_TIPS)
