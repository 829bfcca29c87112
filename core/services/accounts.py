"""
Account lifecycle: registration, email verification, password
management, login and profiles.

Views stay thin and call into here; every failure is raised as a DRF
exception (or one of the API's own in ``core.exceptions``) and turned
into the error envelope by the exception handler.
"""
from __future__ import annotations

import logging
import math
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from core.exceptions import AccountLocked, Conflict, InvalidCredentials
from core.models import (
    BloodGroup, Donor, EmailVerification, LoginAttempt, Notification,
    DonationRequest, PasswordReset, Patient, User,
)
from core.services import emails, passwords, tokens
from core.services.audit import log_action
from core.throttling import LoginAttemptTracker

logger = logging.getLogger(__name__)


def _blood_group(blood_group_id) -> BloodGroup:
    group = BloodGroup.objects.filter(pk=blood_group_id).first()
    if group is None:
        raise ValidationError({'blood_group_id': ['Invalid blood group']})
    return group


def _ensure_strong(password: str, field: str = 'password') -> None:
    result = passwords.validate_strength(password)
    if not result['is_valid']:
        raise ValidationError({field: result['errors'], 'suggestions': result['suggestions']})


# ---------------------------------------------------------------------
# Registration & verification
# ---------------------------------------------------------------------
def create_account(*, email, password, full_name, phone_number, user_type, blood_group_id,
                   city='', state='', date_of_birth=None, is_verified=False,
                   latitude=None, longitude=None) -> User:
    """Create a user and its Patient/Donor profile atomically."""
    email = email.strip().lower()
    if User.objects.filter(email=email).exists():
        raise Conflict('User with this email already exists')
    group = _blood_group(blood_group_id)
    with transaction.atomic():
        user = User.objects.create_user(
            email=email,
            password=password,
            full_name=full_name,
            phone_number=phone_number,
            city=city or '',
            state=state or '',
            user_type=user_type,
            is_verified=is_verified,
        )
        if user_type == User.TYPE_PATIENT:
            Patient.objects.create(user=user, blood_group=group, date_of_birth=date_of_birth)
        else:
            Donor.objects.create(user=user, blood_group=group, latitude=latitude, longitude=longitude)
    return user


def issue_verification(user: User) -> str:
    raw, digest = passwords.make_token()
    EmailVerification.objects.create(
        user=user,
        token_hash=digest,
        expires_at=timezone.now() + timedelta(hours=settings.EMAIL_VERIFICATION_HOURS),
    )
    emails.send_verification_email(user, raw)
    return raw


def register(data: dict, *, ip=None) -> User:
    _ensure_strong(data['password'])
    user = create_account(
        email=data['email'],
        password=data['password'],
        full_name=data['full_name'],
        phone_number=data['phone_number'],
        user_type=data['user_type'],
        blood_group_id=data['blood_group_id'],
        city=data.get('city', ''),
        state=data.get('state', ''),
        date_of_birth=data.get('date_of_birth'),
    )
    issue_verification(user)
    log_action(user=user, action='register', object_type='user', object_id=user.pk,
               detail={'user_type': user.user_type, 'ip': ip})
    return user


def verify_email(raw_token: str) -> User:
    record = (
        EmailVerification.objects.select_related('user')
        .filter(token_hash=passwords.hash_token(raw_token), verified_at__isnull=True)
        .first()
    )
    if record is None or record.expires_at <= timezone.now():
        raise ValidationError({'token': ['Invalid or expired verification token']})
    with transaction.atomic():
        record.verified_at = timezone.now()
        record.save(update_fields=['verified_at'])
        user = record.user
        user.is_verified = True
        user.save(update_fields=['is_verified', 'updated_at'])
    return user


def resend_verification(email: str) -> None:
    user = User.objects.filter(email=(email or '').strip().lower(), is_verified=False, is_active=True).first()
    if user is not None:
        issue_verification(user)


def email_available(email: str) -> bool:
    return not User.objects.filter(email=email.strip().lower()).exists()


# ---------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------
def forgot_password(email: str, *, ip=None) -> None:
    user = User.objects.filter(email=(email or '').strip().lower(), is_active=True).first()
    if user is None:
        return
    raw, digest = passwords.make_token()
    PasswordReset.objects.create(
        user=user,
        token_hash=digest,
        expires_at=timezone.now() + timedelta(minutes=settings.PASSWORD_RESET_MINUTES),
        ip_address=ip,
    )
    emails.send_password_reset_email(user, raw)


def reset_password(raw_token: str, password: str, confirm: str, *, ip=None) -> User:
    if password != confirm:
        raise ValidationError({'confirmPassword': ['Passwords do not match']})
    _ensure_strong(password)
    record = (
        PasswordReset.objects.select_related('user')
        .filter(token_hash=passwords.hash_token(raw_token), used_at__isnull=True)
        .first()
    )
    if record is None or record.expires_at <= timezone.now():
        raise ValidationError({'token': ['Invalid or expired reset token']})
    user = record.user
    with transaction.atomic():
        user.set_password(password)
        user.failed_login_attempts = 0
        user.locked_until = None
        user.save()
        record.used_at = timezone.now()
        record.save(update_fields=['used_at'])
        revoked = tokens.revoke_all_refresh(user)
    log_action(user=user, action='password_reset', object_type='user', object_id=user.pk,
               detail={'ip': ip, 'revoked_sessions': revoked})
    emails.send_password_changed_email(user)
    return user


def change_password(user: User, current: str, new: str, confirm: str) -> None:
    if not user.check_password(current):
        raise ValidationError({'currentPassword': ['Current password is incorrect']})
    if new != confirm:
        raise ValidationError({'confirmPassword': ['Passwords do not match']})
    if current == new:
        raise ValidationError({'newPassword': ['New password must be different from the current password']})
    _ensure_strong(new, 'newPassword')
    with transaction.atomic():
        user.set_password(new)
        user.save()
        revoked = tokens.revoke_all_refresh(user)
    log_action(user=user, action='password_change', object_type='user', object_id=user.pk,
               detail={'revoked_sessions': revoked})
    emails.send_password_changed_email(user)


# ---------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------
def _record_attempt(email, user, ip, user_agent, success, reason) -> None:
    LoginAttempt.objects.create(
        email=email, user=user, ip_address=ip, user_agent=(user_agent or '')[:255],
        success=success, reason=reason,
    )


def _locked_error(user: User) -> AccountLocked:
    minutes = max(math.ceil((user.locked_until - timezone.now()).total_seconds() / 60), 1)
    return AccountLocked(f'Account is locked. Try again in {minutes} minutes.', locked_until=user.locked_until)


def login(email: str, password: str, *, ip=None, user_agent: str = '', tracker=None) -> dict:
    """Authenticate and return a token pair plus the user's profile.

    Wrong passwords count towards the per-account lockout; 401 answers
    also count towards the per-client limit kept by ``tracker``.
    """
    tracker = tracker or LoginAttemptTracker()
    client_id = ip or 'unknown'
    tracker.check(client_id)

    email = (email or '').strip().lower()
    user = User.objects.filter(email=email).first()

    if user is None or not user.is_active:
        _record_attempt(email, user, ip, user_agent, False, 'unknown_user' if user is None else 'inactive')
        tracker.record_failure(client_id)
        log_action(user=user, action='login_failed', object_type='user',
                   object_id=user.pk if user else None, detail={'email': email, 'ip': ip})
        raise InvalidCredentials()

    if user.is_locked:
        _record_attempt(email, user, ip, user_agent, False, 'locked')
        raise _locked_error(user)

    if not user.check_password(password):
        user.failed_login_attempts += 1
        max_attempts = settings.LOGIN_MAX_ATTEMPTS
        if user.failed_login_attempts >= max_attempts:
            user.locked_until = timezone.now() + timedelta(minutes=settings.LOGIN_LOCK_MINUTES)
            user.save(update_fields=['failed_login_attempts', 'locked_until'])
            _record_attempt(email, user, ip, user_agent, False, 'locked')
            log_action(user=user, action='account_locked', object_type='user', object_id=user.pk,
                       detail={'ip': ip})
            emails.send_security_alert(user, reason='Your account was locked after repeated failed logins', ip=ip)
            raise _locked_error(user)
        user.save(update_fields=['failed_login_attempts'])
        _record_attempt(email, user, ip, user_agent, False, 'bad_password')
        tracker.record_failure(client_id)
        log_action(user=user, action='login_failed', object_type='user', object_id=user.pk, detail={'ip': ip})
        raise InvalidCredentials(attempts_remaining=max_attempts - user.failed_login_attempts)

    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login = timezone.now()
    user.save(update_fields=['failed_login_attempts', 'locked_until', 'last_login'])
    tracker.clear(client_id)

    pair = tokens.issue_token_pair(user, ip=ip, user_agent=user_agent)
    _record_attempt(email, user, ip, user_agent, True, 'ok')
    log_action(user=user, action='login', object_type='user', object_id=user.pk, detail={'ip': ip})
    emails.send_login_notification(user, ip=ip, user_agent=user_agent)
    return {**pair, 'user': serialize_profile(user)}


# ---------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------
def _group_payload(group):
    if group is None:
        return None
    return {'blood_group_id': group.pk, 'group_name': group.group_name}


def serialize_profile(user: User) -> dict:
    data = {
        'user_id': user.pk,
        'email': user.email,
        'phone_number': user.phone_number,
        'full_name': user.full_name,
        'city': user.city,
        'state': user.state,
        'user_type': user.user_type,
        'is_verified': user.is_verified,
        'is_active': user.is_active,
        'created_at': user.created_at,
        'last_login_at': user.last_login,
    }
    if user.user_type == User.TYPE_PATIENT:
        p = Patient.objects.select_related('blood_group').filter(pk=user.pk).first()
        if p is not None:
            data.update({
                'blood_group': _group_payload(p.blood_group),
                'date_of_birth': p.date_of_birth,
                'emergency_contact_name': p.emergency_contact_name,
                'emergency_contact_phone': p.emergency_contact_phone,
                'medical_conditions': p.medical_conditions,
                'allergies': p.allergies,
                'current_medications': p.current_medications,
                'taste_keywords': p.taste_keywords,
            })
    elif user.user_type == User.TYPE_DONOR:
        d = Donor.objects.select_related('blood_group').filter(pk=user.pk).first()
        if d is not None:
            data.update({
                'blood_group': _group_payload(d.blood_group),
                'last_donation_date': d.last_donation_date,
                'donation_count': d.donation_count,
                'is_available_for_sos': d.is_available_for_sos,
                'latitude': d.latitude,
                'longitude': d.longitude,
                'qloo_taste_keywords': d.qloo_taste_keywords,
                'preferred_donation_time': d.preferred_donation_time,
                'notification_preferences': d.notification_preferences,
            })
    return data


USER_FIELDS = ('full_name', 'phone_number', 'city', 'state')
PATIENT_FIELDS = (
    'date_of_birth', 'emergency_contact_name', 'emergency_contact_phone',
    'medical_conditions', 'allergies', 'current_medications',
)
DONOR_FIELDS = ('preferred_donation_time', 'notification_preferences')


def update_profile(user: User, data: dict) -> dict:
    """Apply the whitelisted fields in ``data``; everything else is ignored."""
    with transaction.atomic():
        changed = [f for f in USER_FIELDS if f in data]
        for f in changed:
            setattr(user, f, data[f])
        if changed:
            user.save(update_fields=changed + ['updated_at'])

        if user.user_type == User.TYPE_PATIENT:
            profile, fields = Patient.objects.filter(pk=user.pk).first(), PATIENT_FIELDS
        elif user.user_type == User.TYPE_DONOR:
            profile, fields = Donor.objects.filter(pk=user.pk).first(), DONOR_FIELDS
        else:
            profile, fields = None, ()
        if profile is not None:
            changed = [f for f in fields if f in data]
            for f in changed:
                setattr(profile, f, data[f])
            if 'blood_group_id' in data:
                profile.blood_group = _blood_group(data['blood_group_id'])
                changed.append('blood_group')
            if changed:
                profile.save(update_fields=changed)
    return serialize_profile(user)


def profile_stats(user: User) -> dict:
    if user.user_type == User.TYPE_PATIENT:
        qs = DonationRequest.objects.filter(patient_id=user.pk)
        return {
            'total_requests': qs.count(),
            'active_requests': qs.filter(status=DonationRequest.STATUS_OPEN).count(),
            'fulfilled_requests': qs.filter(status=DonationRequest.STATUS_FULFILLED).count(),
        }
    if user.user_type == User.TYPE_DONOR:
        donor = Donor.objects.filter(pk=user.pk).first()
        if donor is None:
            raise NotFound('Donor profile not found')
        responses = Notification.objects.filter(donor=donor, responded_at__isnull=False)
        return {
            'total_donations': donor.donation_count,
            'last_donation': donor.last_donation_date,
            'total_responses': responses.count(),
            'accepted_responses': responses.filter(status=Notification.STATUS_ACCEPTED).count(),
        }
    return {}


# ---------------------------------------------------------------------
# Partner onboarding
# ---------------------------------------------------------------------
def register_partner_donor(data: dict) -> tuple[User, str]:
    """Create a verified donor with a generated temporary password."""
    temporary = passwords.generate_secure_password(16)
    user = create_account(
        email=data['email'],
        password=temporary,
        full_name=data['full_name'],
        phone_number=data['phone_number'],
        user_type=User.TYPE_DONOR,
        blood_group_id=data['blood_group_id'],
        city=data.get('city', ''),
        state=data.get('state', ''),
        is_verified=True,
        latitude=data.get('latitude'),
        longitude=data.get('longitude'),
    )
    log_action(user=user, action='partner_register_donor', object_type='user', object_id=user.pk)
    return user, temporary
