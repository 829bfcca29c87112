"""
Database models for the Blood Warriors API.

These models capture the concepts of the platform: users with a
Patient or Donor profile, donation requests and the notifications
fanned out to donors, recorded donations, and the partner coupons
issued as rewards. Reference tables (blood groups, components, banks
and stock) are seeded by ``manage.py seed_data``.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils import timezone


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

class BloodGroup(models.Model):
    group_name = models.CharField(max_length=5, unique=True)

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return self.group_name


class BloodComponent(models.Model):
    component_name = models.CharField(max_length=50, unique=True)

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return self.component_name


class BloodBank(models.Model):
    """A blood bank or collection centre.

    Coordinates are optional; banks without them are simply left out of
    radius searches.
    """
    name = models.CharField(max_length=255, unique=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True, db_index=True)
    state = models.CharField(max_length=100, blank=True)
    category = models.CharField(max_length=50, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    def __str__(self) -> str:
        return self.name


class BloodStock(models.Model):
    bank = models.ForeignKey(BloodBank, on_delete=models.CASCADE, related_name='stock')
    blood_group = models.ForeignKey(BloodGroup, on_delete=models.CASCADE, related_name='+')
    component = models.ForeignKey(BloodComponent, on_delete=models.CASCADE, related_name='+')
    units_available = models.PositiveIntegerField(default=0)
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('bank', 'blood_group', 'component')]

    def __str__(self) -> str:
        return f"{self.bank_id}:{self.blood_group_id}/{self.component_id}={self.units_available}"


# ---------------------------------------------------------------------------
# Users & profiles
# ---------------------------------------------------------------------------

class UserManager(BaseUserManager):
    """Manager for the email-keyed user model."""
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('email is required')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('user_type', User.TYPE_ADMIN)
        extra_fields.setdefault('is_verified', True)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Account of a patient, donor or platform administrator.

    The email is the login identifier and is always stored lowercased.
    ``failed_login_attempts`` and ``locked_until`` implement the
    per-account lockout applied by the login endpoint.
    """
    TYPE_PATIENT = 'Patient'
    TYPE_DONOR = 'Donor'
    TYPE_ADMIN = 'Admin'
    TYPE_CHOICES = [
        (TYPE_PATIENT, 'Patient'),
        (TYPE_DONOR, 'Donor'),
        (TYPE_ADMIN, 'Admin'),
    ]

    username = None
    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=100)
    phone_number = models.CharField(max_length=15, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    user_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_PATIENT, db_index=True)
    is_verified = models.BooleanField(default=False)
    failed_login_attempts = models.PositiveIntegerField(default=0)
    locked_until = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS: list[str] = []

    objects = UserManager()

    def __str__(self) -> str:
        return f"{self.email} ({self.user_type})"

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)

    @property
    def is_locked(self) -> bool:
        return bool(self.locked_until and self.locked_until > timezone.now())

    def get_full_name(self) -> str:
        return self.full_name


class Patient(models.Model):
    """Patient profile; shares its primary key with the user."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, related_name='patient')
    blood_group = models.ForeignKey(BloodGroup, null=True, on_delete=models.SET_NULL, related_name='patients')
    date_of_birth = models.DateField(null=True, blank=True)
    emergency_contact_name = models.CharField(max_length=100, blank=True)
    emergency_contact_phone = models.CharField(max_length=15, blank=True)
    medical_conditions = models.TextField(blank=True)
    allergies = models.TextField(blank=True)
    current_medications = models.TextField(blank=True)
    taste_keywords = models.JSONField(default=list, blank=True)

    def __str__(self) -> str:
        return f"Patient {self.user_id}"


class Donor(models.Model):
    """Donor profile; shares its primary key with the user."""
    TIME_CHOICES = [
        ('morning', 'Morning'),
        ('afternoon', 'Afternoon'),
        ('evening', 'Evening'),
        ('any', 'Any'),
    ]
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, related_name='donor')
    blood_group = models.ForeignKey(BloodGroup, null=True, on_delete=models.SET_NULL, related_name='donors')
    last_donation_date = models.DateField(null=True, blank=True)
    donation_count = models.PositiveIntegerField(default=0)
    # SOS fan-out filters on availability; keep it indexed
    is_available_for_sos = models.BooleanField(default=True, db_index=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    qloo_taste_keywords = models.JSONField(default=list, blank=True)
    preferred_donation_time = models.CharField(max_length=10, choices=TIME_CHOICES, default='any')
    notification_preferences = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:
        return f"Donor {self.user_id}"


# ---------------------------------------------------------------------------
# Requests, notifications & donations
# ---------------------------------------------------------------------------

class DonationRequest(models.Model):
    URGENCY_SOS = 'SOS'
    URGENCY_URGENT = 'Urgent'
    URGENCY_SCHEDULED = 'Scheduled'
    URGENCY_CHOICES = [
        (URGENCY_SOS, 'SOS'),
        (URGENCY_URGENT, 'Urgent'),
        (URGENCY_SCHEDULED, 'Scheduled'),
    ]

    STATUS_OPEN = 'Open'
    STATUS_IN_PROGRESS = 'In Progress'
    STATUS_FULFILLED = 'Fulfilled'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_OPEN, 'Open'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_FULFILLED, 'Fulfilled'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    FINAL_STATUSES = {STATUS_FULFILLED, STATUS_CANCELLED}

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='requests')
    blood_group = models.ForeignKey(BloodGroup, on_delete=models.PROTECT, related_name='+')
    component = models.ForeignKey(BloodComponent, on_delete=models.PROTECT, related_name='+')
    units_required = models.PositiveSmallIntegerField()
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, db_index=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_OPEN, db_index=True)
    hospital_name = models.CharField(max_length=255, blank=True)
    hospital_address = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    request_datetime = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'request_datetime']),
            models.Index(fields=['patient', 'request_datetime']),
        ]

    def __str__(self) -> str:
        return f"Request {self.pk} {self.urgency}/{self.status}"


class Notification(models.Model):
    STATUS_SENT = 'Sent'
    STATUS_READ = 'Read'
    STATUS_ACCEPTED = 'Accepted'
    STATUS_DECLINED = 'Declined'
    STATUS_CHOICES = [
        (STATUS_SENT, 'Sent'),
        (STATUS_READ, 'Read'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_DECLINED, 'Declined'),
    ]

    donor = models.ForeignKey(Donor, on_delete=models.CASCADE, related_name='notifications')
    request = models.ForeignKey(
        DonationRequest, null=True, blank=True, on_delete=models.CASCADE, related_name='notifications'
    )
    message = models.TextField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_SENT, db_index=True)
    sent_at = models.DateTimeField(default=timezone.now)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['donor', 'sent_at']),
        ]

    def __str__(self) -> str:
        return f"Notification {self.pk} -> donor {self.donor_id} ({self.status})"


class Donation(models.Model):
    donor = models.ForeignKey(Donor, on_delete=models.CASCADE, related_name='donations')
    bank = models.ForeignKey(BloodBank, on_delete=models.PROTECT, related_name='donations')
    request = models.ForeignKey(
        DonationRequest, null=True, blank=True, on_delete=models.SET_NULL, related_name='donations'
    )
    donation_date = models.DateField()
    units_donated = models.PositiveSmallIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Donation {self.pk} by {self.donor_id} on {self.donation_date}"


# ---------------------------------------------------------------------------
# Coupons & rewards
# ---------------------------------------------------------------------------

class Coupon(models.Model):
    """A partner offer that donors receive as a thank-you reward."""
    partner_name = models.CharField(max_length=255)
    coupon_title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    target_keywords = models.JSONField(default=list, blank=True)
    quantity_total = models.PositiveIntegerField(default=0)
    quantity_redeemed = models.PositiveIntegerField(default=0)
    discount_percentage = models.PositiveSmallIntegerField(default=0)
    expiry_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('partner_name', 'coupon_title')]

    def __str__(self) -> str:
        return f"{self.coupon_title} ({self.partner_name})"

    @property
    def is_expired(self) -> bool:
        return bool(self.expiry_date and self.expiry_date < timezone.localdate())

    @property
    def remaining(self) -> int:
        return max(self.quantity_total - self.quantity_redeemed, 0)


class DonorCoupon(models.Model):
    STATUS_ISSUED = 'Issued'
    STATUS_REDEEMED = 'Redeemed'
    STATUS_EXPIRED = 'Expired'
    STATUS_CHOICES = [
        (STATUS_ISSUED, 'Issued'),
        (STATUS_REDEEMED, 'Redeemed'),
        (STATUS_EXPIRED, 'Expired'),
    ]

    donor = models.ForeignKey(Donor, on_delete=models.CASCADE, related_name='coupons')
    coupon = models.ForeignKey(Coupon, on_delete=models.PROTECT, related_name='issued')
    redemption_code = models.CharField(max_length=16, unique=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ISSUED, db_index=True)
    issued_at = models.DateTimeField(default=timezone.now)
    redeemed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return f"{self.redemption_code} -> donor {self.donor_id} ({self.status})"


# ---------------------------------------------------------------------------
# CareBot
# ---------------------------------------------------------------------------

class ChatHistory(models.Model):
    SOURCE_CHOICES = [('llm', 'llm'), ('fallback', 'fallback')]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='chat_history')
    prompt = models.TextField()
    response = models.TextField()
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default='fallback')
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    def __str__(self) -> str:
        return f"Chat {self.pk} ({self.user_id})"


# ---------------------------------------------------------------------------
# Auth bookkeeping
# ---------------------------------------------------------------------------

class RefreshSession(models.Model):
    """Client metadata for an issued refresh token (see token_blacklist)."""
    token = models.OneToOneField(
        'token_blacklist.OutstandingToken', on_delete=models.CASCADE, related_name='session'
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Session {self.token_id} @ {self.ip_address}"


class LoginAttempt(models.Model):
    email = models.EmailField(db_index=True)
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='login_attempts')
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    success = models.BooleanField(default=False)
    reason = models.CharField(max_length=32, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['email', 'created_at']),
        ]

    def __str__(self):
        return f"{self.email} {'ok' if self.success else self.reason} @ {self.created_at:%F %T}"


class EmailVerification(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='email_verifications')
    token_hash = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField()
    verified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)


class PasswordReset(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='password_resets')
    token_hash = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)


class AuditEvent(models.Model):
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='audit_events')
    action = models.CharField(max_length=64, db_index=True)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
