"""
Django admin registrations for the core models.

Every model is reachable from ``/admin/`` so that operators can inspect
requests, notifications and rewards, and fix reference data by hand.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    BloodBank,
    BloodComponent,
    BloodGroup,
    BloodStock,
    ChatHistory,
    Coupon,
    Donation,
    DonationRequest,
    Donor,
    DonorCoupon,
    EmailVerification,
    LoginAttempt,
    Notification,
    PasswordReset,
    Patient,
    RefreshSession,
    User,
)


@admin.register(BloodGroup)
class BloodGroupAdmin(admin.ModelAdmin):
    list_display = ('id', 'group_name')


@admin.register(BloodComponent)
class BloodComponentAdmin(admin.ModelAdmin):
    list_display = ('id', 'component_name')


@admin.register(BloodBank)
class BloodBankAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'city', 'state', 'category', 'phone')
    list_filter = ('state', 'category')
    search_fields = ('name', 'city', 'state')


@admin.register(BloodStock)
class BloodStockAdmin(admin.ModelAdmin):
    list_display = ('bank', 'blood_group', 'component', 'units_available', 'last_updated')
    list_filter = ('blood_group', 'component')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'full_name', 'user_type', 'is_verified', 'is_active', 'locked_until')
    list_filter = ('user_type', 'is_verified', 'is_active')
    search_fields = ('email', 'full_name', 'phone_number')
    exclude = ('password',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('user', 'blood_group', 'date_of_birth')
    search_fields = ('user__email', 'user__full_name')


@admin.register(Donor)
class DonorAdmin(admin.ModelAdmin):
    list_display = ('user', 'blood_group', 'donation_count', 'last_donation_date', 'is_available_for_sos')
    list_filter = ('blood_group', 'is_available_for_sos')
    search_fields = ('user__email', 'user__full_name')


@admin.register(DonationRequest)
class DonationRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'blood_group', 'component', 'urgency', 'status', 'request_datetime')
    list_filter = ('urgency', 'status', 'blood_group')
    search_fields = ('hospital_name', 'patient__user__email')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'donor', 'request', 'status', 'sent_at', 'responded_at')
    list_filter = ('status',)


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ('id', 'donor', 'bank', 'request', 'donation_date', 'units_donated')
    list_filter = ('bank',)


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ('id', 'partner_name', 'coupon_title', 'quantity_total', 'quantity_redeemed',
                    'expiry_date', 'is_active')
    list_filter = ('is_active', 'partner_name')
    search_fields = ('partner_name', 'coupon_title')


@admin.register(DonorCoupon)
class DonorCouponAdmin(admin.ModelAdmin):
    list_display = ('redemption_code', 'donor', 'coupon', 'status', 'issued_at', 'redeemed_at')
    list_filter = ('status',)
    search_fields = ('redemption_code',)


@admin.register(ChatHistory)
class ChatHistoryAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'source', 'timestamp')
    list_filter = ('source',)


@admin.register(RefreshSession)
class RefreshSessionAdmin(admin.ModelAdmin):
    list_display = ('token', 'ip_address', 'user_agent', 'created_at')


@admin.register(LoginAttempt)
class LoginAttemptAdmin(admin.ModelAdmin):
    list_display = ('email', 'success', 'reason', 'ip_address', 'created_at')
    list_filter = ('success', 'reason')
    search_fields = ('email', 'ip_address')


@admin.register(EmailVerification)
class EmailVerificationAdmin(admin.ModelAdmin):
    list_display = ('user', 'expires_at', 'verified_at', 'created_at')
    exclude = ('token_hash',)


@admin.register(PasswordReset)
class PasswordResetAdmin(admin.ModelAdmin):
    list_display = ('user', 'expires_at', 'used_at', 'ip_address', 'created_at')
    exclude = ('token_hash',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action',)
    search_fields = ('object_type', 'object_id')
