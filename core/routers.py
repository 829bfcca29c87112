"""
URL mappings for the Blood Warriors API.

Paths mirror those used by the web front-end; trailing slashes are
deliberately omitted.
"""
from django.urls import include, path

from .auth_views import login_view, logout_view, refresh_view, revoke_view, sessions_view
from .views import accounts, ai, coupons, dashboard, donation_requests, donors, health, notifications, partner
from .views import public_data

urlpatterns = [
    path('', include('django_prometheus.urls')),
    # Health
    path('health', health.liveness),
    path('api/health', health.healthz),
    path('api/health/db', health.healthz_db),
    # Authentication & accounts
    path('api/auth/register', accounts.register),
    path('api/auth/verify/<str:token>', accounts.verify_email),
    path('api/auth/resend-verification', accounts.resend_verification),
    path('api/auth/check-email', accounts.check_email),
    path('api/auth/forgot-password', accounts.forgot_password),
    path('api/auth/reset-password', accounts.reset_password),
    path('api/auth/change-password', accounts.change_password),
    path('api/auth/password-requirements', accounts.password_requirements),
    path('api/auth/login', login_view),
    path('api/auth/refresh', refresh_view),
    path('api/auth/token/refresh', refresh_view),
    path('api/auth/logout', logout_view),
    path('api/auth/token/revoke', revoke_view),
    path('api/auth/sessions', sessions_view),
    path('api/auth/profile', accounts.profile),
    path('api/auth/profile/stats', accounts.profile_stats),
    # Reference data
    path('api/public-data/blood-groups', public_data.blood_groups),
    path('api/public-data/blood-components', public_data.blood_components),
    path('api/public-data/blood-banks', public_data.blood_banks),
    path('api/public-data/blood-banks/<int:bank_id>/stock', public_data.bank_stock),
    # Donors
    path('api/donors', donors.list_donors),
    path('api/donors/<int:donor_id>', donors.donor_detail),
    path('api/donors/<int:donor_id>/location', donors.update_location),
    path('api/donors/<int:donor_id>/sos-availability', donors.update_sos_availability),
    path('api/donors/<int:donor_id>/interests', donors.update_interests),
    path('api/donors/<int:donor_id>/notifications', donors.donor_notifications),
    path('api/donors/<int:donor_id>/coupons', donors.donor_coupons),
    path('api/donors/<int:donor_id>/donations', donors.record_donation),
    # Donation requests
    path('api/requests', donation_requests.requests_collection),
    path('api/requests/<int:request_id>', donation_requests.request_detail),
    path('api/requests/<int:request_id>/respond', donation_requests.respond),
    path('api/requests/<int:request_id>/status', donation_requests.update_status),
    # Notifications
    path('api/notifications/<int:notification_id>', notifications.delete_notification),
    path('api/notifications/<int:notification_id>/read', notifications.mark_read),
    path('api/notifications/<int:notification_id>/respond', notifications.respond),
    # Coupons & rewards
    path('api/coupons', coupons.list_coupons),
    path('api/coupons/redeem', coupons.redeem),
    path('api/coupons/validate', coupons.validate),
    path('api/coupons/rewards/stats', coupons.reward_stats),
    path('api/coupons/admin', coupons.admin_create),
    path('api/coupons/admin/analytics', coupons.admin_analytics),
    path('api/coupons/admin/<int:coupon_id>', coupons.admin_detail),
    path('api/coupons/<int:coupon_id>', coupons.coupon_detail),
    # Personalization & CareBot
    path('api/ai/interests', ai.interests),
    path('api/ai/interests/enrich', ai.enrich_interests),
    path('api/ai/interests/stats', ai.interest_stats),
    path('api/ai/patient/interests', ai.patient_interests),
    path('api/ai/carebot/query', ai.carebot_query),
    path('api/ai/carebot/history', ai.carebot_history),
    # Dashboard
    path('api/dashboard/patient-stats/<int:user_id>', dashboard.patient_stats),
    path('api/dashboard/donor-stats/<int:user_id>', dashboard.donor_stats),
    path('api/dashboard/patient-requests/<int:user_id>', dashboard.patient_requests),
    path('api/dashboard/available-requests', dashboard.available_requests),
    path('api/dashboard/donor-notifications/<int:donor_id>', dashboard.donor_notifications),
    path('api/dashboard/donor-donations/<int:donor_id>', dashboard.donor_donations),
    path('api/dashboard/health-tips', dashboard.health_tips),
    # Partner integrations
    path('api/partner/requests/sos', partner.partner_sos),
    path('api/partner/donors/register', partner.partner_register_donor),
]
