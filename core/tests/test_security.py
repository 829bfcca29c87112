import re
import time
from datetime import timedelta

import jwt
import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from core.models import Donor, LoginAttempt, User
from core.services import accounts
from core.services.tokens import issue_token_pair

pytestmark = pytest.mark.django_db

PASSWORD = 'Blood!Warr1or'
NEW_PASSWORD = 'Fresh!Passw0rd9'


def register_payload(**overrides):
    data = {
        'email': 'New.User@Example.com',
        'password': PASSWORD,
        'phone_number': '9876543210',
        'full_name': 'New User',
        'user_type': 'Donor',
        'blood_group_id': 1,
    }
    data.update(overrides)
    return data


def login(client, email, password):
    return client.post('/api/auth/login', {'email': email, 'password': password}, format='json')


def error_code(response):
    return response.data['error']['code']


# ---------------------------------------------------------------------
# Registration & verification
# ---------------------------------------------------------------------
def test_register_creates_donor_and_sends_verification(reference_data, mailoutbox):
    r = APIClient().post('/api/auth/register', register_payload(), format='json')
    assert r.status_code == 201
    assert r.data['ok'] is True
    assert r.data['data']['email'] == 'new.user@example.com'
    assert r.data['data']['is_verified'] is False
    assert Donor.objects.filter(user__email='new.user@example.com').exists()
    assert len(mailoutbox) == 1
    assert mailoutbox[0].subject == 'Verify your Blood Warriors account'


def test_register_duplicate_email_is_conflict(patient):
    r = APIClient().post('/api/auth/register', register_payload(email='PATIENT@example.com'), format='json')
    assert r.status_code == 409
    assert error_code(r) == 'CONFLICT'


def test_register_rejects_weak_password(reference_data):
    r = APIClient().post('/api/auth/register', register_payload(password='password'), format='json')
    assert r.status_code == 400
    assert error_code(r) == 'VALIDATION_ERROR'
    assert 'password' in r.data['error']['details']
    assert not User.objects.filter(email='new.user@example.com').exists()


def test_register_patient_requires_date_of_birth(reference_data):
    r = APIClient().post('/api/auth/register', register_payload(user_type='Patient'), format='json')
    assert r.status_code == 400
    assert 'date_of_birth' in r.data['error']['details']


def test_verify_email_token_is_single_use(make_patient):
    user = make_patient(email='unverified@example.com', is_verified=False)
    raw = accounts.issue_verification(user)
    client = APIClient()

    r = client.get(f'/api/auth/verify/{raw}')
    assert r.status_code == 200
    user.refresh_from_db()
    assert user.is_verified is True

    r = client.get(f'/api/auth/verify/{raw}')
    assert r.status_code == 400


def test_check_email_availability(patient):
    client = APIClient()
    r = client.get('/api/auth/check-email', {'email': 'Patient@example.com'})
    assert r.status_code == 200
    assert r.data['data']['available'] is False
    r = client.get('/api/auth/check-email', {'email': 'not-an-email'})
    assert r.status_code == 400


def test_password_requirements_are_public():
    r = APIClient().get('/api/auth/password-requirements')
    assert r.status_code == 200
    assert r.data['data']['min_length'] == 8
    assert r.data['data']['require_special_chars'] is True


# ---------------------------------------------------------------------
# Login, lockout and the per-client tracker
# ---------------------------------------------------------------------
def test_login_returns_token_pair_and_profile(patient, mailoutbox):
    r = login(APIClient(), 'Patient@Example.com', PASSWORD)
    assert r.status_code == 200
    data = r.data['data']
    assert data['access_token'] and data['refresh_token']
    assert data['token_type'] == 'Bearer'
    assert data['expires_in'] == 15 * 60
    assert data['user']['email'] == 'patient@example.com'
    assert data['user']['blood_group']['group_name'] == 'O+'
    assert LoginAttempt.objects.filter(user=patient, success=True, reason='ok').exists()
    assert len(mailoutbox) == 1


def test_wrong_password_reports_attempts_remaining(patient):
    r = login(APIClient(), patient.email, 'Wrong!Passw0rd')
    assert r.status_code == 401
    assert error_code(r) == 'AUTH_INVALID_CREDENTIALS'
    assert r.data['error']['attempts_remaining'] == 4
    patient.refresh_from_db()
    assert patient.failed_login_attempts == 1


def test_account_locks_after_five_failures(patient, mailoutbox):
    client = APIClient()
    for _ in range(4):
        assert login(client, patient.email, 'Wrong!Passw0rd').status_code == 401

    r = login(client, patient.email, 'Wrong!Passw0rd')
    assert r.status_code == 423
    assert error_code(r) == 'AUTH_ACCOUNT_LOCKED'
    assert 'locked_until' in r.data['error']
    assert any('locked' in m.body for m in mailoutbox)

    # even the right password is refused while locked
    r = login(client, patient.email, PASSWORD)
    assert r.status_code == 423


def test_client_is_locked_out_after_repeated_failures(reference_data):
    client = APIClient()
    for n in range(5):
        r = login(client, f'ghost{n}@example.com', PASSWORD)
        assert r.status_code == 401
    r = login(client, 'ghost@example.com', PASSWORD)
    assert r.status_code == 429
    assert error_code(r) == 'AUTH_TOO_MANY_ATTEMPTS'
    assert int(r['Retry-After']) > 0


def test_inactive_account_cannot_log_in(make_patient):
    user = make_patient(email='gone@example.com', is_active=False)
    r = login(APIClient(), user.email, PASSWORD)
    assert r.status_code == 401
    assert LoginAttempt.objects.filter(email='gone@example.com', reason='inactive').exists()


# ---------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------
def test_missing_token_is_rejected(reference_data):
    r = APIClient().get('/api/auth/profile')
    assert r.status_code == 401
    assert error_code(r) == 'AUTH_TOKEN_MISSING'


def test_garbage_token_is_rejected(reference_data):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Bearer not.a.jwt')
    r = client.get('/api/auth/profile')
    assert r.status_code == 401
    assert error_code(r) == 'AUTH_TOKEN_INVALID'


def expired_access_token(user):
    token = AccessToken.for_user(user)
    token.set_exp(lifetime=-timedelta(minutes=5))
    return str(token)


def test_expired_token_is_reported_as_expired(patient):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {expired_access_token(patient)}')
    r = client.get('/api/auth/profile')
    assert r.status_code == 401
    assert error_code(r) == 'AUTH_TOKEN_EXPIRED'


def test_expired_token_with_a_bad_signature_is_invalid(patient):
    forged = jwt.encode(
        {'token_type': 'access', 'user_id': patient.pk, 'jti': 'forged', 'exp': int(time.time()) - 60},
        'not-the-signing-key', algorithm='HS256',
    )
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {forged}')
    assert error_code(client.get('/api/auth/profile')) == 'AUTH_TOKEN_INVALID'


def test_token_for_unknown_user_is_rejected(reference_data):
    token = AccessToken()
    token['user_id'] = 999999
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    r = client.get('/api/auth/profile')
    assert r.status_code == 401
    assert error_code(r) == 'AUTH_USER_NOT_FOUND'


def test_token_for_deactivated_user_is_rejected(patient_client, patient):
    User.objects.filter(pk=patient.pk).update(is_active=False)
    r = patient_client.get('/api/auth/profile')
    assert r.status_code == 401
    assert error_code(r) == 'AUTH_ACCOUNT_INACTIVE'


def test_refresh_ignores_a_stale_bearer_header(patient):
    refresh = issue_token_pair(patient)['refresh_token']
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {expired_access_token(patient)}')
    for url in ('/api/auth/refresh', '/api/auth/token/refresh'):
        r = client.post(url, {'refresh_token': refresh}, format='json')
        assert r.status_code == 200
        refresh = r.data['data']['refresh_token']


def test_login_ignores_a_stale_bearer_header(patient):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {expired_access_token(patient)}')
    r = login(client, patient.email, PASSWORD)
    assert r.status_code == 200
    assert client.get('/api/auth/check-email', {'email': 'free@example.com'}).status_code == 200


def test_refresh_rotates_and_blacklists_old_token(patient):
    old = issue_token_pair(patient)['refresh_token']
    client = APIClient()

    r = client.post('/api/auth/refresh', {'refresh_token': old}, format='json')
    assert r.status_code == 200
    assert r.data['data']['refresh_token'] != old
    assert r.data['data']['access_token']

    r = client.post('/api/auth/token/refresh', {'refresh_token': old}, format='json')
    assert r.status_code == 401
    assert error_code(r) == 'AUTH_REFRESH_INVALID'


def test_logout_revokes_access_and_refresh_tokens(patient_client):
    r = patient_client.post('/api/auth/logout', {}, format='json')
    assert r.status_code == 200

    r = patient_client.get('/api/auth/profile')
    assert r.status_code == 401
    assert error_code(r) == 'AUTH_TOKEN_REVOKED'

    r = APIClient().post('/api/auth/refresh', {'refresh_token': patient_client.tokens['refresh_token']}, format='json')
    assert r.status_code == 401


def test_sessions_marks_the_current_one(patient, make_client):
    issue_token_pair(patient, ip='10.0.0.2', user_agent='other-device')
    client = make_client(patient)
    r = client.get('/api/auth/sessions')
    assert r.status_code == 200
    sessions = r.data['data']['sessions']
    assert r.data['data']['total'] == 2
    assert [s['is_current'] for s in sessions].count(True) == 1
    assert {s['user_agent'] for s in sessions} == {'', 'other-device'}


def test_revoke_all_sessions(patient_client):
    r = patient_client.post('/api/auth/token/revoke', {'revoke_all': True}, format='json')
    assert r.status_code == 200
    assert r.data['data']['revoked_count'] == 1
    r = APIClient().post('/api/auth/refresh', {'refresh_token': patient_client.tokens['refresh_token']}, format='json')
    assert r.status_code == 401


def test_revoke_requires_a_target(patient_client):
    r = patient_client.post('/api/auth/token/revoke', {}, format='json')
    assert r.status_code == 400


# ---------------------------------------------------------------------
# Password flows
# ---------------------------------------------------------------------
def test_forgot_and_reset_password(patient, mailoutbox):
    client = APIClient()
    r = client.post('/api/auth/forgot-password', {'email': patient.email}, format='json')
    assert r.status_code == 200
    token = re.search(r'token=([0-9a-f]{64})', mailoutbox[-1].body).group(1)

    r = client.post('/api/auth/reset-password', {
        'token': token, 'password': NEW_PASSWORD, 'confirmPassword': NEW_PASSWORD,
    }, format='json')
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.check_password(NEW_PASSWORD)

    # tokens are single use
    r = client.post('/api/auth/reset-password', {
        'token': token, 'password': NEW_PASSWORD, 'confirmPassword': NEW_PASSWORD,
    }, format='json')
    assert r.status_code == 400


def test_forgot_password_does_not_reveal_unknown_emails(reference_data, mailoutbox):
    r = APIClient().post('/api/auth/forgot-password', {'email': 'nobody@example.com'}, format='json')
    assert r.status_code == 200
    assert 'If an account with this email exists' in r.data['message']
    assert mailoutbox == []


def test_reset_password_requires_matching_confirmation(patient):
    r = APIClient().post('/api/auth/reset-password', {
        'token': 'abc', 'password': NEW_PASSWORD, 'confirmPassword': PASSWORD,
    }, format='json')
    assert r.status_code == 400
    assert 'confirmPassword' in r.data['error']['details']


def test_change_password(patient_client, patient):
    r = patient_client.post('/api/auth/change-password', {
        'currentPassword': 'Wrong!Passw0rd', 'newPassword': NEW_PASSWORD, 'confirmPassword': NEW_PASSWORD,
    }, format='json')
    assert r.status_code == 400
    assert 'currentPassword' in r.data['error']['details']

    r = patient_client.post('/api/auth/change-password', {
        'currentPassword': PASSWORD, 'newPassword': PASSWORD, 'confirmPassword': PASSWORD,
    }, format='json')
    assert r.status_code == 400
    assert 'newPassword' in r.data['error']['details']

    r = patient_client.post('/api/auth/change-password', {
        'currentPassword': PASSWORD, 'newPassword': NEW_PASSWORD, 'confirmPassword': NEW_PASSWORD,
    }, format='json')
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.check_password(NEW_PASSWORD)


# ---------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------
def test_profile_update_ignores_protected_fields(patient_client, patient):
    r = patient_client.put('/api/auth/profile', {
        'full_name': 'Patricia <b>P</b>', 'allergies': 'Penicillin', 'user_type': 'Admin', 'blood_group_id': 2,
    }, format='json')
    assert r.status_code == 200
    data = r.data['data']
    assert data['full_name'] == 'Patricia P'
    assert data['allergies'] == 'Penicillin'
    assert data['user_type'] == 'Patient'
    assert data['blood_group']['group_name'] == 'A-'


def test_profile_stats_for_donor(donor_client):
    r = donor_client.get('/api/auth/profile/stats')
    assert r.status_code == 200
    assert r.data['data']['total_donations'] == 0
    assert r.data['data']['accepted_responses'] == 0
