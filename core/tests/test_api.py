"""
Integration tests for donation requests, SOS fan-out, notifications,
donor self-service, dashboards and the partner API.
"""
import pytest
from rest_framework.test import APIClient

from core.models import AuditEvent, Coupon, DonationRequest, Donor, DonorCoupon, Notification, Patient

pytestmark = pytest.mark.django_db

DELHI = (28.6139, 77.2090)
PARTNER_KEY = 'partner-test-key'


def request_payload(**overrides):
    data = {
        'blood_group_id': 7,  # O+
        'component_id': 1,
        'units_required': 2,
        'urgency': 'Scheduled',
        'hospital_name': 'City General Hospital',
    }
    data.update(overrides)
    return data


def sos_payload(**overrides):
    return request_payload(urgency='SOS', latitude=19.0760, longitude=72.8777, **overrides)


def make_request(patient, reference_data, **fields):
    values = dict(
        patient=Patient.objects.get(pk=patient.pk),
        blood_group=reference_data['groups']['O+'],
        component=reference_data['components']['Whole Blood'],
        units_required=1,
        urgency='Urgent',
    )
    values.update(fields)
    return DonationRequest.objects.create(**values)


# ---------------------------------------------------------------------
# Creating requests
# ---------------------------------------------------------------------
def test_patient_creates_scheduled_request(patient_client):
    r = patient_client.post('/api/requests', request_payload(notes='<script>x</script>bring ID'), format='json')
    assert r.status_code == 201
    assert r.data['data']['status'] == 'Open'
    assert r.data['data']['notification_count'] == 0
    req = DonationRequest.objects.get(pk=r.data['data']['request_id'])
    assert '<script>' not in req.notes
    assert Notification.objects.count() == 0


def test_donor_cannot_create_request(donor_client):
    r = donor_client.post('/api/requests', request_payload(), format='json')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'AUTH_INSUFFICIENT_PERMISSIONS'


def test_sos_requires_location(patient_client):
    r = patient_client.post('/api/requests', request_payload(urgency='SOS'), format='json')
    assert r.status_code == 400
    assert 'location' in r.data['error']['details']


def test_sos_notifies_only_matching_nearby_available_donors(patient_client, donor, make_donor, reference_data):
    make_donor('far@example.com', location=DELHI)
    make_donor('wrong-group@example.com', group=reference_data['groups']['A+'])
    make_donor('no-location@example.com', location=None)
    busy = make_donor('busy@example.com')
    Donor.objects.filter(pk=busy.pk).update(is_available_for_sos=False)

    r = patient_client.post('/api/requests', sos_payload(), format='json')
    assert r.status_code == 201
    assert r.data['data']['notification_count'] == 1

    notified = list(Notification.objects.values_list('donor_id', flat=True))
    assert notified == [donor.pk]
    n = Notification.objects.get()
    assert n.message.startswith('URGENT SOS: 2 unit(s) of O+ Whole Blood')
    assert AuditEvent.objects.filter(action='sos_fanout', object_id=str(n.request_id)).exists()


def test_sos_creation_is_rate_limited(patient_client, reference_data):
    for _ in range(3):
        assert patient_client.post('/api/requests', sos_payload(), format='json').status_code == 201
    r = patient_client.post('/api/requests', sos_payload(), format='json')
    assert r.status_code == 429
    assert r.data['error']['code'] == 'RATE_LIMIT_EXCEEDED'
    # non-SOS requests are not counted against the SOS limit
    assert patient_client.post('/api/requests', request_payload(), format='json').status_code == 201


def test_rejected_sos_requests_do_not_use_up_the_limit(patient_client, reference_data):
    for _ in range(3):
        r = patient_client.post('/api/requests', request_payload(urgency='SOS'), format='json')
        assert r.status_code == 400
    for _ in range(3):
        assert patient_client.post('/api/requests', sos_payload(), format='json').status_code == 201
    assert patient_client.post('/api/requests', sos_payload(), format='json').status_code == 429


# ---------------------------------------------------------------------
# Listing, detail and status
# ---------------------------------------------------------------------
def test_patients_see_only_their_own_requests(patient, patient_client, make_patient, reference_data):
    other = make_patient('other@example.com')
    mine = make_request(patient, reference_data)
    make_request(other, reference_data)
    r = patient_client.get('/api/requests')
    assert r.status_code == 200
    assert r.data['data']['total'] == 1
    assert r.data['data']['requests'][0]['request_id'] == mine.pk


def test_donors_see_open_requests(patient, donor_client, reference_data):
    make_request(patient, reference_data)
    make_request(patient, reference_data, status='Cancelled')
    r = donor_client.get('/api/requests')
    assert r.data['data']['total'] == 1
    r = donor_client.get('/api/requests', {'status': 'Cancelled'})
    assert r.data['data']['total'] == 1


def test_request_detail_is_private_to_its_patient(patient, make_patient, make_client, reference_data):
    req = make_request(patient, reference_data)
    intruder = make_client(make_patient('intruder@example.com'))
    r = intruder.get(f'/api/requests/{req.pk}')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'FORBIDDEN'
    assert intruder.get('/api/requests/999999').status_code == 404


def test_donor_detail_includes_own_notification(patient, donor, donor_client, reference_data):
    req = make_request(patient, reference_data)
    Notification.objects.create(donor_id=donor.pk, request=req, message='help')
    r = donor_client.get(f'/api/requests/{req.pk}')
    assert r.status_code == 200
    assert r.data['data']['notification']['message'] == 'help'


def test_status_state_machine(patient, patient_client, reference_data):
    req = make_request(patient, reference_data)
    r = patient_client.put(f'/api/requests/{req.pk}/status', {'status': 'In Progress'}, format='json')
    assert r.status_code == 200
    r = patient_client.put(f'/api/requests/{req.pk}/status', {'status': 'Cancelled'}, format='json')
    assert r.status_code == 200
    # final states cannot be left
    r = patient_client.put(f'/api/requests/{req.pk}/status', {'status': 'Open'}, format='json')
    assert r.status_code == 400
    req.refresh_from_db()
    assert req.status == 'Cancelled'


def test_only_owner_changes_status(patient, donor_client, reference_data):
    req = make_request(patient, reference_data)
    r = donor_client.put(f'/api/requests/{req.pk}/status', {'status': 'Cancelled'}, format='json')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'FORBIDDEN'


def test_donor_accepting_moves_request_in_progress(patient, donor, donor_client, reference_data):
    req = make_request(patient, reference_data)
    r = donor_client.post(f'/api/requests/{req.pk}/respond', {'response': 'accept'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Accepted'
    req.refresh_from_db()
    assert req.status == 'In Progress'


def test_patient_cannot_respond_to_requests(patient, patient_client, reference_data):
    req = make_request(patient, reference_data)
    r = patient_client.post(f'/api/requests/{req.pk}/respond', {'response': 'accept'}, format='json')
    assert r.status_code == 403


# ---------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------
def test_notification_lifecycle(patient, donor, donor_client, reference_data):
    req = make_request(patient, reference_data)
    n = Notification.objects.create(donor_id=donor.pk, request=req, message='help')

    r = donor_client.put(f'/api/notifications/{n.pk}/read')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Read'

    r = donor_client.post(f'/api/notifications/{n.pk}/respond', {'response': 'Declined'}, format='json')
    assert r.status_code == 200
    n.refresh_from_db()
    assert n.status == 'Declined' and n.responded_at is not None
    req.refresh_from_db()
    assert req.status == 'Open'

    r = donor_client.delete(f'/api/notifications/{n.pk}')
    assert r.status_code == 200
    assert not Notification.objects.filter(pk=n.pk).exists()


def test_notifications_of_other_donors_are_forbidden(donor, make_donor, make_client):
    n = Notification.objects.create(donor_id=donor.pk, message='hi')
    other = make_client(make_donor('other-donor@example.com'))
    r = other.put(f'/api/notifications/{n.pk}/read')
    assert r.status_code == 403
    assert other.delete('/api/notifications/424242').status_code == 404


# ---------------------------------------------------------------------
# Donor self-service
# ---------------------------------------------------------------------
def test_donor_updates_own_settings(donor, donor_client):
    r = donor_client.put(f'/api/donors/{donor.pk}/location', {'latitude': 12.97, 'longitude': 77.59}, format='json')
    assert r.status_code == 200
    r = donor_client.put(f'/api/donors/{donor.pk}/sos-availability', {'is_available_for_sos': False}, format='json')
    assert r.data['data']['is_available_for_sos'] is False
    r = donor_client.put(f'/api/donors/{donor.pk}/interests',
                         {'interests': ['Music', 'music', ' <b>Cricket</b> ', 'x', 42]}, format='json')
    assert r.data['data']['interests'] == ['music', 'cricket']
    d = Donor.objects.get(pk=donor.pk)
    assert (d.latitude, d.longitude, d.is_available_for_sos) == (12.97, 77.59, False)


def test_donor_cannot_touch_another_donor(donor, make_donor, make_client):
    other = make_client(make_donor('other-donor@example.com'))
    r = other.put(f'/api/donors/{donor.pk}/location', {'latitude': 1, 'longitude': 1}, format='json')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'FORBIDDEN'
    assert other.get('/api/donors/999999').status_code == 404


def test_invalid_coordinates_are_rejected(donor, donor_client):
    r = donor_client.put(f'/api/donors/{donor.pk}/location', {'latitude': 91, 'longitude': 0}, format='json')
    assert r.status_code == 400


def test_donor_directory_filters_by_blood_group(donor, make_donor, patient_client, reference_data):
    make_donor('a-pos@example.com', group=reference_data['groups']['A+'])
    r = patient_client.get('/api/donors', {'blood_group_id': 7})
    assert r.status_code == 200
    assert [d['donor_id'] for d in r.data['data']['donors']] == [donor.pk]


def test_donor_notification_inbox_paginates(donor, donor_client):
    for i in range(3):
        Notification.objects.create(donor_id=donor.pk, message=f'n{i}')
    r = donor_client.get(f'/api/donors/{donor.pk}/notifications', {'limit': 2})
    assert r.data['data']['total'] == 3
    assert len(r.data['data']['notifications']) == 2


def test_recording_donation_fulfils_request_and_rewards_donor(patient, make_donor, make_client, reference_data):
    user = make_donor('music-fan@example.com', keywords=['music', 'movies'])
    client = make_client(user)
    coupon = Coupon.objects.create(
        partner_name='Melody Store', coupon_title='20% off headphones',
        target_keywords=['music'], quantity_total=10, discount_percentage=20,
    )
    Coupon.objects.create(
        partner_name='Green Grocer', coupon_title='Free salad', target_keywords=['food'], quantity_total=10,
    )
    req = make_request(patient, reference_data)

    r = client.post(f'/api/donors/{user.pk}/donations', {
        'bank_id': reference_data['bank'].pk, 'request_id': req.pk, 'donation_date': '2026-10-01',
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['reward']['coupon']['coupon_id'] == coupon.pk
    assert r.data['data']['reward']['redemption_code'].startswith('BW-')

    req.refresh_from_db()
    assert req.status == 'Fulfilled'
    d = Donor.objects.get(pk=user.pk)
    assert d.donation_count == 1
    assert str(d.last_donation_date) == '2026-10-01'
    coupon.refresh_from_db()
    assert coupon.quantity_redeemed == 1
    assert Notification.objects.filter(donor=d, message__contains='20% off headphones').exists()

    # a fulfilled request cannot take another donation
    r = client.post(f'/api/donors/{user.pk}/donations', {
        'bank_id': reference_data['bank'].pk, 'request_id': req.pk, 'donation_date': '2026-10-02',
    }, format='json')
    assert r.status_code == 400


def test_donation_without_matching_coupon_has_no_reward(donor, donor_client, reference_data):
    r = donor_client.post(f'/api/donors/{donor.pk}/donations', {
        'bank_id': reference_data['bank'].pk, 'donation_date': '2026-10-01',
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['reward'] is None
    assert DonorCoupon.objects.count() == 0


# ---------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------
def test_dashboard_is_limited_to_self_or_admin(patient, donor, patient_client, admin_client, reference_data):
    make_request(patient, reference_data)
    r = patient_client.get(f'/api/dashboard/patient-stats/{patient.pk}')
    assert r.status_code == 200
    assert r.data['data']['total_requests'] == 1
    assert r.data['data']['active_requests'] == 1

    r = patient_client.get(f'/api/dashboard/donor-stats/{donor.pk}')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'FORBIDDEN'

    r = admin_client.get(f'/api/dashboard/donor-stats/{donor.pk}')
    assert r.status_code == 200
    assert r.data['data']['total_donations'] == 0


def test_available_requests_match_donor_blood_group(patient, donor, donor_client, reference_data):
    make_request(patient, reference_data)
    make_request(patient, reference_data, blood_group=reference_data['groups']['B+'])
    r = donor_client.get('/api/dashboard/available-requests', {'donor_id': donor.pk, 'limit': 10})
    assert r.status_code == 200
    assert [row['blood_group'] for row in r.data['data']] == ['O+']
    assert r.data['data'][0]['patient_name'] == 'Pat Patient'


def test_health_tips_follow_user_type(patient_client):
    r = patient_client.get('/api/dashboard/health-tips')
    assert 'Maintain regular follow-ups with your hematologist' in r.data['data']
    r = patient_client.get('/api/dashboard/health-tips', {'user_type': 'Donor'})
    assert 'Get adequate rest before donating blood' in r.data['data']


# ---------------------------------------------------------------------
# Partner API
# ---------------------------------------------------------------------
def test_partner_endpoints_require_the_api_key(patient):
    client = APIClient()
    body = {'patient_id': patient.pk, 'blood_group_id': 7, 'component_id': 1, 'units_required': 1,
            'latitude': 19.07, 'longitude': 72.87}
    r = client.post('/api/partner/requests/sos', body, format='json')
    assert r.status_code == 401
    assert r.data['error']['code'] == 'PARTNER_KEY_INVALID'
    r = client.post('/api/partner/requests/sos', body, format='json', HTTP_X_API_KEY='wrong')
    assert r.status_code == 401


def test_partner_creates_sos_request(patient, donor):
    body = {'patient_id': patient.pk, 'blood_group_id': 7, 'component_id': 1, 'units_required': 1,
            'latitude': 19.07, 'longitude': 72.87, 'hospital_name': 'Partner Hospital'}
    r = APIClient().post('/api/partner/requests/sos', body, format='json', HTTP_X_API_KEY=PARTNER_KEY)
    assert r.status_code == 201
    assert r.data['data']['notification_count'] == 1
    req = DonationRequest.objects.get(pk=r.data['data']['request_id'])
    assert req.urgency == 'SOS'


def test_partner_registers_verified_donor(reference_data):
    body = {'email': 'Walk.In@Example.com', 'full_name': 'Walk In', 'phone_number': '9123456789',
            'blood_group_id': 1}
    r = APIClient().post('/api/partner/donors/register', body, format='json', HTTP_X_API_KEY=PARTNER_KEY)
    assert r.status_code == 201
    assert r.data['data']['email'] == 'walk.in@example.com'
    donor = Donor.objects.select_related('user').get(pk=r.data['data']['user_id'])
    assert donor.user.is_verified is True
    assert donor.user.check_password(r.data['data']['temporary_password'])
