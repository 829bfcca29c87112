from io import StringIO

import pytest
from asgiref.sync import async_to_sync, sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.core.cache import cache
from django.core.management import call_command
from rest_framework.test import APIClient

from core.models import BloodBank, BloodGroup, BloodStock, Coupon, Donor, User
from core.realtime.routing import websocket_urlpatterns
from core.services import public_data
from core.services.notifications import notify_donor
from core.services.tokens import issue_token_pair

pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------
def test_blood_groups_are_public_and_cached(reference_data):
    client = APIClient()
    r = client.get('/api/public-data/blood-groups')
    assert r.status_code == 200
    assert len(r.data['data']) == 8
    assert r.data['data'][0] == {'blood_group_id': 1, 'group_name': 'A+'}

    BloodGroup.objects.create(pk=9, group_name='hh')
    assert len(client.get('/api/public-data/blood-groups').data['data']) == 8
    public_data.warm()
    assert len(client.get('/api/public-data/blood-groups').data['data']) == 9


def test_public_data_ignores_bad_credentials(reference_data):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Bearer expired.or.bogus')
    r = client.get('/api/public-data/blood-components')
    assert r.status_code == 200
    assert [c['component_name'] for c in r.data['data']][:2] == ['Whole Blood', 'Red Blood Cells']


def test_blood_bank_search(reference_data):
    BloodBank.objects.create(name='Red Cross Blood Center', city='Delhi', state='Delhi',
                             latitude=28.6139, longitude=77.2090)
    client = APIClient()

    r = client.get('/api/public-data/blood-banks', {'city': 'delhi'})
    assert [b['name'] for b in r.data['data']] == ['Red Cross Blood Center']

    r = client.get('/api/public-data/blood-banks', {'latitude': 19.08, 'longitude': 72.88, 'radius': 10})
    assert [b['name'] for b in r.data['data']] == ['City General Hospital Blood Bank']
    assert r.data['data'][0]['distance_km'] < 1

    r = client.get('/api/public-data/blood-banks', {'latitude': 19.08, 'longitude': 72.88, 'radius': 2000})
    assert len(r.data['data']) == 2
    assert r.data['data'][0]['distance_km'] < r.data['data'][1]['distance_km']

    assert client.get('/api/public-data/blood-banks', {'radius': 0}).status_code == 400


def test_bank_stock_lists_available_units(reference_data):
    bank = reference_data['bank']
    groups, components = reference_data['groups'], reference_data['components']
    BloodStock.objects.create(bank=bank, blood_group=groups['O+'], component=components['Plasma'], units_available=5)
    BloodStock.objects.create(bank=bank, blood_group=groups['A+'], component=components['Plasma'], units_available=0)

    r = APIClient().get(f'/api/public-data/blood-banks/{bank.pk}/stock')
    assert r.status_code == 200
    assert [(s['blood_group'], s['units_available']) for s in r.data['data']] == [('O+', 5)]
    assert APIClient().get('/api/public-data/blood-banks/999999/stock').status_code == 404


# ---------------------------------------------------------------------
# Health & routing
# ---------------------------------------------------------------------
def test_liveness():
    r = APIClient().get('/health')
    assert r.status_code == 200
    assert r.json() == {'status': 'ok', 'message': 'Blood Warriors API is running'}


def test_database_health(reference_data):
    r = APIClient().get('/api/health')
    assert r.status_code == 200
    assert r.json()['database'] == 'connected'

    r = APIClient().get('/api/health/db')
    body = r.json()
    assert body['status'] == 'healthy'
    assert body['checks']['blood_groups'] == {'ok': True, 'count': 8}


def test_unknown_api_route_returns_json_404():
    r = APIClient().get('/api/does-not-exist')
    assert r.status_code == 404
    assert r.json() == {'ok': False, 'error': {'code': 'NOT_FOUND', 'message': 'Route not found'}}


def test_wrong_method_uses_error_envelope(patient_client):
    r = patient_client.delete('/api/requests')
    assert r.status_code == 405
    assert r.data['error']['code'] == 'METHOD_NOT_ALLOWED'


# ---------------------------------------------------------------------
# Realtime notifications
# ---------------------------------------------------------------------
def communicator(token=None):
    path = '/ws/notifications/' + (f'?token={token}' if token else '')
    return WebsocketCommunicator(URLRouter(websocket_urlpatterns), path)


def test_socket_requires_a_valid_token():
    async def connect(token):
        connected, code = await communicator(token).connect()
        return connected, code

    assert async_to_sync(connect)(None) == (False, 4401)
    assert async_to_sync(connect)('not-a-token') == (False, 4401)


def test_socket_rejects_non_donors(patient):
    token = issue_token_pair(patient)['access_token']

    async def connect():
        return await communicator(token).connect()

    assert async_to_sync(connect)() == (False, 4403)


def test_socket_pushes_new_notifications_to_the_donor(donor):
    token = issue_token_pair(donor)['access_token']
    profile = Donor.objects.get(pk=donor.pk)

    async def run():
        ws = communicator(token)
        connected, _ = await ws.connect()
        assert connected
        await sync_to_async(notify_donor)(profile, 'O+ needed at City General')
        message = await ws.receive_json_from(timeout=2)
        await ws.disconnect()
        return message

    message = async_to_sync(run)()
    assert message['type'] == 'notification'
    assert message['donor_id'] == donor.pk
    assert message['message'] == 'O+ needed at City General'
    assert message['status'] == 'Sent'


# ---------------------------------------------------------------------
# Management commands
# ---------------------------------------------------------------------
def test_seed_data_is_idempotent():
    out = StringIO()
    call_command('seed_data', stdout=out)
    call_command('seed_data', stdout=out)
    assert BloodGroup.objects.count() == 8
    assert BloodGroup.objects.get(pk=7).group_name == 'O+'
    assert BloodBank.objects.count() == 3
    assert Coupon.objects.count() == 4
    assert all(c.expiry_date and not c.is_expired for c in Coupon.objects.all())
    assert 'Blood groups: 8, components: 5' in out.getvalue()


def test_seed_data_without_samples():
    call_command('seed_data', '--no-samples', stdout=StringIO())
    assert BloodGroup.objects.count() == 8
    assert BloodBank.objects.count() == 0
    assert Coupon.objects.count() == 0


def test_ensure_test_users(reference_data):
    call_command('ensure_test_users', stdout=StringIO())
    call_command('ensure_test_users', stdout=StringIO())
    users = {u.email: u for u in User.objects.filter(email__endswith='@bloodwarriors.test')}
    assert set(users) == {'patient@bloodwarriors.test', 'donor@bloodwarriors.test', 'admin@bloodwarriors.test'}
    assert all(u.is_verified and u.check_password('Blood!Warr1or') for u in users.values())
    assert users['admin@bloodwarriors.test'].is_staff
    assert Donor.objects.filter(user=users['donor@bloodwarriors.test']).exists()


def test_warm_public_caches(reference_data):
    cache.clear()
    out = StringIO()
    call_command('warm_public_caches', stdout=out)
    assert 'blood_groups: 8' in out.getvalue()
    assert len(cache.get(public_data.GROUPS_KEY)) == 8
