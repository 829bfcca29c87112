import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from core.models import BloodBank, BloodComponent, BloodGroup, Donor, Patient, User
from core.services.tokens import issue_token_pair

PASSWORD = 'Blood!Warr1or'
PARTNER_KEY = 'partner-test-key'

GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']
COMPONENTS = ['Whole Blood', 'Red Blood Cells', 'Platelets', 'Plasma', 'Cryoprecipitate']

# Mumbai
MUMBAI = (19.0760, 72.8777)


@pytest.fixture(autouse=True)
def _test_settings(settings):
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    settings.PARTNER_API_KEY = PARTNER_KEY
    settings.HF_TOKEN = ''
    settings.HF_MODEL_REPO_ID = ''
    settings.QLOO_API_KEY = ''
    settings.DB_FUNCTIONS_ENABLED = False
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def reference_data(db):
    groups = {name: BloodGroup.objects.create(pk=i, group_name=name) for i, name in enumerate(GROUPS, start=1)}
    components = {
        name: BloodComponent.objects.create(pk=i, component_name=name) for i, name in enumerate(COMPONENTS, start=1)
    }
    bank = BloodBank.objects.create(
        name='City General Hospital Blood Bank', city='Mumbai', state='Maharashtra',
        category='Hospital', latitude=MUMBAI[0], longitude=MUMBAI[1],
    )
    return {'groups': groups, 'components': components, 'bank': bank}


def create_patient(email='patient@example.com', group=None, **extra):
    extra.setdefault('is_verified', True)
    user = User.objects.create_user(
        email=email, password=PASSWORD, full_name='Pat Patient', phone_number='9876543210',
        user_type=User.TYPE_PATIENT, **extra,
    )
    Patient.objects.create(user=user, blood_group=group or BloodGroup.objects.get(group_name='O+'))
    return user


def create_donor(email='donor@example.com', group=None, *, location=MUMBAI, keywords=None, **extra):
    extra.setdefault('is_verified', True)
    user = User.objects.create_user(
        email=email, password=PASSWORD, full_name='Dan Donor', phone_number='9876500000',
        user_type=User.TYPE_DONOR, **extra,
    )
    Donor.objects.create(
        user=user,
        blood_group=group or BloodGroup.objects.get(group_name='O+'),
        latitude=location[0] if location else None,
        longitude=location[1] if location else None,
        qloo_taste_keywords=keywords or [],
    )
    return user


def create_admin(email='admin@example.com'):
    return User.objects.create_superuser(email=email, password=PASSWORD, full_name='Ada Admin')


def client_for(user) -> APIClient:
    client = APIClient()
    pair = issue_token_pair(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {pair['access_token']}")
    client.tokens = pair
    return client


@pytest.fixture
def make_patient(reference_data):
    return create_patient


@pytest.fixture
def make_donor(reference_data):
    return create_donor


@pytest.fixture
def make_client():
    return client_for


@pytest.fixture
def patient(reference_data):
    return create_patient()


@pytest.fixture
def donor(reference_data):
    return create_donor()


@pytest.fixture
def admin_user(reference_data):
    return create_admin()


@pytest.fixture
def patient_client(patient):
    return client_for(patient)


@pytest.fixture
def donor_client(donor):
    return client_for(donor)


@pytest.fixture
def admin_client(admin_user):
    return client_for(admin_user)
