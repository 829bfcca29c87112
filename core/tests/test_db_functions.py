import pytest
from django.db import IntegrityError, OperationalError

from core.services import db_functions

pytestmark = pytest.mark.django_db


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(db_functions.time, 'sleep', calls.append)
    return calls


def flaky(failures, result='ok', exc=OperationalError):
    calls = []

    def fn():
        calls.append(1)
        if len(calls) <= failures:
            raise exc('connection reset')
        return result

    fn.calls = calls
    return fn


def test_retry_backs_off_exponentially(sleeps):
    fn = flaky(2)
    assert db_functions.retry_query(fn, attempts=3, base_delay=0.5) == 'ok'
    assert len(fn.calls) == 3
    assert sleeps == [0.5, 1.0]


def test_retry_reraises_after_the_last_attempt(sleeps):
    fn = flaky(5)
    with pytest.raises(OperationalError):
        db_functions.retry_query(fn, attempts=3, base_delay=0.1)
    assert len(fn.calls) == 3
    assert len(sleeps) == 2


def test_retry_leaves_other_database_errors_alone(sleeps):
    fn = flaky(1, exc=IntegrityError)
    with pytest.raises(IntegrityError):
        db_functions.retry_query(fn, attempts=3, base_delay=0.1)
    assert len(fn.calls) == 1
    assert sleeps == []


def test_retry_uses_configured_attempts(settings, sleeps):
    settings.DB_RETRY_ATTEMPTS = 2
    settings.DB_RETRY_BASE_DELAY = 0.25
    fn = flaky(5)
    with pytest.raises(OperationalError):
        db_functions.retry_query(fn)
    assert len(fn.calls) == 2
    assert sleeps == [0.25]


def test_only_known_functions_can_be_called():
    with pytest.raises(ValueError):
        db_functions.call_db_function('drop_all_tables')


def test_db_functions_are_off_unless_enabled(settings):
    settings.DB_FUNCTIONS_ENABLED = False
    assert db_functions.use_db_functions() is False


def test_failing_db_function_falls_back_to_orm(reference_data, monkeypatch, sleeps):
    monkeypatch.setattr(db_functions, 'use_db_functions', lambda: True)
    # the stored procedure does not exist on the test database, so the cursor raises
    found = db_functions.find_nearby_banks(19.08, 72.88, 10)
    assert [(bank.pk, d < 1) for bank, d in found] == [(reference_data['bank'].pk, True)]


def test_db_function_rows_are_used_when_available(reference_data, monkeypatch):
    bank = reference_data['bank']
    calls = []

    def fake_call(name, **params):
        calls.append((name, params))
        return [{'bank_id': bank.pk, 'distance_km': 3.5}, {'bank_id': 999999, 'distance_km': 4.0}]

    monkeypatch.setattr(db_functions, 'use_db_functions', lambda: True)
    monkeypatch.setattr(db_functions, 'call_db_function', fake_call)
    assert db_functions.find_nearby_banks(19.0, 72.0, 50) == [(bank, 3.5)]
    assert calls == [('find_nearby_banks', {'p_latitude': 19.0, 'p_longitude': 72.0, 'p_radius_km': 50})]
