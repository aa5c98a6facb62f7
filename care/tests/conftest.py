import itertools
from datetime import date, timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from care.services.accounts import create_account

STRONG_PASSWORD = 'Str0ng-Pass!9'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_account(db):
    counter = itertools.count(1)

    def make(role, **fields):
        n = next(counter)
        fields.setdefault('name', f'{role.title()} {n}')
        fields.setdefault('email', f'{role}{n}@clinic.test')
        if role == 'doctor':
            fields.setdefault('specialty', 'General practice')
            fields.setdefault('license_number', f'LIC-{n:04d}')
        elif role == 'guardian':
            fields.setdefault('relationship', 'parent')
            fields.setdefault('birth_date', date(1980, 5, 17))
        return create_account(role=role, password=STRONG_PASSWORD, **fields)

    return make


@pytest.fixture
def admin(make_account):
    return make_account('admin')


@pytest.fixture
def doctor(make_account):
    return make_account('doctor').doctor_profile


@pytest.fixture
def other_doctor(make_account):
    return make_account('doctor').doctor_profile


@pytest.fixture
def guardian(make_account):
    return make_account('guardian').guardian_profile


@pytest.fixture
def other_guardian(make_account):
    return make_account('guardian').guardian_profile


@pytest.fixture
def patient(make_account, guardian, doctor):
    return make_account('patient', guardian=guardian, doctor=doctor).patient_profile


@pytest.fixture
def other_patient(make_account, other_guardian, other_doctor):
    return make_account('patient', guardian=other_guardian, doctor=other_doctor).patient_profile


@pytest.fixture
def client_for():
    def build(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return build


@pytest.fixture
def future():
    """09:00 two days from now."""
    return (timezone.now() + timedelta(days=2)).replace(hour=9, minute=0, second=0, microsecond=0)
