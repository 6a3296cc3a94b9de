import datetime
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from common.clock import FixedClock

User = get_user_model()


@pytest.fixture
def clock():
    return FixedClock(datetime.datetime(2025, 5, 20, 10, 0))


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make_user(role, **fields):
        counter['n'] += 1
        fields.setdefault('username', f"{role}_{counter['n']}")
        fields.setdefault('first_name', role.title())
        fields.setdefault('last_name', f"User{counter['n']}")
        fields.setdefault('email', f"{fields['username']}@clinic.test")
        return User.objects.create_user(password='password123', role=role, **fields)

    return _make_user


@pytest.fixture
def admin_user(make_user):
    return make_user('admin')


@pytest.fixture
def staff(make_user):
    return make_user('staff')


@pytest.fixture
def doctor(make_user):
    return make_user(
        'doctor',
        first_name='Gregory',
        last_name='House',
        specialization='Diagnostics',
        consultation_fee=Decimal('80.00'),
    )


@pytest.fixture
def other_doctor(make_user):
    return make_user('doctor', first_name='Lisa', last_name='Cuddy', specialization='Endocrinology')


@pytest.fixture
def patient(make_user):
    return make_user(
        'patient',
        first_name='Ada',
        last_name='Lovelace',
        phone='+44 20 7946 0000',
        blood_type='O+',
        allergies=['Penicillin'],
        emergency_contact={'name': 'Charles Babbage', 'phone': '+44 20 7946 0001', 'relationship': 'Friend'},
    )


@pytest.fixture
def other_patient(make_user):
    return make_user('patient', first_name='Alan', last_name='Turing')


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def staff_client(staff):
    return _client_for(staff)


@pytest.fixture
def doctor_client(doctor):
    return _client_for(doctor)


@pytest.fixture
def patient_client(patient):
    return _client_for(patient)
