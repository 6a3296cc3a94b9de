import datetime

import pytest

from health_cards import services
from health_cards.models import HealthCard, HealthCardRequest
from common.exceptions import ValidationError, ConflictError, NotFoundError

pytestmark = pytest.mark.django_db

EXPIRY = datetime.date(2026, 5, 20)


@pytest.fixture
def pending(patient):
    return services.submit(patient.id, blood_type='O+', allergies=['Penicillin'])


def test_submit_creates_pending_request(pending, patient):
    assert pending.status == 'pending'
    assert pending.patient_id == patient.id
    assert pending.patient_name == 'Ada Lovelace'
    assert pending.health_card is None
    assert pending.reviewed_by is None


def test_approve_issues_card(pending, patient, staff, clock):
    card_request, card = services.approve(pending.id, EXPIRY, reviewer=staff, clock=clock)

    assert card_request.status == 'approved'
    assert card_request.reviewed_by == staff
    assert card_request.reviewed_at == clock.now()
    assert card_request.health_card == card
    assert card.patient_id == patient.id
    assert card.status == 'active'
    assert card.blood_type == 'O+'
    assert card.allergies == ['Penicillin']
    assert services.is_valid(card, clock.today())


def test_approve_falls_back_to_values_on_file(patient, staff, clock):
    bare = services.submit(patient.id)
    _, card = services.approve(bare.id, EXPIRY, reviewer=staff, clock=clock)

    assert card.blood_type == 'O+'
    assert card.allergies == ['Penicillin']
    assert card.emergency_contact['relationship'] == 'Friend'


def test_only_one_pending_request(pending, patient):
    with pytest.raises(ConflictError) as excinfo:
        services.submit(patient.id)
    assert excinfo.value.current_state == 'pending'
    assert HealthCardRequest.objects.filter(patient=patient).count() == 1


def test_pending_rule_is_per_patient(pending, other_patient):
    assert services.submit(other_patient.id).status == 'pending'


def test_reject_requires_a_reason(pending, staff, clock):
    for reason in ('', '   ', None):
        with pytest.raises(ValidationError) as excinfo:
            services.reject(pending.id, reason, reviewer=staff, clock=clock)
        assert excinfo.value.field == 'rejection_reason'

    pending.refresh_from_db()
    assert pending.status == 'pending'


def test_rejected_patient_can_submit_again(pending, patient, staff, clock):
    rejected = services.reject(pending.id, ' Missing documents ', reviewer=staff, clock=clock)
    assert rejected.status == 'rejected'
    assert rejected.rejection_reason == 'Missing documents'
    assert rejected.reviewed_by == staff

    again = services.submit(patient.id)
    assert again.status == 'pending'
    assert services.latest_request_for(patient.id) == again


def test_request_is_reviewed_once(pending, staff, clock):
    services.approve(pending.id, EXPIRY, reviewer=staff, clock=clock)

    with pytest.raises(ConflictError) as excinfo:
        services.approve(pending.id, EXPIRY, reviewer=staff, clock=clock)
    assert excinfo.value.current_state == 'approved'

    with pytest.raises(ConflictError):
        services.reject(pending.id, 'Too late', reviewer=staff, clock=clock)

    assert HealthCard.objects.count() == 1


def test_rejected_request_cannot_be_approved(pending, staff, clock):
    services.reject(pending.id, 'Incomplete', reviewer=staff, clock=clock)
    with pytest.raises(ConflictError) as excinfo:
        services.approve(pending.id, EXPIRY, reviewer=staff, clock=clock)
    assert excinfo.value.current_state == 'rejected'
    assert not HealthCard.objects.exists()


def test_failed_issuance_leaves_request_pending(pending, staff, clock):
    with pytest.raises(ValidationError):
        services.approve(pending.id, datetime.date(2024, 1, 1), reviewer=staff, clock=clock)

    pending.refresh_from_db()
    assert pending.status == 'pending'
    assert pending.reviewed_by is None
    assert pending.health_card is None
    assert not HealthCard.objects.exists()


def test_approving_for_a_card_holder_rolls_back(patient, staff, clock):
    existing = services.issue(patient.id, EXPIRY, clock=clock)
    card_request = services.submit(patient.id)

    with pytest.raises(ConflictError):
        services.approve(card_request.id, EXPIRY, reviewer=staff, clock=clock)

    card_request.refresh_from_db()
    assert card_request.status == 'pending'
    assert list(HealthCard.objects.all()) == [existing]


def test_approved_requests_always_have_a_card(patient, other_patient, staff, clock):
    first = services.submit(patient.id)
    second = services.submit(other_patient.id)
    services.approve(first.id, EXPIRY, reviewer=staff, clock=clock)
    services.reject(second.id, 'Duplicate', reviewer=staff, clock=clock)
    third = services.submit(other_patient.id)
    with pytest.raises(ValidationError):
        services.approve(third.id, None, reviewer=staff, clock=clock)

    for card_request in HealthCardRequest.objects.all():
        if card_request.status == 'approved':
            assert card_request.health_card is not None
            assert card_request.health_card.patient_id == card_request.patient_id
        else:
            assert card_request.health_card is None


def test_unknown_request(staff, clock):
    with pytest.raises(NotFoundError):
        services.approve(424242, EXPIRY, reviewer=staff, clock=clock)
    with pytest.raises(NotFoundError):
        services.reject(424242, 'No', reviewer=staff, clock=clock)


def test_only_patients_submit(doctor):
    with pytest.raises(NotFoundError):
        services.submit(doctor.id)


def test_latest_request_for_patient_without_requests(other_patient):
    assert services.latest_request_for(other_patient.id) is None
