from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from appointments import services as ledger
from health_cards import services as cards

pytestmark = pytest.mark.django_db


def next_week():
    return timezone.localdate() + timedelta(days=7)


def booking_payload(doctor, **overrides):
    payload = {
        'doctor_id': doctor.id,
        'appointment_date': next_week().isoformat(),
        'start_time': '09:00',
        'end_time': '09:30',
        'appointment_type': 'consultation',
        'reason': 'Back pain',
        'symptoms': ['stiffness'],
    }
    payload.update(overrides)
    return payload


class TestAccountsAPI:
    def test_login_returns_tokens_with_user(self, patient):
        response = APIClient().post(
            reverse('token_obtain_pair'),
            {'username': patient.username, 'password': 'password123'},
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data
        assert 'refresh' in response.data
        assert response.data['user']['role'] == 'patient'

    def test_logout_blacklists_refresh_token(self, patient):
        client = APIClient()
        login = client.post(
            reverse('token_obtain_pair'),
            {'username': patient.username, 'password': 'password123'},
            format='json',
        )
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")

        response = client.post(reverse('logout'), {'refresh_token': login.data['refresh']}, format='json')
        assert response.status_code == status.HTTP_200_OK

        refreshed = client.post(reverse('token_refresh'), {'refresh': login.data['refresh']}, format='json')
        assert refreshed.status_code == status.HTTP_401_UNAUTHORIZED

    def test_patient_cannot_change_own_role(self, patient_client):
        response = patient_client.patch(reverse('user-profile'), {'role': 'admin'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_doctor_list_hides_inactive_doctors(self, patient_client, doctor, other_doctor):
        other_doctor.is_active = False
        other_doctor.save()

        response = patient_client.get(reverse('doctor-list'))
        assert response.status_code == status.HTTP_200_OK
        assert [d['id'] for d in response.data] == [doctor.id]


class TestAppointmentsAPI:
    def test_patient_books_and_overlap_is_refused(self, patient_client, doctor, other_patient):
        response = patient_client.post(reverse('appointment-book'), booking_payload(doctor), format='json')
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == 'scheduled'
        assert response.data['start_time'] == '09:00'
        assert response.data['doctor_name'] == 'Gregory House'

        other_client = APIClient()
        other_client.force_authenticate(user=other_patient)
        response = other_client.post(
            reverse('appointment-book'),
            booking_payload(doctor, start_time='09:15', end_time='09:45'),
            format='json',
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'conflict'
        assert response.data['current_state'] == {'start_time': '09:00', 'end_time': '09:30'}

    def test_missing_reason_is_a_bad_request(self, patient_client, doctor):
        response = patient_client.post(reverse('appointment-book'), booking_payload(doctor, reason=''), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['field'] == 'reason'

    def test_staff_must_name_the_patient(self, staff_client, doctor, patient):
        response = staff_client.post(reverse('appointment-book'), booking_payload(doctor), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        response = staff_client.post(
            reverse('appointment-book'), booking_payload(doctor, patient_id=patient.id), format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['patient'] == patient.id

    def test_patient_cannot_book_for_someone_else(self, patient_client, doctor, other_patient):
        response = patient_client.post(
            reverse('appointment-book'), booking_payload(doctor, patient_id=other_patient.id), format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_doctor_cannot_book(self, doctor_client, doctor):
        response = doctor_client.post(reverse('appointment-book'), booking_payload(doctor), format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_availability(self, patient_client, doctor, patient):
        ledger.book(patient.id, doctor.id, next_week(), '09:00', '09:30', 'checkup', 'Annual checkup')

        response = patient_client.get(
            reverse('appointment-availability'), {'doctor_id': doctor.id, 'date': next_week().isoformat()},
        )
        assert response.status_code == status.HTTP_200_OK
        slots = response.data['available_slots']
        assert slots[0] == {'start_time': '09:30', 'end_time': '10:00'}
        assert len(slots) == 13

    def test_no_availability_in_the_past(self, patient_client, doctor):
        yesterday = timezone.localdate() - timedelta(days=1)
        response = patient_client.get(
            reverse('appointment-availability'), {'doctor_id': doctor.id, 'date': yesterday.isoformat()},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data['available_slots'] == []

    def test_availability_needs_a_date(self, patient_client, doctor):
        response = patient_client.get(reverse('appointment-availability'), {'doctor_id': doctor.id})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_patient_cannot_confirm(self, patient_client, patient, doctor):
        appointment = ledger.book(patient.id, doctor.id, next_week(), '10:00', '10:30', 'consultation', 'Rash')

        response = patient_client.patch(
            reverse('appointment-status', args=[appointment.id]), {'status': 'confirmed'}, format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'forbidden'

        response = patient_client.patch(reverse('appointment-cancel', args=[appointment.id]))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'cancelled'

    def test_terminal_state_is_a_conflict(self, doctor_client, patient, doctor):
        appointment = ledger.book(patient.id, doctor.id, next_week(), '10:00', '10:30', 'consultation', 'Rash')
        url = reverse('appointment-status', args=[appointment.id])

        assert doctor_client.patch(url, {'status': 'completed'}, format='json').status_code == status.HTTP_200_OK
        response = doctor_client.patch(url, {'status': 'cancelled'}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['current_state'] == 'completed'

    def test_pay_twice(self, patient_client, patient, doctor):
        appointment = ledger.book(patient.id, doctor.id, next_week(), '11:00', '11:30', 'consultation', 'Flu')
        url = reverse('appointment-pay', args=[appointment.id])

        first = patient_client.post(url)
        second = patient_client.post(url)
        assert first.status_code == second.status_code == status.HTTP_200_OK
        assert second.data['appointment']['payment_status'] is True
        assert second.data['appointment']['paid_at'] == first.data['appointment']['paid_at']

    def test_list_is_scoped_by_role(self, patient_client, staff_client, patient, other_patient, doctor):
        ledger.book(patient.id, doctor.id, next_week(), '09:00', '09:30', 'consultation', 'Flu')
        ledger.book(other_patient.id, doctor.id, next_week(), '10:00', '10:30', 'consultation', 'Flu')

        assert len(patient_client.get(reverse('appointment-list')).data) == 1
        assert len(staff_client.get(reverse('appointment-list')).data) == 2

    def test_other_patient_cannot_read_appointment(self, patient, other_patient, doctor):
        appointment = ledger.book(patient.id, doctor.id, next_week(), '09:00', '09:30', 'consultation', 'Flu')
        client = APIClient()
        client.force_authenticate(user=other_patient)

        response = client.get(reverse('appointment-detail', args=[appointment.id]))
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestHealthCardsAPI:
    def test_staff_issues_card(self, staff_client, patient):
        response = staff_client.post(
            reverse('health-card-issue'),
            {'patient_id': patient.id, 'expiry_date': (timezone.localdate() + timedelta(days=365)).isoformat()},
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        card = response.data['health_card']
        assert card['card_number'].startswith('HC')
        assert card['blood_type'] == 'O+'
        assert card['is_valid'] is True

        again = staff_client.post(
            reverse('health-card-issue'),
            {'patient_id': patient.id, 'expiry_date': (timezone.localdate() + timedelta(days=365)).isoformat()},
            format='json',
        )
        assert again.status_code == status.HTTP_409_CONFLICT

    def test_patient_cannot_issue(self, patient_client, patient):
        response = patient_client.post(
            reverse('health-card-issue'),
            {'patient_id': patient.id, 'expiry_date': (timezone.localdate() + timedelta(days=365)).isoformat()},
            format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_card_access_is_scoped(self, patient_client, patient, other_patient):
        own = cards.issue(patient.id, timezone.localdate() + timedelta(days=365))
        foreign = cards.issue(other_patient.id, timezone.localdate() + timedelta(days=365))

        assert patient_client.get(reverse('health-card-detail', args=[own.id])).status_code == status.HTTP_200_OK
        response = patient_client.get(reverse('health-card-detail', args=[foreign.id]))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        response = patient_client.get(reverse('patient-health-card', args=[other_patient.id]))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_public_validation(self, staff_client, patient):
        card = cards.issue(patient.id, timezone.localdate() + timedelta(days=365))
        url = reverse('health-card-validate', args=[card.card_number])

        response = APIClient().get(url)
        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_valid'] is True
        assert response.data['health_card']['card_number'] == card.card_number

        blocked = staff_client.patch(reverse('health-card-block', args=[card.id]), {'reason': 'Lost'}, format='json')
        assert blocked.data['block_reason'] == 'Lost'

        response = APIClient().get(url)
        assert response.data['is_valid'] is False
        assert response.data['health_card'] is None

        assert APIClient().get(reverse('health-card-validate', args=['HC0'])).status_code == status.HTTP_404_NOT_FOUND

    def test_lookup_by_number(self, staff_client, patient_client, patient, other_patient):
        own = cards.issue(patient.id, timezone.localdate() + timedelta(days=365))
        foreign = cards.issue(other_patient.id, timezone.localdate() + timedelta(days=365))
        cards.block(own.id, 'Lost')

        response = patient_client.get(reverse('health-card-by-number', args=[own.card_number]))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['health_card']['status'] == 'blocked'
        assert response.data['health_card']['is_valid'] is False

        response = patient_client.get(reverse('health-card-by-number', args=[foreign.card_number]))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        response = staff_client.get(reverse('health-card-by-number', args=[foreign.card_number]))
        assert response.status_code == status.HTTP_200_OK

        anonymous = APIClient().get(reverse('health-card-by-number', args=[own.card_number]))
        assert anonymous.status_code == status.HTTP_401_UNAUTHORIZED

    def test_update_rejects_card_number(self, staff_client, patient):
        card = cards.issue(patient.id, timezone.localdate() + timedelta(days=365))
        response = staff_client.patch(
            reverse('health-card-detail', args=[card.id]), {'card_number': 'HC1', 'blood_type': 'B+'}, format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['field'] == 'card_number'

        response = staff_client.patch(reverse('health-card-detail', args=[card.id]), {'blood_type': 'B+'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['health_card']['blood_type'] == 'B+'

    def test_qr_code(self, patient_client, patient):
        card = cards.issue(patient.id, timezone.localdate() + timedelta(days=365))
        response = patient_client.get(reverse('health-card-qr', args=[card.id]))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['qr_code'].startswith('data:image/png;base64,')
        assert card.card_number in response.data['qr_data']


class TestHealthCardRequestsAPI:
    def test_submit_and_approve(self, patient_client, staff_client, patient):
        response = patient_client.post(reverse('health-card-request-submit'), {'blood_type': 'O+'}, format='json')
        assert response.status_code == status.HTTP_201_CREATED
        request_id = response.data['request']['id']

        duplicate = patient_client.post(reverse('health-card-request-submit'), {}, format='json')
        assert duplicate.status_code == status.HTTP_409_CONFLICT

        response = staff_client.patch(
            reverse('health-card-request-approve', args=[request_id]),
            {'expiry_date': (timezone.localdate() + timedelta(days=365)).isoformat()},
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data['request']['status'] == 'approved'
        assert response.data['request']['health_card'] == response.data['health_card']['id']

        mine = patient_client.get(reverse('health-card-request-mine'))
        assert mine.data['request']['status'] == 'approved'

    def test_reject_needs_reason(self, patient_client, staff_client):
        request_id = patient_client.post(reverse('health-card-request-submit'), {}, format='json').data['request']['id']
        url = reverse('health-card-request-reject', args=[request_id])

        response = staff_client.patch(url, {'rejection_reason': ''}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['field'] == 'rejection_reason'

        response = staff_client.patch(url, {'rejection_reason': 'Blurry ID'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['request']['rejection_reason'] == 'Blurry ID'

    def test_patient_cannot_approve(self, patient_client):
        request_id = patient_client.post(reverse('health-card-request-submit'), {}, format='json').data['request']['id']
        response = patient_client.patch(
            reverse('health-card-request-approve', args=[request_id]),
            {'expiry_date': (timezone.localdate() + timedelta(days=365)).isoformat()},
            format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_no_request_yet(self, patient_client):
        assert patient_client.get(reverse('health-card-request-mine')).data == {'request': None}
