"""
Health card registry and the request review workflow.

Registry: issuing cards (one per patient), computing validity, blocking and
partial updates. Workflow: patients submit requests, staff approve them (which
issues the card in the same transaction) or reject them with a reason.
"""
import base64
import datetime
import json
import logging
from io import BytesIO

import qrcode
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils.dateparse import parse_date

from accounts import directory
from accounts.models import BLOOD_TYPES
from common.clock import get_clock
from common.exceptions import ValidationError, ConflictError, NotFoundError, AuthorizationError
from .models import HealthCard, HealthCardRequest

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('expiry_date', 'blood_type', 'allergies', 'emergency_contact')
IMMUTABLE_FIELDS = ('card_number', 'patient', 'patient_id', 'issue_date')
EMERGENCY_CONTACT_KEYS = ('name', 'phone', 'relationship')


# input cleaning

def _clean_date(value, field):
    if value is None or value == '':
        raise ValidationError(f"{field.replace('_', ' ')} is required", field=field)
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field.replace('_', ' ')} must be a YYYY-MM-DD date", field=field)
    return parsed


def _clean_blood_type(value):
    if value in (None, ''):
        return None
    if value not in BLOOD_TYPES:
        raise ValidationError(f"unknown blood type: {value}", field='blood_type')
    return value


def _clean_allergies(value):
    if value is None:
        return None
    if isinstance(value, str) or not all(isinstance(item, str) for item in value):
        raise ValidationError('allergies must be a list of strings', field='allergies')
    return [item.strip() for item in value if item.strip()]


def _clean_emergency_contact(value):
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError('emergency contact must be an object', field='emergency_contact')
    unknown = set(value) - set(EMERGENCY_CONTACT_KEYS)
    if unknown:
        raise ValidationError(f"unknown emergency contact fields: {', '.join(sorted(unknown))}",
                              field='emergency_contact')
    return {key: str(value[key]) for key in EMERGENCY_CONTACT_KEYS if value.get(key)}


def format_card_number(card):
    return f"{settings.HEALTH_CARD_NUMBER_PREFIX}{card.issue_date:%Y}{card.pk:06d}"


# registry

def get_card(card_id, clock=None):
    try:
        card = HealthCard.objects.get(pk=card_id)
    except (HealthCard.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('health card not found', field='card_id')
    return refresh_status(card, clock)


def get_card_for_patient(patient_id, actor, clock=None):
    # patients can only view their own card
    if actor.role == 'patient' and str(actor.id) != str(patient_id):
        raise AuthorizationError('you can only view your own health card')
    try:
        card = HealthCard.objects.get(patient_id=patient_id)
    except (HealthCard.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('health card not found', field='patient_id')
    return refresh_status(card, clock)


def is_valid(card, today=None):
    """
    A card is valid when it is not blocked and expires after today.
    Pure: nothing is written.
    """
    today = today or get_clock().today()
    return card.is_valid(today)


def is_expiring_soon(card, today=None):
    today = today or get_clock().today()
    if not card.is_valid(today):
        return False
    return (card.expiry_date - today).days <= settings.HEALTH_CARD_EXPIRY_WARNING_DAYS


def refresh_status(card, clock=None):
    """Brings the cached status in line with the flags and the date."""
    status = card.compute_status(get_clock(clock).today())
    if status != card.status:
        card.status = status
        card.save(update_fields=['status', 'updated_at'])
    return card


def issue(patient_id, expiry_date, blood_type=None, allergies=None, emergency_contact=None, clock=None):
    """
    Issues the card of a patient.
    Medical fields not supplied fall back to what the patient has on file.
    """
    clock = get_clock(clock)
    today = clock.today()

    expiry_date = _clean_date(expiry_date, 'expiry_date')
    if expiry_date <= today:
        raise ValidationError('expiry date must be in the future', field='expiry_date')
    blood_type = _clean_blood_type(blood_type)
    allergies = _clean_allergies(allergies)
    emergency_contact = _clean_emergency_contact(emergency_contact)

    patient = directory.get_patient(patient_id)

    existing = HealthCard.objects.filter(patient_id=patient.id).first()
    if existing:
        logger.warning(f"Issuance refused for patient {patient.id}: already holds card {existing.card_number}")
        raise ConflictError('patient already has a health card', field='patient_id',
                            current_state={'card_number': existing.card_number})

    try:
        with transaction.atomic():
            card = HealthCard(
                patient_id=patient.id,
                blood_type=blood_type or patient.blood_type,
                allergies=allergies if allergies is not None else patient.allergies,
                emergency_contact=emergency_contact if emergency_contact is not None else patient.emergency_contact,
                issue_date=today,
                expiry_date=expiry_date,
                status='active',
                is_blocked=False,
            )
            card.copy_patient_snapshot(patient)
            card.save()

            card.card_number = format_card_number(card)
            card.save(update_fields=['card_number'])
    except IntegrityError:
        # lost the race against another issuance for the same patient
        logger.warning(f"Issuance for patient {patient.id} lost to a concurrent issuance")
        raise ConflictError('patient already has a health card', field='patient_id')

    logger.info(f"Health card {card.card_number} issued to patient {patient.id}, expires {expiry_date}")
    return card


def block(card_id, reason=None):
    card = get_card(card_id)
    card.is_blocked = True
    card.block_reason = (reason or '').strip() or settings.HEALTH_CARD_DEFAULT_BLOCK_REASON
    card.status = 'blocked'
    card.save(update_fields=['is_blocked', 'block_reason', 'status', 'updated_at'])

    logger.info(f"Health card {card.card_number} blocked, reason: {card.block_reason}")
    return card


def unblock(card_id):
    # expiry is not checked here, is_valid still reports an expired card
    card = get_card(card_id)
    card.is_blocked = False
    card.block_reason = None
    card.status = 'active'
    card.save(update_fields=['is_blocked', 'block_reason', 'status', 'updated_at'])

    logger.info(f"Health card {card.card_number} unblocked")
    return card


def update(card_id, changes, clock=None):
    """
    Partial update of the editable card fields.
    """
    forbidden = [field for field in IMMUTABLE_FIELDS if field in changes]
    if forbidden:
        raise ValidationError(f"{', '.join(forbidden)} cannot be changed", field=forbidden[0])
    unknown = [field for field in changes if field not in UPDATABLE_FIELDS]
    if unknown:
        raise ValidationError(f"unknown fields: {', '.join(unknown)}", field=unknown[0])

    card = get_card(card_id, clock)
    if 'expiry_date' in changes:
        card.expiry_date = _clean_date(changes['expiry_date'], 'expiry_date')
    if 'blood_type' in changes:
        card.blood_type = _clean_blood_type(changes['blood_type'])
    if 'allergies' in changes:
        card.allergies = _clean_allergies(changes['allergies']) or []
    if 'emergency_contact' in changes:
        card.emergency_contact = _clean_emergency_contact(changes['emergency_contact']) or {}

    card.status = card.compute_status(get_clock(clock).today())
    card.save()

    logger.info(f"Health card {card.card_number} updated: {', '.join(changes)}")
    return card


def get_card_by_number(card_number, clock=None):
    # returned whatever its validity
    card = HealthCard.objects.filter(card_number=card_number).first()
    if card is None:
        raise NotFoundError('health card not found', field='card_number')
    return refresh_status(card, clock)


def validate_card_number(card_number, clock=None):
    """
    Looks a card up by number for verification.
    Returns (card, is_valid).
    """
    clock = get_clock(clock)
    card = get_card_by_number(card_number, clock)
    return card, card.is_valid(clock.today())


def render_qr_code(card, verify_url=None):
    """
    PNG QR code (data URI) carrying the card number and where to verify it.
    """
    qr_data = json.dumps({
        'card_number': card.card_number,
        'patient_name': card.patient_name,
        'verify_url': verify_url,
    })
    image = qrcode.make(qr_data)
    buffer = BytesIO()
    image.save(buffer, format='PNG')
    qr_base64 = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{qr_base64}", qr_data


# request workflow

def get_request(request_id):
    try:
        return HealthCardRequest.objects.get(pk=request_id)
    except (HealthCardRequest.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('health card request not found', field='request_id')


def latest_request_for(patient_id):
    return HealthCardRequest.objects.filter(patient_id=patient_id).order_by('-created_at', '-id').first()


def submit(patient_id, blood_type=None, allergies=None, emergency_contact=None):
    blood_type = _clean_blood_type(blood_type)
    allergies = _clean_allergies(allergies)
    emergency_contact = _clean_emergency_contact(emergency_contact)

    patient = directory.get_patient(patient_id)

    if HealthCardRequest.objects.filter(patient_id=patient.id, status='pending').exists():
        logger.warning(f"Health card request refused for patient {patient.id}: one is already pending")
        raise ConflictError('you already have a pending health card request', field='patient_id',
                            current_state='pending')

    try:
        with transaction.atomic():
            card_request = HealthCardRequest(
                patient_id=patient.id,
                blood_type=blood_type,
                allergies=allergies or [],
                emergency_contact=emergency_contact or {},
                status='pending',
            )
            card_request.copy_patient_snapshot(patient)
            card_request.save()
    except IntegrityError:
        raise ConflictError('you already have a pending health card request', field='patient_id',
                            current_state='pending')

    logger.info(f"Health card request {card_request.id} submitted by patient {patient.id}")
    return card_request


def approve(request_id, expiry_date, reviewer=None, clock=None):
    """
    Approves a pending request and issues the card.
    Both happen in one transaction: if issuing fails the request stays pending.
    Returns (request, card).
    """
    clock = get_clock(clock)
    card_request = get_request(request_id)

    with transaction.atomic():
        # only the first approver gets past this point
        claimed = (
            HealthCardRequest.objects
            .filter(pk=card_request.pk, status='pending')
            .update(status='approved', reviewed_by=reviewer, reviewed_at=clock.now())
        )
        if not claimed:
            card_request.refresh_from_db(fields=['status'])
            logger.warning(f"Approval of health card request {card_request.id} refused: "
                           f"already {card_request.status}")
            raise ConflictError(f"request is already {card_request.status}", field='status',
                                current_state=card_request.status)

        card = issue(
            card_request.patient_id,
            expiry_date,
            blood_type=card_request.blood_type or None,
            allergies=card_request.allergies or None,
            emergency_contact=card_request.emergency_contact or None,
            clock=clock,
        )
        HealthCardRequest.objects.filter(pk=card_request.pk).update(health_card=card)

    card_request.refresh_from_db()
    logger.info(f"Health card request {card_request.id} approved by "
                f"{getattr(reviewer, 'username', 'system')}, card {card.card_number}")
    return card_request, card


def reject(request_id, rejection_reason, reviewer=None, clock=None):
    clock = get_clock(clock)
    if not rejection_reason or not rejection_reason.strip():
        raise ValidationError('rejection reason is required', field='rejection_reason')

    card_request = get_request(request_id)
    rejected = (
        HealthCardRequest.objects
        .filter(pk=card_request.pk, status='pending')
        .update(status='rejected', rejection_reason=rejection_reason.strip(),
                reviewed_by=reviewer, reviewed_at=clock.now())
    )
    card_request.refresh_from_db()
    if not rejected:
        logger.warning(f"Rejection of health card request {card_request.id} refused: "
                       f"already {card_request.status}")
        raise ConflictError(f"request is already {card_request.status}", field='status',
                            current_state=card_request.status)

    logger.info(f"Health card request {card_request.id} rejected by "
                f"{getattr(reviewer, 'username', 'system')}: {card_request.rejection_reason}")
    return card_request
