"""
Appointment ledger: booking without conflicts, the status lifecycle and payment capture.

Status machine:
    scheduled -> confirmed | completed | cancelled | no_show
    confirmed -> confirmed | completed | cancelled | no_show
completed, cancelled and no_show are terminal. Doctors (own appointments) and
staff may make any of these moves; a patient may only cancel their own
scheduled appointment.
"""
import datetime
import logging

from django.db import transaction

from accounts import directory
from accounts.models import User
from common.clock import get_clock
from common.exceptions import ValidationError, ConflictError, NotFoundError, AuthorizationError
from .models import Appointment
from .slots import parse_time

logger = logging.getLogger(__name__)

STATUSES = [value for value, _ in Appointment.STATUS_CHOICES]
APPOINTMENT_TYPES = [value for value, _ in Appointment.TYPE_CHOICES]


def get_appointment(appointment_id):
    try:
        return Appointment.objects.get(pk=appointment_id)
    except (Appointment.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('appointment not found', field='appointment_id')


def _clean_symptoms(symptoms):
    if symptoms is None:
        return []
    if isinstance(symptoms, str) or not all(isinstance(item, str) for item in symptoms):
        raise ValidationError('symptoms must be a list of strings', field='symptoms')
    return [item.strip() for item in symptoms if item.strip()]


def book(patient_id, doctor_id, date, start_time, end_time, appointment_type='consultation',
         reason='', symptoms=None, clock=None):
    """
    Books a slot for a patient.
    The overlap check and the insert run in one transaction while holding a row
    lock on the doctor, so two bookings for the same doctor cannot interleave.
    """
    clock = get_clock(clock)

    if not reason or not reason.strip():
        raise ValidationError('reason for visit is required', field='reason')
    if date is None or start_time is None or end_time is None:
        raise ValidationError('a time slot is required', field='start_time')
    if not isinstance(date, datetime.date) or isinstance(date, datetime.datetime):
        raise ValidationError('appointment date must be a calendar date', field='appointment_date')
    start_time = parse_time(start_time, 'start_time')
    end_time = parse_time(end_time, 'end_time')
    if start_time >= end_time:
        raise ValidationError('start time must be before end time', field='end_time')
    if appointment_type not in APPOINTMENT_TYPES:
        raise ValidationError(f"unknown appointment type: {appointment_type}", field='appointment_type')
    if date < clock.today():
        raise ValidationError('appointment date cannot be in the past', field='appointment_date')
    symptoms = _clean_symptoms(symptoms)

    patient = directory.get_patient(patient_id)
    doctor = directory.get_doctor(doctor_id)
    if not doctor.is_active:
        raise ValidationError('doctor is not available for booking', field='doctor_id')

    with transaction.atomic():
        # serializes writers per doctor
        User.objects.select_for_update().filter(pk=doctor.id).first()

        clash = (
            Appointment.objects
            .filter(doctor_id=doctor.id, appointment_date=date,
                    start_time__lt=end_time, end_time__gt=start_time)
            .exclude(status='cancelled')
            .first()
        )
        if clash:
            logger.warning(f"Booking refused for doctor {doctor.id} on {date} {start_time:%H:%M}-{end_time:%H:%M}: "
                           f"overlaps appointment {clash.id}")
            raise ConflictError(
                'this time slot is already booked',
                field='start_time',
                current_state={'start_time': clash.start_time.strftime('%H:%M'),
                               'end_time': clash.end_time.strftime('%H:%M')},
            )

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            appointment_date=date,
            start_time=start_time,
            end_time=end_time,
            appointment_type=appointment_type,
            doctor_name=doctor.full_name,
            doctor_specialization=doctor.specialization,
            consultation_fee=doctor.consultation_fee,
            reason=reason.strip(),
            symptoms=symptoms,
            status='scheduled',
            payment_status=False,
        )
        appointment.copy_patient_snapshot(patient)
        appointment.save()

    logger.info(f"Appointment {appointment.id} booked: patient {patient.id} with doctor {doctor.id} "
                f"on {date} {start_time:%H:%M}-{end_time:%H:%M}")
    return appointment


def check_transition(appointment, new_status, actor):
    """
    Raises when actor may not move the appointment to new_status.
    Authorization is checked before state so a forbidden call reveals nothing.
    """
    if new_status not in STATUSES:
        raise ValidationError(f"unknown status: {new_status}", field='status')
    if new_status == 'scheduled':
        raise ValidationError('an appointment cannot go back to scheduled', field='status',
                              current_state=appointment.status)

    role = getattr(actor, 'role', None)
    if role == 'patient':
        if appointment.patient_id != actor.id:
            raise AuthorizationError('you can only change your own appointments')
        if new_status != 'cancelled' or appointment.status != 'scheduled':
            raise AuthorizationError('patients can only cancel scheduled appointments',
                                     field='status', current_state=appointment.status)
    elif role == 'doctor':
        if appointment.doctor_id != actor.id:
            raise AuthorizationError('you can only change your own appointments')
    elif role not in ('admin', 'staff'):
        raise AuthorizationError('you do not have permission to change appointment status')

    if appointment.is_terminal:
        raise ConflictError(f"appointment is already {appointment.status}",
                            field='status', current_state=appointment.status)


def change_status(appointment_id, new_status, actor):
    appointment = get_appointment(appointment_id)
    try:
        check_transition(appointment, new_status, actor)
    except (AuthorizationError, ConflictError) as e:
        logger.warning(f"Status change of appointment {appointment.id} to {new_status} by "
                       f"{getattr(actor, 'username', None)} refused: {e.message}")
        raise

    # compare-and-set on the status we validated against
    previous = appointment.status
    updated = (
        Appointment.objects
        .filter(pk=appointment.pk, status=previous)
        .update(status=new_status)
    )
    if not updated:
        appointment.refresh_from_db(fields=['status'])
        raise ConflictError('appointment was changed by someone else, reload and retry',
                            field='status', current_state=appointment.status)

    appointment.refresh_from_db()
    logger.info(f"Appointment {appointment.id} status {previous} -> {new_status} by {actor.username}")
    return appointment


def cancel(appointment_id, actor):
    return change_status(appointment_id, 'cancelled', actor)


def set_payment_captured(appointment_id, actor=None, clock=None):
    """
    Marks the appointment as paid. Calling it again changes nothing.
    """
    clock = get_clock(clock)
    appointment = get_appointment(appointment_id)

    if actor is not None and actor.role == 'patient' and appointment.patient_id != actor.id:
        raise AuthorizationError('you can only pay for your own appointments')
    if appointment.payment_status:
        return appointment
    if appointment.status == 'cancelled':
        raise ConflictError('a cancelled appointment cannot be paid', field='status',
                            current_state=appointment.status)

    updated = (
        Appointment.objects
        .filter(pk=appointment.pk, payment_status=False)
        .update(payment_status=True, paid_at=clock.now())
    )
    appointment.refresh_from_db()
    if updated:
        logger.info(f"Payment captured for appointment {appointment.id} "
                    f"({appointment.consultation_fee})")
    return appointment


def update_notes(appointment_id, notes, actor):
    appointment = get_appointment(appointment_id)

    role = getattr(actor, 'role', None)
    if role == 'doctor':
        if appointment.doctor_id != actor.id:
            raise AuthorizationError('you can only edit notes of your own appointments')
    elif role not in ('admin', 'staff'):
        raise AuthorizationError('only doctors and staff can edit notes')

    appointment.notes = notes or ''
    appointment.save(update_fields=['notes', 'updated_at'])
    logger.info(f"Notes updated on appointment {appointment.id} by {actor.username}")
    return appointment
