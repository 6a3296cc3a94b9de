"""
Bookable time windows for a doctor on a calendar date.

Candidates come from the clinic working hours (settings.CLINIC_WORKING_HOURS),
cut into fixed-length slots with the midday break left out. Any candidate that
overlaps a non-cancelled appointment of the doctor on that date is dropped.
The result is only a snapshot: booking re-checks conflicts in its own transaction.
"""
import datetime
from collections import namedtuple

from django.conf import settings

from accounts.models import User
from common.clock import get_clock
from common.exceptions import ValidationError
from .models import Appointment

Slot = namedtuple('Slot', ['start_time', 'end_time'])


def parse_time(value, field='time'):
    """Parses a 24-hour HH:MM string. datetime.time values pass through."""
    if isinstance(value, datetime.time):
        return value
    try:
        return datetime.datetime.strptime(value, '%H:%M').time()
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a HH:MM time", field=field)


def _minutes(value):
    return value.hour * 60 + value.minute


def _from_minutes(total):
    return datetime.time(total // 60, total % 60)


class WorkingHours:
    """Opening hours of the clinic, with an optional break."""

    def __init__(self, start, end, slot_minutes, break_start=None, break_end=None):
        self.start = parse_time(start, 'start')
        self.end = parse_time(end, 'end')
        self.slot_minutes = int(slot_minutes)
        self.break_start = parse_time(break_start, 'break_start') if break_start else None
        self.break_end = parse_time(break_end, 'break_end') if break_end else None

        if self.start >= self.end:
            raise ValidationError('working hours must start before they end', field='start')
        if self.slot_minutes <= 0:
            raise ValidationError('slot length must be positive', field='slot_minutes')
        if (self.break_start is None) != (self.break_end is None):
            raise ValidationError('break needs both a start and an end', field='break_start')
        if self.break_start and not (self.start <= self.break_start < self.break_end <= self.end):
            raise ValidationError('break must fall inside working hours', field='break_start')

    @classmethod
    def from_settings(cls):
        return cls(**settings.CLINIC_WORKING_HOURS)

    def in_break(self, start_time, end_time):
        if self.break_start is None:
            return False
        return start_time < self.break_end and self.break_start < end_time

    def candidate_slots(self):
        slots = []
        current = _minutes(self.start)
        closing = _minutes(self.end)
        while current + self.slot_minutes <= closing:
            slot = Slot(_from_minutes(current), _from_minutes(current + self.slot_minutes))
            if not self.in_break(*slot):
                slots.append(slot)
            current += self.slot_minutes
        return slots


def booked_windows(doctor_id, date):
    return list(
        Appointment.objects
        .filter(doctor_id=doctor_id, appointment_date=date)
        .exclude(status='cancelled')
        .values_list('start_time', 'end_time')
    )


def available_slots(doctor_id, date, hours=None, clock=None):
    """
    Returns the free slots of a doctor for a date, ascending by start time.
    An unknown or inactive doctor has no slots, neither has a past date.
    """
    if not isinstance(date, datetime.date) or isinstance(date, datetime.datetime):
        raise ValidationError('date must be a calendar date', field='date')

    try:
        doctor_available = User.objects.filter(pk=doctor_id, role='doctor', is_active=True).exists()
    except (ValueError, TypeError):
        doctor_available = False
    if not doctor_available:
        return []
    # booking refuses past dates, so nothing there is offered
    if date < get_clock(clock).today():
        return []

    hours = hours or WorkingHours.from_settings()
    taken = booked_windows(doctor_id, date)

    return [
        slot for slot in hours.candidate_slots()
        if not any(start < slot.end_time and slot.start_time < end for start, end in taken)
    ]
