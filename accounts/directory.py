"""
Read-only view of patients and doctors for the scheduling and health card services.
Records are plain value objects so callers never hold on to a live User row.
"""
from collections import namedtuple
from decimal import Decimal

from common.exceptions import NotFoundError
from .models import User

_PatientRecord = namedtuple(
    'PatientRecord',
    ['id', 'first_name', 'last_name', 'email', 'phone', 'blood_type', 'allergies', 'emergency_contact'],
)
_DoctorRecord = namedtuple(
    'DoctorRecord',
    ['id', 'first_name', 'last_name', 'specialization', 'consultation_fee', 'is_active'],
)


class PatientRecord(_PatientRecord):
    __slots__ = ()

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


class DoctorRecord(_DoctorRecord):
    __slots__ = ()

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


def get_patient(patient_id):
    try:
        user = User.objects.get(pk=patient_id, role='patient')
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('patient not found', field='patient_id')

    return PatientRecord(
        id=user.pk,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone=user.phone,
        blood_type=user.blood_type,
        allergies=list(user.allergies or []),
        emergency_contact=dict(user.emergency_contact or {}),
    )


def get_doctor(doctor_id):
    try:
        user = User.objects.get(pk=doctor_id, role='doctor')
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('doctor not found', field='doctor_id')

    return DoctorRecord(
        id=user.pk,
        first_name=user.first_name,
        last_name=user.last_name,
        specialization=user.specialization,
        consultation_fee=Decimal(user.consultation_fee or 0),
        is_active=user.is_active,
    )
