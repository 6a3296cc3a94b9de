from django.conf import settings
from django.db import models

from accounts.models import PatientSnapshot


class Appointment(PatientSnapshot):
    """
    A booked visit of a patient with a doctor.
    Patient and doctor display fields are copied at booking time so the record
    stays readable if the directory changes. Appointments are never deleted,
    cancellation is a status.
    """
    patient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='patient_appointments')
    doctor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='doctor_appointments')

    appointment_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    TYPE_CHOICES = (
        ('consultation', 'Consultation'),
        ('follow_up', 'Follow Up'),
        ('checkup', 'Checkup'),
        ('emergency', 'Emergency'),
    )
    appointment_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='consultation')

    # doctor snapshot
    doctor_name = models.CharField(max_length=255)
    doctor_specialization = models.CharField(max_length=120, blank=True, default='')
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    reason = models.TextField()
    symptoms = models.JSONField(default=list, blank=True)

    STATUS_CHOICES = (
        ('scheduled', 'Scheduled'),
        ('confirmed', 'Confirmed'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('no_show', 'No Show'),
    )
    TERMINAL_STATUSES = ('completed', 'cancelled', 'no_show')
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='scheduled')
    payment_status = models.BooleanField(default=False)
    paid_at = models.DateTimeField(blank=True, null=True)
    notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-appointment_date', '-start_time']
        indexes = [
            models.Index(fields=['doctor', 'appointment_date', 'status'], name='appointment_doctor_day_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(start_time__lt=models.F('end_time')), name='appointment_start_before_end'),
        ]

    def __str__(self):
        return f"{self.patient_name} with {self.doctor_name} on {self.appointment_date} {self.start_time:%H:%M}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES
