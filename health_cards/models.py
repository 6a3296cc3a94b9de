from django.conf import settings
from django.db import models

from accounts.models import BLOOD_TYPE_CHOICES, PatientSnapshot


class HealthCard(PatientSnapshot):
    """
    Digital health identity card of a patient.
    A patient holds at most one card. status is a cache of the validity
    computed from is_blocked and expiry_date; the card number is derived
    from the primary key so it cannot collide.
    """
    card_number = models.CharField(max_length=32, unique=True, null=True, editable=False)
    patient = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='health_card')

    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, blank=True, null=True)
    allergies = models.JSONField(default=list, blank=True)
    emergency_contact = models.JSONField(default=dict, blank=True, help_text="name / phone / relationship")

    issue_date = models.DateField(editable=False)
    expiry_date = models.DateField()

    STATUS_CHOICES = (
        ('active', 'Active'),
        ('expired', 'Expired'),
        ('blocked', 'Blocked'),
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    is_blocked = models.BooleanField(default=False)
    block_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.card_number} - {self.patient_name}"

    def is_valid(self, today):
        return not self.is_blocked and self.expiry_date > today

    def compute_status(self, today):
        if self.is_blocked:
            return 'blocked'
        if self.expiry_date <= today:
            return 'expired'
        return 'active'


class HealthCardRequest(PatientSnapshot):
    """
    Patient request for a health card, reviewed by staff.
    pending -> approved (card issued) or rejected (with a reason).
    """
    patient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='health_card_requests')

    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, blank=True, null=True)
    allergies = models.JSONField(default=list, blank=True)
    emergency_contact = models.JSONField(default=dict, blank=True)

    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    rejection_reason = models.TextField(blank=True, null=True)

    reviewed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='reviewed_health_card_requests')
    reviewed_at = models.DateTimeField(blank=True, null=True)
    health_card = models.ForeignKey(HealthCard, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='requests')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['patient'],
                condition=models.Q(status='pending'),
                name='one_pending_health_card_request_per_patient',
            ),
        ]

    def __str__(self):
        return f"{self.patient_name} - {self.status}"
