from django.db import models
from django.contrib.auth.models import AbstractUser

BLOOD_TYPE_CHOICES = (
    ('A+', 'A+'),
    ('A-', 'A-'),
    ('B+', 'B+'),
    ('B-', 'B-'),
    ('AB+', 'AB+'),
    ('AB-', 'AB-'),
    ('O+', 'O+'),
    ('O-', 'O-'),
)
BLOOD_TYPES = [value for value, _ in BLOOD_TYPE_CHOICES]


class User(AbstractUser):
    """
    Custom user model with role-based access.
    Patients and doctors keep their directory data here;
    is_active doubles as the doctor availability flag.
    """
    ROLE_CHOICES = (
        ('admin', 'Admin'),
        ('staff', 'Staff'),
        ('doctor', 'Doctor'),
        ('patient', 'Patient'),
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='patient')
    phone = models.CharField(max_length=50, blank=True, default='')

    # patient fields
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, blank=True, null=True)
    allergies = models.JSONField(default=list, blank=True, help_text="list of allergy names")
    emergency_contact = models.JSONField(
        default=dict,
        blank=True,
        help_text="""
        {
          "name": "",
          "phone": "",
          "relationship": ""
        }
        """
    )

    # doctor fields
    specialization = models.CharField(max_length=120, blank=True, default='')
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    def __str__(self):
        return f"{self.username} - ({self.role})"

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip() or self.username

    @property
    def is_clinic_staff(self):
        return self.role in ('admin', 'staff')


class PatientSnapshot(models.Model):
    """
    Patient contact fields copied from the directory when a record is created.
    They are not kept in sync with the user afterwards.
    """
    patient_name = models.CharField(max_length=255)
    patient_email = models.EmailField(blank=True, default='')
    patient_phone = models.CharField(max_length=50, blank=True, default='')

    class Meta:
        abstract = True

    def copy_patient_snapshot(self, record):
        self.patient_name = record.full_name
        self.patient_email = record.email
        self.patient_phone = record.phone
