from django.contrib import admin
from .models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_name', 'doctor_name', 'appointment_date', 'start_time', 'end_time', 'status', 'payment_status')
    list_filter = ('status', 'appointment_type', 'payment_status', 'appointment_date')
    search_fields = ('patient_name', 'patient_email', 'doctor_name')
    readonly_fields = ('patient_name', 'patient_email', 'patient_phone', 'doctor_name',
                       'doctor_specialization', 'consultation_fee', 'created_at', 'updated_at')
