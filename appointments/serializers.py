from rest_framework import serializers
from .models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    """
    Serializer for Appointment model.
    Every field is read only, changes go through the ledger endpoints.
    """
    start_time = serializers.TimeField(format='%H:%M', read_only=True)
    end_time = serializers.TimeField(format='%H:%M', read_only=True)

    class Meta:
        model = Appointment
        fields = [
            'id',
            'patient',
            'doctor',
            'appointment_date',
            'start_time',
            'end_time',
            'appointment_type',
            'patient_name',
            'patient_email',
            'doctor_name',
            'doctor_specialization',
            'consultation_fee',
            'reason',
            'symptoms',
            'status',
            'payment_status',
            'paid_at',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class AppointmentBookingSerializer(serializers.Serializer):
    """
    Booking request. Staff may book on behalf of a patient by sending patient_id.
    """
    patient_id = serializers.IntegerField(required=False)
    doctor_id = serializers.IntegerField()
    appointment_date = serializers.DateField()
    start_time = serializers.TimeField(input_formats=['%H:%M'])
    end_time = serializers.TimeField(input_formats=['%H:%M'])
    appointment_type = serializers.ChoiceField(choices=Appointment.TYPE_CHOICES, default='consultation')
    reason = serializers.CharField(allow_blank=True)
    symptoms = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False, default=list)


class AvailabilityQuerySerializer(serializers.Serializer):
    doctor_id = serializers.IntegerField()
    date = serializers.DateField()


class SlotSerializer(serializers.Serializer):
    start_time = serializers.TimeField(format='%H:%M')
    end_time = serializers.TimeField(format='%H:%M')


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.CharField()


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(allow_blank=True)
