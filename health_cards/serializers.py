from rest_framework import serializers

from accounts.models import BLOOD_TYPE_CHOICES
from accounts.serializers import validate_emergency_contact
from . import services
from .models import HealthCard, HealthCardRequest


class HealthCardSerializer(serializers.ModelSerializer):
    """
    Serializer for HealthCard model.
    is_valid and expiring_soon are computed for the current date.
    """
    is_valid = serializers.SerializerMethodField()
    expiring_soon = serializers.SerializerMethodField()

    class Meta:
        model = HealthCard
        fields = [
            'id', 'card_number', 'patient', 'patient_name', 'patient_email', 'patient_phone',
            'blood_type', 'allergies', 'emergency_contact',
            'issue_date', 'expiry_date', 'status', 'is_blocked', 'block_reason',
            'is_valid', 'expiring_soon', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def _today(self):
        return self.context.get('today')

    def get_is_valid(self, obj):
        return services.is_valid(obj, self._today())

    def get_expiring_soon(self, obj):
        return services.is_expiring_soon(obj, self._today())


class MedicalIntakeSerializer(serializers.Serializer):
    """
    Medical fields shared by card issuance and patient requests.
    """
    blood_type = serializers.ChoiceField(choices=BLOOD_TYPE_CHOICES, required=False, allow_null=True, allow_blank=True)
    allergies = serializers.ListField(child=serializers.CharField(), required=False, allow_null=True)
    emergency_contact = serializers.DictField(required=False, allow_null=True)

    def validate_emergency_contact(self, value):
        if value is None:
            return None
        return validate_emergency_contact(value)


class HealthCardIssueSerializer(MedicalIntakeSerializer):
    patient_id = serializers.IntegerField()
    expiry_date = serializers.DateField()


class HealthCardUpdateSerializer(MedicalIntakeSerializer):
    """
    Only the listed fields are editable. card_number, patient and issue_date
    are rejected by the registry.
    """
    expiry_date = serializers.DateField(required=False)


class BlockSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class HealthCardRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = HealthCardRequest
        fields = [
            'id', 'patient', 'patient_name', 'patient_email', 'patient_phone',
            'blood_type', 'allergies', 'emergency_contact',
            'status', 'rejection_reason', 'reviewed_by', 'reviewed_at', 'health_card', 'created_at',
        ]
        read_only_fields = fields


class ApproveRequestSerializer(serializers.Serializer):
    expiry_date = serializers.DateField()


class RejectRequestSerializer(serializers.Serializer):
    rejection_reason = serializers.CharField(allow_blank=True)
