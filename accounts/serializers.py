from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from .models import User


class EmergencyContactValidator(serializers.Serializer):
    name = serializers.CharField(required=True)
    phone = serializers.CharField(required=True)
    relationship = serializers.CharField(required=False, allow_blank=True, default='')


def validate_emergency_contact(value):
    # empty contact is allowed, a partial one is not
    if not value:
        return {}
    validator = EmergencyContactValidator(data=value)
    if not validator.is_valid():
        raise serializers.ValidationError(validator.errors)
    return dict(validator.validated_data)


class UserSerializer(serializers.ModelSerializer):
    """
    Public profile of a user. Role changes are handled by the view.
    """
    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name', 'full_name', 'role', 'phone',
            'blood_type', 'allergies', 'emergency_contact',
            'specialization', 'consultation_fee', 'is_active', 'date_joined',
        ]
        read_only_fields = ['id', 'date_joined']

    def validate_allergies(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError('allergies must be a list of strings')
        return value

    def validate_emergency_contact(self, value):
        return validate_emergency_contact(value)


class DoctorSerializer(serializers.ModelSerializer):
    """Doctor card shown to patients when booking."""
    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'full_name', 'specialization', 'consultation_fee', 'is_active']


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom JWT serializer that includes user data in the token response.
    """
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data


class LogoutSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()
