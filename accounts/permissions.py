from rest_framework import permissions


class IsAdminOrStaff(permissions.BasePermission):
    """
    Allows access only to clinic staff (admin and staff users).
    """
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role in ['admin', 'staff']


class IsPatient(permissions.BasePermission):
    """
    Allows access only to patient users.
    """
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == 'patient'


class IsDoctorOrStaff(permissions.BasePermission):
    """
    Allows access to doctors, staff and admins.
    """
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role in ['admin', 'staff', 'doctor']


class IsPatientOrStaff(permissions.BasePermission):
    # Patients act on their own data, staff on everybody's
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role in ['admin', 'staff', 'patient']


class OwnRecordPermission(permissions.BasePermission):
    """
    Object-level permission based on ownership.
    Staff users have full access.
    Doctors see the objects they are assigned to, patients only their own.
    """
    def has_object_permission(self, request, view, obj):
        user = request.user

        if user.is_clinic_staff:
            return True

        if user.role == 'doctor' and hasattr(obj, 'doctor_id'):
            return obj.doctor_id == user.id

        if user.role == 'patient' and hasattr(obj, 'patient_id'):
            return obj.patient_id == user.id

        return False
