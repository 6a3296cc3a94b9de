from django.contrib import admin
from .models import HealthCard, HealthCardRequest


@admin.register(HealthCard)
class HealthCardAdmin(admin.ModelAdmin):
    list_display = ('id', 'card_number', 'patient_name', 'status', 'is_blocked', 'issue_date', 'expiry_date')
    list_filter = ('status', 'is_blocked', 'blood_type')
    search_fields = ('card_number', 'patient_name', 'patient_email')
    readonly_fields = ('card_number', 'patient', 'issue_date', 'created_at', 'updated_at')


@admin.register(HealthCardRequest)
class HealthCardRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_name', 'status', 'reviewed_by', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('patient_name', 'patient_email')
    readonly_fields = ('status', 'health_card', 'reviewed_by', 'reviewed_at', 'created_at')
