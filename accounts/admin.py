from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('id', 'username', 'role', 'specialization', 'is_active')
    list_filter = ('role', 'is_active', 'blood_type')
    search_fields = ('username', 'email', 'first_name', 'last_name')
