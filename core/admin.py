from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ['email', 'name', 'phone', 'is_admin', 'is_active', 'created_at']
    list_filter = ['is_admin', 'is_active']
    search_fields = ['email', 'name', 'phone']
    readonly_fields = ['last_login', 'created_at']
    exclude = ['password']
    ordering = ['-created_at']
