from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import AgentProfile, StudentProfile, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("email", "full_name", "role", "is_verified", "is_staff")
    list_filter = ("role", "is_verified", "is_staff")
    search_fields = ("email", "full_name", "phone_number")
    ordering = ("email",)
    fieldsets = BaseUserAdmin.fieldsets + (
        ("U-Homes", {"fields": ("full_name", "phone_number", "role", "is_verified")}),
    )


@admin.register(AgentProfile)
class AgentProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "agency_name", "identity_verified", "total_revenue")
    list_filter = ("identity_verified",)


admin.site.register(StudentProfile)
