from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count

from .models import Role, User


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "member_count", "description")
    search_fields = ("name",)

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_member_count=Count("users"))

    @admin.display(description="Members", ordering="_member_count")
    def member_count(self, obj):
        return obj._member_count


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "get_full_name", "national_id", "phone_number",
                    "role", "staff_profile", "is_active")
    list_select_related = ("role",)
    search_fields = ("username", "email", "national_id", "phone_number",
                     "first_name", "last_name")
    list_filter = ("role", "is_active")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Tribunal identity", {"fields": ("national_id", "phone_number", "role")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Tribunal identity", {"fields": ("email", "national_id", "phone_number",
                                          "first_name", "last_name", "role")}),
    )

    @admin.display(description="Staff profile")
    def staff_profile(self, obj):
        if hasattr(obj, "rcd_officer_profile"):
            return "RCD officer"
        if hasattr(obj, "mediator_profile"):
            return "Mediator"
        return "-"
