from django.contrib import admin

from .models import Case, CaseNote, CaseParticipant, CaseUpdate, Mediator, RCDOfficer


class CaseParticipantInline(admin.TabularInline):
    model = CaseParticipant
    extra = 0


class CaseNoteInline(admin.TabularInline):
    model = CaseNote
    extra = 0


class CaseUpdateInline(admin.TabularInline):
    model = CaseUpdate
    extra = 0
    can_delete = False
    readonly_fields = ("update_type", "description", "old_value",
                       "new_value", "actor_name", "created_at")

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ("case_number", "title", "case_type", "status",
                    "priority", "created_at")
    list_filter = ("status", "priority", "case_type")
    search_fields = ("case_number", "title", "complainant_name",
                     "respondent_name")
    readonly_fields = ("case_number",)
    inlines = [CaseParticipantInline, CaseNoteInline, CaseUpdateInline]


@admin.register(RCDOfficer)
class RCDOfficerAdmin(admin.ModelAdmin):
    list_display = ("full_name", "employee_number", "region",
                    "can_preside_hearings", "is_active")
    list_filter = ("is_active", "region")
    search_fields = ("full_name", "employee_number")


@admin.register(Mediator)
class MediatorAdmin(admin.ModelAdmin):
    list_display = ("full_name", "license_number", "max_active_cases",
                    "is_active")
    list_filter = ("is_active",)
    search_fields = ("full_name", "license_number")


@admin.register(CaseUpdate)
class CaseUpdateAdmin(admin.ModelAdmin):
    list_display = ("case", "update_type", "actor_name", "created_at")
    list_filter = ("update_type",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
