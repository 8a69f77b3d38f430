from django.contrib import admin

from .models import Hearing, HearingParticipant


class HearingParticipantInline(admin.TabularInline):
    model = HearingParticipant
    extra = 0


@admin.register(Hearing)
class HearingAdmin(admin.ModelAdmin):
    list_display = ("hearing_number", "case", "hearing_date", "start_time",
                    "end_time", "presiding_officer_name", "status")
    list_filter = ("status", "hearing_date")
    search_fields = ("hearing_number", "title", "presiding_officer_name")
    readonly_fields = ("hearing_number",)
    inlines = [HearingParticipantInline]
