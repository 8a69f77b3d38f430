from django.contrib import admin

from .models import Notification, SequenceCounter


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("recipient", "title", "is_read", "created_at")
    list_filter = ("is_read",)
    search_fields = ("title", "message")


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    list_display = ("prefix", "year", "month", "last_value")
    list_filter = ("prefix", "year")
