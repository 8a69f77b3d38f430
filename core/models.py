"""
Core app models.

Provides abstract base models and shared infrastructure tables used
across the project: the numbering counters behind case / hearing
numbers and the in-app notification inbox.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class SequenceCounter(TimeStampedModel):
    """
    Monotonic counter for one numbering bucket.

    A bucket is ``(prefix, year, month)``, e.g. ``("RA", 2026, 3)`` for
    rent-arrears cases filed in March 2026.  ``last_value`` is the last
    sequence handed out; allocation increments it under a row lock (see
    ``core.domain.sequences``) so concurrent requests in the same bucket
    never observe the same value.
    """

    prefix = models.CharField(max_length=10, verbose_name="Prefix")
    year = models.PositiveSmallIntegerField(verbose_name="Year")
    month = models.PositiveSmallIntegerField(verbose_name="Month")
    last_value = models.PositiveIntegerField(
        default=0,
        verbose_name="Last Allocated Value",
    )

    class Meta:
        verbose_name = "Sequence Counter"
        verbose_name_plural = "Sequence Counters"
        constraints = [
            models.UniqueConstraint(
                fields=["prefix", "year", "month"],
                name="uniq_sequence_bucket",
            ),
        ]

    def __str__(self):
        return f"{self.prefix}/{self.year}/{self.month:02d} → {self.last_value}"


class Notification(TimeStampedModel):
    """
    In-app notification sent to a user about a case or hearing event
    (status change, assignment, hearing scheduled / cancelled).

    Uses a GenericForeignKey so either a ``Case`` or a ``Hearing`` can be
    the *source* of a notification.  Both use UUID primary keys, hence
    the text ``object_id``.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    is_read = models.BooleanField(default=False, verbose_name="Read")

    # Generic relation to the object that triggered the notification
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        verbose_name="Related Content Type",
    )
    object_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        verbose_name="Related Object ID",
    )
    content_object = GenericForeignKey("content_type", "object_id")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.title}"
