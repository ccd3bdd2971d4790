"""
Base ORM Models and Mixins.

Provides common functionality for all models:
- UUID primary keys
- Timestamps (created_at, updated_at)
- Version counter (mirrors the domain entity version)
- Audit tracking (opaque user names)
"""

import uuid
from django.db import models
from simple_history.models import HistoricalRecords


class TimeStampedMixin(models.Model):
    """Mixin for created_at and updated_at timestamps."""

    created_at = models.DateTimeField(
        default=None,
        db_index=True,
        verbose_name="Created at"
    )
    updated_at = models.DateTimeField(
        default=None,
        verbose_name="Updated at"
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        from django.utils import timezone
        now = timezone.now()
        if self.created_at is None:
            self.created_at = now
        if self.updated_at is None:
            self.updated_at = now
        super().save(*args, **kwargs)


class VersionedMixin(models.Model):
    """Version counter; the domain entity increments it on every change."""

    version = models.PositiveIntegerField(
        default=1,
        verbose_name="Version"
    )

    class Meta:
        abstract = True


class AuditMixin(models.Model):
    """Mixin for tracking who created/modified records."""

    created_by = models.CharField(
        max_length=150,
        null=True,
        blank=True,
        verbose_name="Created by"
    )
    updated_by = models.CharField(
        max_length=150,
        null=True,
        blank=True,
        verbose_name="Updated by"
    )

    class Meta:
        abstract = True


class BaseModel(TimeStampedMixin, VersionedMixin, AuditMixin):
    """
    Base model with all common functionality.

    Includes:
    - UUID primary key
    - Timestamps (created_at, updated_at)
    - Version control (version)
    - Audit (created_by, updated_by)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        verbose_name="ID"
    )

    class Meta:
        abstract = True

    def __str__(self):
        return str(self.id)


class BaseModelWithHistory(BaseModel):
    """
    Base model with historical records tracking.

    Uses django-simple-history to track all changes.
    """

    history = HistoricalRecords(inherit=True)

    class Meta:
        abstract = True


# =============================================================================
# MANAGERS
# =============================================================================

class ActiveManager(models.Manager):
    """Manager that only returns active records."""

    def get_queryset(self):
        return super().get_queryset().filter(is_active=True)
