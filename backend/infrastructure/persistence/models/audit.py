"""
Audit ORM Models.

Audit trail of part and BOM changes. Rows are written from domain events
in the same transaction as the change they describe.
"""

from django.db import models

import uuid


class PartAuditLog(models.Model):
    """
    One row per changed part field.

    Cost and lifecycle changes get a row of their own with the reason.
    """

    ACTION_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('COST_CHANGE', 'Cost change'),
        ('LIFECYCLE_CHANGE', 'Lifecycle change'),
        ('LIFECYCLE_OVERRIDE', 'Lifecycle override'),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    # When
    timestamp = models.DateTimeField(
        db_index=True,
        verbose_name="Time"
    )

    # Who
    user = models.CharField(
        max_length=150,
        null=True,
        blank=True,
        verbose_name="User"
    )

    # What
    part = models.ForeignKey(
        'persistence.Part',
        on_delete=models.PROTECT,
        related_name='audit_logs',
        verbose_name="Part"
    )
    action = models.CharField(
        max_length=20,
        choices=ACTION_CHOICES,
        db_index=True,
        verbose_name="Action"
    )
    field_name = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Field"
    )
    old_value = models.TextField(
        null=True,
        blank=True,
        verbose_name="Old value"
    )
    new_value = models.TextField(
        null=True,
        blank=True,
        verbose_name="New value"
    )
    reason = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Reason"
    )
    event_id = models.UUIDField(
        db_index=True,
        verbose_name="Event"
    )

    class Meta:
        db_table = 'bom_part_audit_log'
        verbose_name = 'Part audit entry'
        verbose_name_plural = 'Part audit log'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['part', 'timestamp']),
        ]

    def __str__(self):
        return f"{self.timestamp}: {self.user} - {self.get_action_display()} {self.field_name}"


class BOMAuditLog(models.Model):
    """Structural changes: lines added, changed, deactivated, clones."""

    ACTION_CHOICES = [
        ('ADD_LINE', 'Add line'),
        ('UPDATE_LINE', 'Update line'),
        ('DEACTIVATE_LINE', 'Deactivate line'),
        ('CLONE_BOM', 'Clone BOM'),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    timestamp = models.DateTimeField(
        db_index=True,
        verbose_name="Time"
    )
    user = models.CharField(
        max_length=150,
        null=True,
        blank=True,
        verbose_name="User"
    )

    parent_part = models.ForeignKey(
        'persistence.Part',
        on_delete=models.PROTECT,
        related_name='bom_audit_logs',
        verbose_name="Parent part"
    )
    line = models.ForeignKey(
        'persistence.BOMLine',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='audit_logs',
        verbose_name="BOM line"
    )
    action = models.CharField(
        max_length=20,
        choices=ACTION_CHOICES,
        db_index=True,
        verbose_name="Action"
    )

    # What changed (JSON)
    changes = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Changes"
    )
    reason = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Reason"
    )
    event_id = models.UUIDField(
        db_index=True,
        verbose_name="Event"
    )

    class Meta:
        db_table = 'bom_audit_log'
        verbose_name = 'BOM audit entry'
        verbose_name_plural = 'BOM audit log'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['parent_part', 'timestamp']),
            models.Index(fields=['line', 'timestamp']),
        ]

    def __str__(self):
        return f"{self.timestamp}: {self.user} - {self.get_action_display()}"
