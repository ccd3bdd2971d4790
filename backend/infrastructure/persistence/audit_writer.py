"""
Audit writer.

Turns domain events into PartAuditLog / BOMAuditLog rows. Called inside
the structural transaction, so audit rows commit or roll back with the
change itself.
"""

from typing import Iterable

from domain.shared import events as ev

from .models import BOMAuditLog, PartAuditLog


class AuditWriter:

    def write(self, events: Iterable[ev.DomainEvent]) -> None:
        part_rows = []
        bom_rows = []
        for event in events:
            if isinstance(event, (ev.PartCreated, ev.PartUpdated, ev.PartCostChanged, ev.PartLifecycleChanged)):
                part_rows.extend(self._part_rows(event))
            else:
                bom_rows.extend(self._bom_rows(event))
        if part_rows:
            PartAuditLog.objects.bulk_create(part_rows)
        if bom_rows:
            BOMAuditLog.objects.bulk_create(bom_rows)

    def _part_rows(self, event):
        base = {
            'part_id': event.part_id,
            'timestamp': event.occurred_at,
            'user': event.actor,
            'event_id': event.event_id,
        }
        if isinstance(event, ev.PartCreated):
            return [PartAuditLog(action='CREATE', field_name='sku', new_value=event.sku, reason='Part created', **base)]
        if isinstance(event, ev.PartCostChanged):
            return [PartAuditLog(
                action='COST_CHANGE',
                field_name='std_cost',
                old_value=event.old_cost,
                new_value=event.new_cost,
                reason=event.reason,
                **base,
            )]
        if isinstance(event, ev.PartLifecycleChanged):
            return [PartAuditLog(
                action='LIFECYCLE_OVERRIDE' if event.override else 'LIFECYCLE_CHANGE',
                field_name='lifecycle_status',
                old_value=event.old_status,
                new_value=event.new_status,
                reason=event.reason,
                **base,
            )]
        return [
            PartAuditLog(
                action='UPDATE',
                field_name=name,
                old_value=_text(old),
                new_value=_text(new),
                reason=event.reason or '',
                **base,
            )
            for name, (old, new) in event.changes.items()
        ]

    def _bom_rows(self, event):
        base = {
            'timestamp': event.occurred_at,
            'user': event.actor,
            'event_id': event.event_id,
        }
        if isinstance(event, ev.BOMLineAdded):
            return [BOMAuditLog(
                action='ADD_LINE',
                parent_part_id=event.parent_part_id,
                line_id=event.line_id,
                changes={
                    'child_part_id': str(event.child_part_id),
                    'qty_per': event.qty_per,
                    'uom': event.uom,
                },
                reason=event.reason,
                **base,
            )]
        if isinstance(event, ev.BOMLineUpdated):
            return [BOMAuditLog(
                action='UPDATE_LINE',
                parent_part_id=event.parent_part_id,
                line_id=event.line_id,
                changes={name: [old, new] for name, (old, new) in event.changes.items()},
                **base,
            )]
        if isinstance(event, ev.BOMLineDeactivated):
            return [BOMAuditLog(
                action='DEACTIVATE_LINE',
                parent_part_id=event.parent_part_id,
                line_id=event.line_id,
                changes={'child_part_id': str(event.child_part_id)},
                **base,
            )]
        if isinstance(event, ev.BOMSubtreeCloned):
            return [BOMAuditLog(
                action='CLONE_BOM',
                parent_part_id=event.target_part_id,
                changes={
                    'source_part_id': str(event.source_part_id),
                    'lines_cloned': event.lines_cloned,
                    'lines_reused': event.lines_reused,
                },
                reason=f"Cloned from {event.source_sku}",
                **base,
            )]
        return []


def _text(value):
    return None if value is None else str(value)
