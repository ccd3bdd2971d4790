"""
Persistence Models Package.

All Django ORM models of the BOM engine.
"""

# Base mixins and managers
from .base import (
    TimeStampedMixin,
    VersionedMixin,
    AuditMixin,
    ActiveManager,
)

# BOM models
from .bom import (
    Part,
    PartTypeChoices,
    LifecycleStatusChoices,
    BOMLine,
    CostHistoryEntry,
    StructureRevision,
)

# Audit models
from .audit import (
    PartAuditLog,
    BOMAuditLog,
)

__all__ = [
    'TimeStampedMixin',
    'VersionedMixin',
    'AuditMixin',
    'ActiveManager',
    'Part',
    'PartTypeChoices',
    'LifecycleStatusChoices',
    'BOMLine',
    'CostHistoryEntry',
    'StructureRevision',
    'PartAuditLog',
    'BOMAuditLog',
]
