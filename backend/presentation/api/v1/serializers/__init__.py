"""
API v1 Serializers.
"""

from .base import (
    AuditFieldsMixin,
    EnumValueField,
    PartMinimalSerializer,
    VersionedFieldsMixin,
)
from .parts import (
    CostHistoryEntrySerializer,
    CostRollupSerializer,
    PartAuditLogSerializer,
    PartCreateSerializer,
    PartSerializer,
    PartUpdateSerializer,
    SetCostSerializer,
    SetLifecycleSerializer,
    WhereUsedSerializer,
)
from .bom import (
    BOMAuditLogSerializer,
    BOMLineCreateSerializer,
    BOMLineSerializer,
    BOMLineUpdateSerializer,
    BOMTreeNodeSerializer,
    BOMTreeSerializer,
    CloneReportSerializer,
    CloneRequestSerializer,
    MoveLineSerializer,
    TreeQuerySerializer,
)
