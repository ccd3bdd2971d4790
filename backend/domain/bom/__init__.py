"""
BOM Domain - Bill of Materials structural engine.

Parts are nodes, BOM lines are directed parent -> child edges. Active
lines always form a DAG, which the cycle guard enforces at write time:
- PartRegistry: parts, lifecycle and standard cost
- StructureStore: edges and their validation
- CycleGuard: cycle detection and ancestry closures
- RollupEngine: memoised bottom-up cost rollup
- CloneService: structural subtree cloning
- CostHistoryLedger: append-only cost audit trail
"""

from .clone import CloneService
from .cost_ledger import CostHistoryLedger
from .cycle_guard import CycleGuard
from .entities import BOMLine, CostHistoryEntry, Part
from .part_registry import PartRegistry
from .read_models import BOMTree, BOMTreeNode, CloneReport, CostRollup, WhereUsedEntry
from .rollup import RollupEngine
from .structure_store import StructureStore

__all__ = [
    "BOMLine",
    "BOMTree",
    "BOMTreeNode",
    "CloneReport",
    "CloneService",
    "CostHistoryEntry",
    "CostHistoryLedger",
    "CostRollup",
    "CycleGuard",
    "Part",
    "PartRegistry",
    "RollupEngine",
    "StructureStore",
    "WhereUsedEntry",
]
