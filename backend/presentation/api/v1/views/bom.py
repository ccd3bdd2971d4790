"""
BOM Views.

API views for BOM lines, trees and cloning.
"""

from uuid import UUID

from rest_framework import status, viewsets
from rest_framework.decorators import action

from infrastructure.persistence.models import BOMLine as BOMLineModel
from ..serializers.bom import (
    BOMAuditLogSerializer,
    BOMLineCreateSerializer,
    BOMLineSerializer,
    BOMLineUpdateSerializer,
    BOMTreeSerializer,
    CloneReportSerializer,
    CloneRequestSerializer,
    MoveLineSerializer,
    TreeQuerySerializer,
)
from .base import UUID_REGEX, BaseEngineViewSet, EngineViewMixin


class BOMLineViewSet(BaseEngineViewSet):
    """
    ViewSet for BOM lines.

    Endpoints:
    - POST /bom-lines/ - add line
    - GET /bom-lines/{id}/ - get line
    - PATCH /bom-lines/{id}/ - update line
    - POST /bom-lines/{id}/move/ - re-parent line
    - POST /bom-lines/{id}/deactivate/ - soft delete line
    - GET /bom-lines/{id}/audit-log/ - line audit log
    - GET /bom-lines/{id}/history/ - row history
    """

    history_model = BOMLineModel

    serializer_classes = {
        'create': BOMLineCreateSerializer,
        'partial_update': BOMLineUpdateSerializer,
        'move': MoveLineSerializer,
        'default': BOMLineSerializer,
    }

    def create(self, request):
        data = self.validated(BOMLineCreateSerializer, request.data)
        line = self.engine.add_line(
            data['parent_part_id'],
            data['child_part_id'],
            data['qty_per'],
            scrap_pct=data['scrap_pct'],
            uom=data.get('uom'),
            sort_order=data.get('sort_order'),
            notes=data['notes'],
            created_by=self.actor,
        )
        return self.respond(BOMLineSerializer, line, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return self.respond(BOMLineSerializer, self.engine.get_line(UUID(pk)))

    def partial_update(self, request, pk=None):
        fields = self.validated(BOMLineUpdateSerializer, request.data, partial=True)
        line = self.engine.update_line(UUID(pk), dict(fields), updated_by=self.actor)
        return self.respond(BOMLineSerializer, line)

    @action(detail=True, methods=['post'])
    def move(self, request, pk=None):
        data = self.validated(MoveLineSerializer, request.data)
        line = self.engine.move_line(UUID(pk), data['new_parent_id'], updated_by=self.actor)
        return self.respond(BOMLineSerializer, line)

    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        self.engine.deactivate_line(UUID(pk), updated_by=self.actor)
        return self.respond(BOMLineSerializer, self.engine.get_line(UUID(pk)))

    @action(detail=True, methods=['get'], url_path='audit-log')
    def audit_log(self, request, pk=None):
        logs = self.engine.line_audit_log(UUID(pk))[:100]
        return self.respond(BOMAuditLogSerializer, logs, many=True)


class BOMViewSet(EngineViewMixin, viewsets.ViewSet):
    """
    Structure read and clone endpoints, keyed by part id.

    Endpoints:
    - GET /bom/{part_id}/tree/ - unrolled tree with costs (?include_inactive=, ?as_of=)
    - POST /bom/{part_id}/clone/ - clone another part's structure onto this one
    """

    lookup_value_regex = UUID_REGEX

    @action(detail=True, methods=['get'])
    def tree(self, request, pk=None):
        """Get BOM as hierarchical tree."""
        query = self.validated(TreeQuerySerializer, request.query_params)
        tree = self.engine.get_tree(UUID(pk), query['include_inactive'], query['as_of'])
        return self.respond(BOMTreeSerializer, tree)

    @action(detail=True, methods=['post'])
    def clone(self, request, pk=None):
        """Clone the active structure of ``source_part_id`` onto this part."""
        data = self.validated(CloneRequestSerializer, request.data)
        report = self.engine.clone_subtree(data['source_part_id'], UUID(pk), created_by=self.actor)
        return self.respond(CloneReportSerializer, report, status.HTTP_201_CREATED)
