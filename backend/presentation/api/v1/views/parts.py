"""
Part Views.

API views for parts, their cost and lifecycle.
"""

from uuid import UUID

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from infrastructure.persistence.models import Part as PartModel
from ..serializers.parts import (
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
from ..serializers.bom import TreeQuerySerializer
from ...pagination import StandardResultsSetPagination
from .base import BaseEngineViewSet


class PartViewSet(BaseEngineViewSet):
    """
    ViewSet for parts.

    Endpoints:
    - GET /parts/ - search parts (?q=, ?part_type=, ?lifecycle_status=)
    - POST /parts/ - create part
    - GET /parts/{id}/ - get part
    - PATCH /parts/{id}/ - update part
    - POST /parts/{id}/cost/ - change standard cost
    - POST /parts/{id}/lifecycle/ - change lifecycle status
    - GET /parts/{id}/cost-history/ - cost history, newest first
    - GET /parts/{id}/where-used/ - parents using the part
    - GET /parts/{id}/rollup/ - rolled cost (?as_of=)
    - GET /parts/{id}/audit-log/ - part audit log
    - GET /parts/{id}/history/ - row history
    """

    history_model = PartModel
    pagination_class = StandardResultsSetPagination

    serializer_classes = {
        'create': PartCreateSerializer,
        'partial_update': PartUpdateSerializer,
        'cost': SetCostSerializer,
        'lifecycle': SetLifecycleSerializer,
        'default': PartSerializer,
    }

    def list(self, request):
        parts = self.engine.search_parts(
            request.query_params.get('q', ''),
            request.query_params.get('part_type') or None,
            request.query_params.get('lifecycle_status') or None,
        )
        paginator = self.pagination_class()
        page = paginator.paginate_queryset(parts, request, view=self)
        return paginator.get_paginated_response(PartSerializer(page, many=True).data)

    def create(self, request):
        data = dict(self.validated(PartCreateSerializer, request.data))
        part = self.engine.create_part(data, created_by=self.actor)
        return self.respond(PartSerializer, part, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return self.respond(PartSerializer, self.engine.get_part(UUID(pk)))

    def partial_update(self, request, pk=None):
        data = dict(self.validated(PartUpdateSerializer, request.data, partial=True))
        reason = data.pop('reason', None)
        override = data.pop('override', False)
        part = self.engine.update_part(UUID(pk), data, reason=reason, override=override, updated_by=self.actor)
        return self.respond(PartSerializer, part)

    @action(detail=True, methods=['post'])
    def cost(self, request, pk=None):
        """Change the standard cost; appends one cost history entry."""
        data = self.validated(SetCostSerializer, request.data)
        part = self.engine.set_part_cost(
            UUID(pk),
            data['new_cost'],
            data['reason'],
            effective_date=data.get('effective_date'),
            updated_by=self.actor,
        )
        return self.respond(PartSerializer, part)

    @action(detail=True, methods=['post'])
    def lifecycle(self, request, pk=None):
        """Move the part along its lifecycle; backward moves need override and reason."""
        data = self.validated(SetLifecycleSerializer, request.data)
        part = self.engine.set_lifecycle(
            UUID(pk),
            data['status'],
            data['reason'],
            override=data['override'],
            updated_by=self.actor,
        )
        return self.respond(PartSerializer, part)

    @action(detail=True, methods=['get'], url_path='cost-history')
    def cost_history(self, request, pk=None):
        limit = request.query_params.get('limit')
        try:
            limit = max(int(limit), 1) if limit else None
        except ValueError:
            return Response(
                {'error': 'VALIDATION_ERROR', 'detail': 'limit must be an integer', 'details': {'field': 'limit'}},
                status=status.HTTP_400_BAD_REQUEST
            )
        entries = self.engine.cost_history(UUID(pk), limit)
        return self.respond(CostHistoryEntrySerializer, entries, many=True)

    @action(detail=True, methods=['get'], url_path='where-used')
    def where_used(self, request, pk=None):
        return self.respond(WhereUsedSerializer, self.engine.where_used(UUID(pk)), many=True)

    @action(detail=True, methods=['get'])
    def rollup(self, request, pk=None):
        query = self.validated(TreeQuerySerializer, request.query_params)
        return self.respond(CostRollupSerializer, self.engine.cost_rollup(UUID(pk), query['as_of']))

    @action(detail=True, methods=['get'], url_path='audit-log')
    def audit_log(self, request, pk=None):
        logs = self.engine.part_audit_log(UUID(pk))[:100]
        return self.respond(PartAuditLogSerializer, logs, many=True)
