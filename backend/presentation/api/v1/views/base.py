"""
Base Views.

Common view mixins and base classes. Views never touch the domain
components directly; every call goes through ``BOMEngine``.
"""

from uuid import UUID

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from application.services import BOMEngine

UUID_REGEX = '[0-9a-fA-F-]{36}'


class EngineViewMixin:
    """
    Gives a view one engine per request and the acting user name.
    """

    @property
    def engine(self) -> BOMEngine:
        if not hasattr(self, '_engine'):
            self._engine = BOMEngine()
        return self._engine

    @property
    def actor(self):
        user = getattr(self.request, 'user', None)
        if user is not None and user.is_authenticated:
            return user.get_username()
        return None

    def validated(self, serializer_class, data, **kwargs):
        serializer = serializer_class(data=data, **kwargs)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def respond(self, serializer_class, instance, status_code=status.HTTP_200_OK, many=False):
        return Response(serializer_class(instance, many=many).data, status=status_code)


class HistoryViewMixin:
    """
    Mixin for accessing row history recorded by django-simple-history.

    Subclasses set ``history_model``.
    """

    history_model = None

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        """Get object history."""
        history = self.history_model.history.filter(id=UUID(pk)).order_by('-history_date')[:50]
        data = [{
            'id': h.history_id,
            'date': h.history_date,
            'user': h.updated_by,
            'type': h.history_type,
            'version': h.version,
        } for h in history]

        return Response(data)


class BaseEngineViewSet(
    EngineViewMixin,
    HistoryViewMixin,
    viewsets.ViewSet
):
    """
    Base viewset with common functionality.
    """

    lookup_value_regex = UUID_REGEX

    def get_serializer_class(self):
        """
        Return the serializer for the current action.

        Override `serializer_classes` dict in subclass:
        serializer_classes = {
            'create': CreateSerializer,
            'default': DetailSerializer,
        }
        """
        serializer_classes = getattr(self, 'serializer_classes', {})
        return serializer_classes.get(self.action, serializer_classes.get('default'))

