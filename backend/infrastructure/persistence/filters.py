"""
Part search filters.

django-filter FilterSet used both by the part repository search and,
through the API, by query-string filtering.
"""

from django.db.models import Q
from django_filters import rest_framework as django_filters

from .models import Part, PartTypeChoices, LifecycleStatusChoices


class PartFilterSet(django_filters.FilterSet):
    """Case-insensitive text search over SKU, name and description."""

    q = django_filters.CharFilter(method='filter_query')
    part_type = django_filters.ChoiceFilter(choices=PartTypeChoices.choices)
    lifecycle_status = django_filters.ChoiceFilter(choices=LifecycleStatusChoices.choices)

    class Meta:
        model = Part
        fields = ['q', 'part_type', 'lifecycle_status']

    def filter_query(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(sku__icontains=value)
            | Q(name__icontains=value)
            | Q(description__icontains=value)
        )
