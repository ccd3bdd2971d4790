"""
Custom pagination classes for the API.
"""

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """
    Standard pagination class that allows page_size to be set via query parameter.

    Allows clients to request different page sizes using ?page_size=N parameter.
    Default is 50, max is 100.
    """
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 100
