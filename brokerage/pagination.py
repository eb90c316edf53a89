"""
Shared pagination for list endpoints that use ``page`` / ``limit``.

Responses are shaped as ``{<results_key>: [...], total, page, total_pages}``
and a page past the end yields an empty list rather than a 404.
"""

import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class PageLimitPagination(PageNumberPagination):
    """
    Page/limit pagination with a configurable results key.

    Usage:
        GET /api/properties/                 -> first 12 results
        GET /api/properties/?page=2&limit=24 -> results 25..48
    """
    page_size = 20
    page_size_query_param = 'limit'
    max_page_size = 1000
    results_key = 'results'

    def paginate_queryset(self, queryset, request, view=None):
        self.request = request
        self.limit = self.get_page_size(request)
        self.page_number = self.get_page_number_value(request)
        self.total = queryset.count()

        offset = (self.page_number - 1) * self.limit
        return list(queryset[offset:offset + self.limit])

    def get_page_number_value(self, request) -> int:
        """Parse the requested page, defaulting to 1 for missing or bad values."""
        try:
            page_number = int(request.query_params.get(self.page_query_param, 1))
        except (TypeError, ValueError):
            page_number = 1
        return max(page_number, 1)

    def get_paginated_response(self, data):
        return Response({
            self.results_key: data,
            'total': self.total,
            'page': self.page_number,
            'total_pages': math.ceil(self.total / self.limit) if self.limit else 0,
        })
