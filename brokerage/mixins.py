"""
ViewSet helpers shared by the brokerage apps.
"""

from django.http import Http404
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from brokerage.auth import IsAdminSession

UUID_REGEX = r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'


class AdminViewSetMixin:
    """
    Back-office viewset defaults: admin session required, unpaginated lists,
    UUID lookups, entity-specific not-found and delete messages.
    """

    permission_classes = [IsAdminSession]
    pagination_class = None
    lookup_value_regex = UUID_REGEX
    entity_label = 'Item'

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            raise NotFound(f"{self.entity_label} not found")

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        self.perform_destroy(instance)
        return Response({'message': f"{self.entity_label} deleted successfully"})
