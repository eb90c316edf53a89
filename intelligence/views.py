"""
Intelligence assistant endpoints (admin only).

- POST chat/               -> reply or proposed action
- POST execute/            -> confirm or cancel a proposed action
- GET  audit-logs/         -> paginated action history
- POST clear-context/      -> forget this session's conversation
- GET  context-info/       -> conversation size for this session
- GET  rate-limit-stats/   -> limiter counters
"""

import logging

from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from brokerage.auth import IsAdminSession
from brokerage.exceptions import first_error_message
from brokerage.pagination import PageLimitPagination
from . import errors
from .context import conversations
from .engine import execute_action, process_user_message
from .filters import AuditLogFilter
from .models import IntelligenceAuditLog
from .rate_limiter import rate_limiter
from .serializers import AuditLogSerializer, ChatMessageSerializer, ExecuteActionSerializer

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = 'Erro interno do servidor ao processar sua mensagem. Por favor, tente novamente.'


def _session_id(request) -> str:
    return getattr(request.user, 'session_key', None) or 'default'


def _invalid(serializer) -> Response:
    """400 with the first validation message, without the field prefix."""
    message = first_error_message(list(serializer.errors.values()))
    return Response({'message': message}, status=status.HTTP_400_BAD_REQUEST)


# =============================================================================
# CHAT & EXECUTE
# =============================================================================

@api_view(['POST'])
@permission_classes([IsAdminSession])
def chat(request):
    """
    Send a message to the assistant.

    Body:
        message: 1-5000 characters
        images: optional [{base64_data, filename}] for new listings
    """
    serializer = ChatMessageSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    try:
        result = process_user_message(
            serializer.validated_data['message'],
            _session_id(request),
            serializer.validated_data.get('images'),
        )
    except errors.IntelligenceError as e:
        logger.warning(f"Assistant chat failed: {e.message}")
        return Response({'message': e.display_message}, status=e.status_code)
    except Exception:
        logger.exception("Unexpected error in assistant chat")
        return Response({'message': INTERNAL_ERROR_MESSAGE}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response(result)


@api_view(['POST'])
@permission_classes([IsAdminSession])
def execute(request):
    """Confirm (``confirmed: true``) or cancel a pending action by message id."""
    serializer = ExecuteActionSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    result, status_code = execute_action(
        serializer.validated_data['message_id'],
        serializer.validated_data['confirmed'],
        user_id=request.user.username,
        session_id=_session_id(request),
    )
    return Response(result, status=status_code)


# =============================================================================
# AUDIT LOGS
# =============================================================================

class AuditLogPagination(PageLimitPagination):
    page_size = 20
    results_key = 'logs'


class AuditLogListView(generics.ListAPIView):
    """
    Assistant action history, newest first.

    Query params: user_id, action, entity_type, status, start_date, end_date,
    page, limit.
    """
    queryset = IntelligenceAuditLog.objects.all()
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminSession]
    pagination_class = AuditLogPagination
    filterset_class = AuditLogFilter


# =============================================================================
# CONTEXT & LIMITER
# =============================================================================

@api_view(['POST'])
@permission_classes([IsAdminSession])
def clear_context(request):
    conversations.clear(_session_id(request))
    return Response({'success': True, 'message': 'Contexto de conversa limpo com sucesso!'})


@api_view(['GET'])
@permission_classes([IsAdminSession])
def context_info(request):
    return Response(conversations.info(_session_id(request)))


@api_view(['GET'])
@permission_classes([IsAdminSession])
def rate_limit_stats(request):
    return Response(rate_limiter.get_stats())
