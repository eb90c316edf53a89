"""
Intelligence URLs - mounted under /api/admin/intelligence/
"""

from django.urls import path

from . import views

urlpatterns = [
    path('chat/', views.chat, name='intelligence-chat'),
    path('execute/', views.execute, name='intelligence-execute'),
    path('audit-logs/', views.AuditLogListView.as_view(), name='intelligence-audit-logs'),
    path('clear-context/', views.clear_context, name='intelligence-clear-context'),
    path('context-info/', views.context_info, name='intelligence-context-info'),
    path('rate-limit-stats/', views.rate_limit_stats, name='intelligence-rate-limit-stats'),
]
