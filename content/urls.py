"""
URL configuration for content app.

Public Endpoints:
- banners/                                - Active banners (GET)
- about/                                  - About sections (GET)
- settings/                               - Settings as {key: value} (GET)
- settings/{key}/                         - Single setting (GET)
- contact-messages/                       - Contact form (POST)

Admin Endpoints (admin session required):
- admin/banners/[{id}/]                   - Banner CRUD
- admin/about/                            - About sections list / upsert (GET, POST)
- admin/settings/                         - Single or bulk upsert (POST)
- admin/settings/{key}/                   - Upsert by key (PUT)
- admin/contact-messages/[{id}/]          - Inbox list / detail / delete
- admin/contact-messages/{id}/read/       - Mark read (PATCH)

This URLs file gets included by the main project URLs at /api/.
"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter

from . import views


router = SimpleRouter()
router.register(r'admin/banners', views.AdminBannerViewSet, basename='admin-banner')
router.register(r'admin/about', views.AdminAboutViewSet, basename='admin-about')
router.register(r'admin/contact-messages', views.AdminContactMessageViewSet, basename='admin-contact-message')


urlpatterns = [
    path('banners/', views.banner_list, name='banner-list'),
    path('about/', views.about_list, name='about-list'),
    path('settings/', views.settings_map, name='settings-map'),
    path('settings/<str:key>/', views.setting_detail, name='setting-detail'),
    path('contact-messages/', views.contact_message_create, name='contact-message-create'),
    path('admin/settings/', views.admin_settings_upsert, name='admin-settings-upsert'),
    path('admin/settings/<str:key>/', views.admin_setting_update, name='admin-setting-update'),
    path('', include(router.urls)),
]
