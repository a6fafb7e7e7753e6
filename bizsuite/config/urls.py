"""
URL configuration for the bizsuite project.

Every app exposes its endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "BizSuite Admin Panel"
admin.site.site_title = "BizSuite Admin Portal"
admin.site.index_title = "Business Management"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('bizsuite.core.urls')),
    path('api/v1/', include('bizsuite.catalog.urls')),
    path('api/v1/', include('bizsuite.contacts.urls')),
    path('api/v1/', include('bizsuite.finances.urls')),
    path('api/v1/', include('bizsuite.storefront.urls')),
    path('api/v1/', include('bizsuite.chatbot.urls')),
    path('api/v1/', include('bizsuite.reports.urls')),
]
