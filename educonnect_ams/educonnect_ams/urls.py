from django.contrib import admin
from django.urls import path, include


urlpatterns = [
    # DJANGO ADMIN (STAFF / OPERATORS)
    path("ams/django/admin/", admin.site.urls),

    # NOTIFICATION CENTER (JSON, READ BY DASHBOARDS)
    path("notifications/", include("notifications.urls")),
]
