# apps/api/urls_v1.py

from django.urls import path, include

urlpatterns = [
    path("", include("apps.campaigns.urls")),
]
