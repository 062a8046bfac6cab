"""
URL configuration for the POS terminal process.

The terminal's real traffic is the order-sync websocket (see orders.routing);
HTTP only exposes a liveness probe for the desktop shell.
"""

from django.http import JsonResponse
from django.urls import path


def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    return JsonResponse({"status": "ok", "message": "Terminal is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
]
