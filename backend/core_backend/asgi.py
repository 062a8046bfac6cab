"""
ASGI entry point for the terminal process.

HTTP carries only the health check; the order-sync websocket is routed to
``orders.routing``.
"""
import os
import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core_backend.settings")

# Apps must be loaded before the routing imports the consumers
django.setup()

from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

from orders.routing import websocket_urlpatterns

# Terminal sessions are authenticated upstream of this process
application = ProtocolTypeRouter(
    {
        "http": get_asgi_application(),
        "websocket": URLRouter(websocket_urlpatterns),
    }
)
