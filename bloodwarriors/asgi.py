"""
ASGI entrypoint: Django for HTTP, Channels for the donor notification
socket at ``ws/notifications/``.

The Django app must be built (which loads settings and the app registry)
before the websocket routes are imported, since the consumers use models.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bloodwarriors.settings")
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402

from core.realtime.routing import websocket_urlpatterns  # noqa: E402

# sockets authenticate themselves with ?token=<access token>; see NotificationsConsumer
application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": URLRouter(websocket_urlpatterns),
})
