import os

from django.core.asgi import get_asgi_application
from channels.routing import ProtocolTypeRouter, URLRouter

# Set default settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'securenest_config.settings')

# Initialize Django application
django_application = get_asgi_application()

# Import routing AFTER Django is set up
from apps.api_app import routing  # noqa: E402

# No auth middleware on the relay: identity is delegated and filtering happens on subscribers.
# Mobile clients send no Origin header, so no origin validator either.
application = ProtocolTypeRouter({
    "http": django_application,
    "websocket": URLRouter(
        routing.websocket_urlpatterns
    ),
})
