from .admin import routes as admin_routes
from .donations import routes as donation_routes
from .health import routes as health_routes
from .notifications import routes as notification_routes
from .requests import routes as request_routes
from .users import routes as user_routes

__all__ = [
    "admin_routes",
    "donation_routes",
    "health_routes",
    "notification_routes",
    "request_routes",
    "user_routes",
]
