"""Middleware package for the gateway."""

from guardian.app.middleware.auth import require_admin
from guardian.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "require_admin",
    "RequestIdMiddleware",
    "get_request_id",
]
