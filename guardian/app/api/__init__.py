"""API endpoints package for the gateway."""

from guardian.app.api.ai import router as ai_router

__all__ = [
    "ai_router",
]
