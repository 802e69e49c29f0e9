"""Services package for the gateway.

This package provides:
- Prompt-keyed response caching
- Shared free-tier daily quota
- The dispatcher every diagnostic feature calls
"""

from guardian.app.services.dispatcher import Dispatcher, get_dispatcher, reset_dispatcher
from guardian.app.services.quota import QuotaTracker
from guardian.app.services.request_cache import RequestCache
from guardian.app.services.results import (
    FALLBACK_PAYLOAD,
    QUOTA_EXCEEDED_MESSAGE,
    ConnectionStatus,
    DispatchResult,
    Fallback,
    QuotaExceeded,
    Success,
    UsageStats,
)

__all__ = [
    "Dispatcher",
    "get_dispatcher",
    "reset_dispatcher",
    "QuotaTracker",
    "RequestCache",
    "FALLBACK_PAYLOAD",
    "QUOTA_EXCEEDED_MESSAGE",
    "ConnectionStatus",
    "DispatchResult",
    "Fallback",
    "QuotaExceeded",
    "Success",
    "UsageStats",
]
