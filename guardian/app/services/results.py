"""Dispatch outcomes returned to feature callers.

Callers match on the variant instead of sniffing strings:

    match await dispatcher.generate(prompt):
        case Success(text=text): ...
        case QuotaExceeded(message=msg): ...
        case Fallback(payload=payload): ...
"""

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Union


FALLBACK_PAYLOAD: dict[str, Any] = {
    "fix": "Check logs manually",
    "suggestions": [
        "Review WordPress debug.log file",
        "Check PHP error logs",
        "Verify plugin compatibility",
        "Clear cache and try again",
        "Contact support if issue persists",
    ],
    "note": "AI service temporarily unavailable. Using fallback recommendations.",
}

QUOTA_EXCEEDED_MESSAGE = (
    "Upgrade for more AI - Free tier limit reached for today. "
    "Get unlimited AI calls with Premium."
)


@dataclass(frozen=True)
class Success:
    """Text produced by the upstream model (fresh or from the cache)."""

    text: str
    cached: bool = False

    kind = "success"


@dataclass(frozen=True)
class Fallback:
    """Static troubleshooting advice used when the AI service is unavailable."""

    payload: dict[str, Any] = field(default_factory=lambda: deepcopy(FALLBACK_PAYLOAD))

    kind = "fallback"


@dataclass(frozen=True)
class QuotaExceeded:
    """The free tier's daily call budget is used up."""

    message: str = QUOTA_EXCEEDED_MESSAGE

    kind = "quota_exceeded"


DispatchResult = Union[Success, Fallback, QuotaExceeded]


@dataclass(frozen=True)
class UsageStats:
    """Read-only snapshot of the shared daily quota."""

    calls_today: int
    last_reset_date: date | None
    is_premium: bool
    next_reset_date: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "calls_today": self.calls_today,
            "last_reset_date": self.last_reset_date.isoformat() if self.last_reset_date else None,
            "is_premium": self.is_premium,
            "next_reset_date": self.next_reset_date.isoformat(),
        }


@dataclass(frozen=True)
class ConnectionStatus:
    """Outcome of a provider connectivity probe."""

    success: bool
    provider: str
    message: str
    model: str | None = None
    response_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "provider": self.provider,
            "message": self.message,
            "model": self.model,
            "response_time_ms": self.response_time_ms,
        }
