"""Gateway endpoints under ``/wpaig/v1``."""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from guardian.app.core.logging import get_logger
from guardian.app.middleware.auth import require_admin
from guardian.app.providers.classifier import classify
from guardian.app.providers.factory import resolve_tag
from guardian.app.services.dispatcher import Dispatcher, get_dispatcher
from guardian.app.services.results import Fallback, QuotaExceeded, Success

logger = get_logger(__name__)

router = APIRouter(prefix="/wpaig/v1", tags=["ai"], dependencies=[Depends(require_admin)])


class GenerateRequest(BaseModel):
    """Request body for ai-generate."""
    prompt: str = ""
    max_calls: Optional[int] = Field(default=None, ge=0)


def dispatcher_dependency() -> Dispatcher:
    return get_dispatcher()


@router.post("/ai-generate")
async def ai_generate(
    body: GenerateRequest,
    dispatcher: Dispatcher = Depends(dispatcher_dependency),
) -> dict[str, Any]:
    """Run a prompt through the gateway.

    ``kind`` tells clients which outcome they got, so they never need to
    inspect the response text.
    """
    result = await dispatcher.generate(body.prompt, body.max_calls)

    response: Any
    cached = False
    if isinstance(result, Success):
        response = result.text
        cached = result.cached
    elif isinstance(result, QuotaExceeded):
        response = result.message
    elif isinstance(result, Fallback):
        response = result.payload
    else:  # pragma: no cover
        raise TypeError(f"Unexpected dispatch result: {result!r}")

    remaining = await dispatcher.calls_remaining(body.max_calls)
    return {
        "success": True,
        "kind": result.kind,
        "response": response,
        "cached": cached,
        "calls_remaining": "unlimited" if remaining is None else remaining,
        "is_premium": await dispatcher.is_premium(),
    }


@router.get("/ai-usage")
async def ai_usage(dispatcher: Dispatcher = Depends(dispatcher_dependency)) -> dict[str, Any]:
    """Snapshot of the shared daily quota."""
    stats = await dispatcher.usage_stats()
    return stats.to_dict()


@router.post("/ai-test-connection")
async def ai_test_connection(
    dispatcher: Dispatcher = Depends(dispatcher_dependency),
) -> dict[str, Any]:
    status = await dispatcher.test_connection()
    return status.to_dict()


@router.post("/ai-reset")
async def ai_reset(dispatcher: Dispatcher = Depends(dispatcher_dependency)) -> dict[str, Any]:
    """Daily reset hook for external schedulers."""
    await dispatcher.quota.reset()
    logger.info("Daily AI counter reset via API")
    stats = await dispatcher.usage_stats()
    return {"success": True, **stats.to_dict()}


class ApiKeyRequest(BaseModel):
    """Request body for updating the stored API key."""
    model_config = ConfigDict(str_strip_whitespace=True)

    api_key: str = Field(min_length=1)


@router.get("/ai-settings")
async def ai_settings(dispatcher: Dispatcher = Depends(dispatcher_dependency)) -> dict[str, Any]:
    """Credential status; the key itself is never returned in full."""
    credential = await dispatcher.get_credential()
    return {
        "configured": bool(credential),
        "provider": resolve_tag(classify(credential), dispatcher.config).value if credential else None,
        "key_preview": f"{credential[:8]}..." if credential else None,
        "key_length": len(credential),
        "is_premium": await dispatcher.is_premium(),
    }


@router.post("/ai-settings")
async def update_ai_settings(
    body: ApiKeyRequest,
    dispatcher: Dispatcher = Depends(dispatcher_dependency),
) -> dict[str, Any]:
    tag = await dispatcher.set_credential(body.api_key)
    return {"success": True, "configured": True, "provider": tag.value}


@router.delete("/ai-settings")
async def clear_ai_settings(dispatcher: Dispatcher = Depends(dispatcher_dependency)) -> dict[str, Any]:
    """Drop the stored key; a key from the environment, if any, stays in effect."""
    await dispatcher.clear_credential()
    return {"success": True, "configured": bool(await dispatcher.get_credential())}
