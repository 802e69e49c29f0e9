import hmac

from fastapi import Request

from guardian.app.core.config import settings
from guardian.app.exceptions import AuthenticationError


def get_admin_token() -> str:
    """Get the admin token, with accidental whitespace/newlines removed."""
    return (settings.admin_token or "").strip()


def get_bearer_token(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        The token string if present, None otherwise
    """
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.replace("Bearer ", "", 1).strip()


def require_admin(request: Request) -> str:
    """Validate admin token for gateway management endpoints.

    Raises:
        AuthenticationError: If the token is missing, wrong, or no admin
            token is configured
    """
    expected_token = get_admin_token()
    if not expected_token:
        raise AuthenticationError("Admin token not configured")

    # Always compare, even against "", so timing does not reveal a missing header
    token = get_bearer_token(request) or ""
    if not hmac.compare_digest(token, expected_token):
        raise AuthenticationError()

    return "admin"
