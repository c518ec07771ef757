"""Rate limiting configuration using SlowAPI."""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from autoblog.core.security import extract_bearer_token, hash_token


def api_key_or_address(request: Request) -> str:
    """Bucket public API calls per API key, anonymous calls per client IP."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token:
        return f"key:{hash_token(token)[:16]}"
    return get_remote_address(request)


limiter = Limiter(key_func=api_key_or_address)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Custom handler for rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded"},
        headers={"X-RateLimit-Remaining": "0"},
    )
