import hashlib
import hmac
import secrets

API_KEY_PREFIX = "ab_live_"


def generate_api_key() -> str:
    """Generate a new public API key (shown to the user once)."""
    return f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"


def hash_token(token: str) -> str:
    """Hash a token for storage using SHA-256."""
    return hashlib.sha256(token.encode()).hexdigest()


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token part of an `Authorization: Bearer <token>` header."""
    if not authorization:
        return ""
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def verify_shared_secret(provided: str, expected: str) -> bool:
    """Constant-time comparison of a presented secret against the configured one."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


def sign_payload(secret: str, body: bytes) -> str:
    """HMAC-SHA256 signature for outbound webhook bodies, `sha256=<hex>`."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"
