import re
from typing import Any, Dict, Optional
from fastapi import Request
from app.config import settings

MASK = "***MASKED***"

# Issued keys ("fk_live_...") and provider keys ("sk-...", "sk-ant-...", "msy_...")
KEY_PATTERN = re.compile(r"\b(?:fk_[a-z]+_|sk-(?:ant-|or-)?|msy_)[A-Za-z0-9_-]{8,}")
OPAQUE_SECRET_PATTERN = re.compile(r"^[A-Za-z0-9_]{33,}$")

TRACE_KEYS = {"requestid", "request_id"}
SECRET_KEY_TERMS = (
    "api_key", "apikey", "api-key", "key_hash", "encrypted",
    "token", "jwt", "authorization", "bearer",
    "password", "secret", "private_key",
)
SENSITIVE_HEADERS = ("authorization", "x-api-key", "api-key", "x-auth-token", "cookie")


def _mask_email(value: str, mask_string: str) -> str:
    local, _, domain = value.partition("@")
    if not domain or len(local) <= 3:
        return mask_string
    return f"{local[:3]}***@{domain}"


def _mask_string(value: str, mask_string: str) -> str:
    # JWTs
    if value.startswith("eyJ") and len(value) > 50:
        return mask_string
    if KEY_PATTERN.search(value):
        return KEY_PATTERN.sub(mask_string, value)
    # Long opaque tokens; UUIDs contain hyphens and stay readable
    if OPAQUE_SECRET_PATTERN.match(value):
        return mask_string
    return value


def mask_sensitive_data(data: Any, mask_string: str = MASK) -> Any:
    """
    Recursively mask secrets in dicts, lists and strings.

    Dict values are masked by key name (keys, hashes, ciphertexts, tokens,
    passwords); emails keep their first three characters and domain; free
    text has embedded issued or provider keys replaced. Request IDs are
    never masked.
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if key_lower in TRACE_KEYS:
                masked[key] = value
            elif any(term in key_lower for term in SECRET_KEY_TERMS):
                masked[key] = mask_string
            elif key_lower == "email" and isinstance(value, str):
                masked[key] = _mask_email(value, mask_string)
            else:
                masked[key] = mask_sensitive_data(value, mask_string)
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item, mask_string) for item in data]

    if isinstance(data, str):
        return _mask_string(data, mask_string)

    return data


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Mask credential-bearing HTTP headers."""
    return {
        key: MASK if any(name in key.lower() for name in SENSITIVE_HEADERS) else value
        for key, value in headers.items()
    }


def get_request_id(request: Optional[Request]) -> Optional[str]:
    """Request ID assigned by LoggingMiddleware, or None outside a request."""
    if request and hasattr(request.state, "request_id"):
        return request.state.request_id
    return None


def sanitize_log_message(message: str, **kwargs: Any) -> str:
    """
    Build a log line "message | Key: value | ... | RequestID: <id>".

    Context values are masked unless LOG_MASK_SENSITIVE is off. The request
    ID goes last so RequestIDFormatter can move it into its own column.

    Args:
        message: Base log message
        **kwargs: Context; RequestID (or request_id) is treated specially

    Returns:
        Sanitized log message
    """
    request_id = kwargs.pop('RequestID', None) or kwargs.pop('request_id', None)

    context = mask_sensitive_data(kwargs) if settings.LOG_MASK_SENSITIVE else kwargs

    parts = [message]
    for key, value in context.items():
        if isinstance(value, (dict, list)):
            value = str(value)[:200]
        parts.append(f"{key}: {value}")

    if request_id:
        parts.append(f"RequestID: {request_id}")

    return " | ".join(parts)
