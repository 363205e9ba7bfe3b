import re
from typing import Any, Dict, Optional
from fastapi import Request

MASK = "***MASKED***"

# Substrings of keys whose values are never logged
SENSITIVE_KEY_TERMS = (
    "password",
    "secret",
    "passphrase",
    "encryption_key",
    "private_key",
    "hash",
    "token",
    "jwt",
    "authorization",
    "bearer",
    "api_key",
    "apikey",
    "x-api-key",
    "api-key",
)

SENSITIVE_HEADERS = (
    "authorization",
    "x-api-key",
    "api-key",
    "x-auth-token",
    "cookie",
    "set-cookie",
)


def mask_email(value: str, mask_string: str = MASK) -> str:
    """Keep the first 3 characters of the local part and the domain."""
    local, sep, domain = value.partition("@")
    if not sep or len(local) <= 3:
        return mask_string
    return f"{local[:3]}***@{domain}"


def mask_sensitive_data(data: Any, mask_string: str = MASK) -> Any:
    """
    Recursively mask sensitive data in dictionaries, lists, and strings.

    Args:
        data: Data structure to mask (dict, list, str, or other)
        mask_string: String to use for masking

    Returns:
        Masked data structure
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()

            # request_id stays readable for traceability
            if key_lower in ("requestid", "request_id"):
                masked[key] = value
            elif any(term in key_lower for term in SENSITIVE_KEY_TERMS):
                masked[key] = mask_string
            elif key_lower == "email" and isinstance(value, str):
                masked[key] = mask_email(value, mask_string)
            else:
                masked[key] = mask_sensitive_data(value, mask_string)

        return masked

    if isinstance(data, (list, tuple)):
        return [mask_sensitive_data(item, mask_string) for item in data]

    if isinstance(data, str):
        # JWTs
        if data.startswith("eyJ") and len(data) > 50:
            return mask_string
        # X-API-KEY header values ("key:encrypted")
        if re.match(r"^[A-Za-z0-9_-]{16,}:[A-Za-z0-9+/=]{16,}$", data):
            return mask_string
        # Long opaque strings without hyphens; UUIDs are left alone
        if len(data) > 32 and re.match(r"^[A-Za-z0-9_]+$", data):
            return mask_string

        return data

    return data


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """
    Mask sensitive HTTP headers.

    Args:
        headers: Dictionary of HTTP headers

    Returns:
        Dictionary with sensitive headers masked
    """
    masked = {}
    for key, value in headers.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_HEADERS):
            masked[key] = MASK
        else:
            masked[key] = value

    return masked


def get_request_id(request: Optional[Request]) -> Optional[str]:
    """
    Extract request ID from request state.

    Args:
        request: FastAPI Request object (can be None)

    Returns:
        Request ID (UUID string) or None if not available
    """
    if request is not None and hasattr(request.state, "request_id"):
        return request.state.request_id
    return None


def sanitize_log_message(message: str, **kwargs: Any) -> str:
    """
    Build a log line of ``message | key: value | ...`` with sensitive values masked.

    A ``RequestID`` (or ``request_id``) keyword is appended last so that
    RequestIDFormatter can lift it into the ``[request id]`` column.
    """
    request_id = kwargs.pop("RequestID", None) or kwargs.pop("request_id", None)

    context_parts = []
    for key, value in mask_sensitive_data(kwargs).items():
        if isinstance(value, (dict, list)):
            context_parts.append(f"{key}: {str(value)[:200]}")
        else:
            context_parts.append(f"{key}: {value}")

    formatted_message = message
    if context_parts:
        formatted_message = f"{message} | {' | '.join(context_parts)}"

    if request_id:
        formatted_message = f"{formatted_message} | RequestID: {request_id}"

    return formatted_message
