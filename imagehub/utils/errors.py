"""
ImageHub - Error taxonomy
Typed exception raised throughout the pipeline and the message classifier used
by the dispatcher before a failure is handed back to the caller.
"""

from __future__ import annotations
from typing import Any, Optional


class ErrorCode:
    """Machine-readable failure codes"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    PROVIDER_HTTP_ERROR = "PROVIDER_HTTP_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    CONTENT_FILTERED = "CONTENT_FILTERED"
    QUOTA_EXHAUSTED = "QUOTA_EXHAUSTED"
    AUTH_INVALID = "AUTH_INVALID"
    RATE_LIMITED = "RATE_LIMITED"
    BALANCE_EXHAUSTED = "BALANCE_EXHAUSTED"
    BALANCE_EXHAUSTED_ROTATED = "BALANCE_EXHAUSTED_ROTATED"
    UNRECOGNIZED_RESPONSE = "UNRECOGNIZED_RESPONSE"
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"
    TASK_PENDING = "TASK_PENDING"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    NOT_CONFIGURED = "NOT_CONFIGURED"

    @classmethod
    def is_pre_network(cls, code: Optional[str]) -> bool:
        """Errors detected before any request leaves the process"""
        return code in (cls.VALIDATION_ERROR, cls.PRECONDITION_FAILED, cls.NOT_CONFIGURED)


class ImageHubError(Exception):
    """Error raised by resolvers, transports and normalizers"""
    def __init__(
        self,
        message: str,
        code: str = None,
        status_code: int = None,
        details: dict[str, Any] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ===== User-facing messages =====
QUOTA_MESSAGE = "API配额不足，请检查您的账户余额"
AUTH_MESSAGE = "API密钥无效，请检查您的密钥设置"
RATE_LIMIT_MESSAGE = "请求过于频繁，请稍后再试"

# Vendor phrases, checked in order (lowercase)
_MESSAGE_RULES = (
    (("insufficient_quota", "quota"), ErrorCode.QUOTA_EXHAUSTED, QUOTA_MESSAGE),
    (("invalid_api_key", "unauthorized"), ErrorCode.AUTH_INVALID, AUTH_MESSAGE),
    (("rate_limit", "too_many_requests"), ErrorCode.RATE_LIMITED, RATE_LIMIT_MESSAGE),
)

# Managed-subscription balance exhaustion phrases (lowercase)
BALANCE_PHRASES = ("exhausted balance", "user is locked")


def classify_error(message: str, code: str = None) -> tuple[str, Optional[str]]:
    """
    Rewrite a raw provider/transport message into a user-facing one.

    Args:
        message: Raw error message
        code: Code already attached to the error, kept when no rule matches

    Returns:
        tuple: (message, code). Unrecognized messages come back unchanged.
    """
    lowered = (message or "").lower()
    for phrases, rule_code, rule_message in _MESSAGE_RULES:
        if any(phrase in lowered for phrase in phrases):
            return rule_message, rule_code
    return message, code


def is_balance_exhausted(message: str) -> bool:
    lowered = (message or "").lower()
    return any(phrase in lowered for phrase in BALANCE_PHRASES)


def error_for_status(status_code: int, message: str = None, provider_code: str = None) -> ImageHubError:
    """
    Build the error for a non-2xx HTTP status.

    401/403 -> AUTH_INVALID, 402 -> QUOTA_EXHAUSTED, 429 -> RATE_LIMITED,
    anything else -> PROVIDER_HTTP_ERROR carrying the provider's message.
    """
    if status_code in (401, 403):
        return ImageHubError(AUTH_MESSAGE, code=ErrorCode.AUTH_INVALID, status_code=status_code)
    if status_code == 402:
        return ImageHubError(QUOTA_MESSAGE, code=ErrorCode.QUOTA_EXHAUSTED, status_code=status_code)
    if status_code == 429:
        return ImageHubError(RATE_LIMIT_MESSAGE, code=ErrorCode.RATE_LIMITED, status_code=status_code)
    return ImageHubError(
        message=message or f"API 错误: {status_code}",
        code=ErrorCode.PROVIDER_HTTP_ERROR,
        status_code=status_code,
        details={"provider_code": provider_code} if provider_code else None
    )
