"""
Logging utility functions and helpers.
"""

import logging
from typing import Any, Dict, Optional


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Usage:
        from utils.logger import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


SENSITIVE_FIELDS = {
    'otp', 'signature', 'secret', 'token', 'password', 'authorization'
}


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove sensitive information from log data.

    Delivery OTPs, gateway signatures and secrets are fully redacted.
    Tokens keep their first 8 characters so requests can still be told apart.

    Args:
        data: Dictionary that may contain sensitive fields

    Returns:
        Sanitized copy safe for logging
    """
    sanitized = data.copy()

    for key, value in sanitized.items():
        lowered = key.lower()
        if any(sensitive in lowered for sensitive in SENSITIVE_FIELDS):
            if isinstance(value, str) and 'token' in lowered and len(value) > 8:
                sanitized[key] = f"{value[:8]}..."
            elif value is not None:
                sanitized[key] = "***REDACTED***"

        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)

    return sanitized


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None
):
    """
    Log an HTTP request in a structured format.

    The level follows the status code: ERROR for 5xx, WARNING for 4xx,
    INFO otherwise.

    Usage:
        log_request(logger, "PUT", "/orders/cancel/FC1", 409, 12.4)
    """
    log_data = {
        "http_method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }

    if client_ip:
        log_data["client_ip"] = client_ip

    if extra:
        log_data.update(sanitize_log_data(extra))

    message = f"{method} {path} - {status_code}"
    if status_code >= 500:
        logger.error(message, extra=log_data)
    elif status_code >= 400:
        logger.warning(message, extra=log_data)
    else:
        logger.info(message, extra=log_data)
