"""Utility functions for tunnelctl."""

import os
import uuid
from typing import Any


def parse_tunnel_id(value: str) -> uuid.UUID | None:
    """Parse a tunnel reference as a UUID.

    Args:
        value: Tunnel ID or name

    Returns:
        The UUID if ``value`` is one, None otherwise
    """
    try:
        return uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None


def expand_path(path: str) -> str:
    """Expand ``~`` and normalize a filesystem path."""
    return os.path.normpath(os.path.expanduser(path))


def mask_sensitive_data(
    value: str | None, mask_char: str = "*", show_chars: int = 4
) -> str:
    """Mask sensitive data for logging while preserving some characters for debugging.

    Args:
        value: Sensitive string to mask (e.g., tunnel secret, account tag)
        mask_char: Character to use for masking
        show_chars: Number of characters to show at the end

    Returns:
        Masked string safe for logging
    """
    if not value:
        return "<None>"

    if len(value) <= show_chars:
        return mask_char * len(value)

    masked_length = len(value) - show_chars
    return mask_char * masked_length + value[-show_chars:]


def sanitize_log_data(data: dict[str, Any]) -> dict[str, Any]:
    """Sanitize dictionary data for safe logging by masking sensitive fields.

    Args:
        data: Dictionary potentially containing sensitive data

    Returns:
        Sanitized dictionary safe for logging
    """
    sensitive_fields = {
        "secret",
        "token",
        "password",
        "accounttag",
        "account_tag",
    }

    sanitized = {}
    for key, value in data.items():
        if any(sensitive_field in key.lower() for sensitive_field in sensitive_fields):
            sanitized[key] = mask_sensitive_data(str(value) if value else None)
        else:
            sanitized[key] = value

    return sanitized
