"""
Timeouts for Caddy subprocesses and admin API requests.

Every subprocess call and HTTP request goes through one of these values
instead of a hard-coded number or no timeout at all.
"""

# Timeout constants (in seconds)

TIMEOUT_PING = 2
"""Liveness checks: is the admin API answering at all."""

TIMEOUT_QUICK = 5
"""Quick operations: version checks, single admin API requests."""

TIMEOUT_STANDARD = 30
"""Standard operations: waiting for Caddy to serve its initial configuration."""

TIMEOUTS: dict[str, float] = {
    "caddy_version": TIMEOUT_QUICK,
    "caddy_ready": TIMEOUT_STANDARD,
    "caddy_terminate": TIMEOUT_QUICK,
    "admin_ping": TIMEOUT_PING,
    "admin_request": TIMEOUT_QUICK,
}


def get_timeout(operation: str, default: float = TIMEOUT_STANDARD) -> float:
    """
    Get the timeout for a named operation.

    Examples:
        >>> get_timeout("caddy_version")
        5
        >>> get_timeout("admin_ping")
        2
        >>> get_timeout("unknown_operation")
        30
    """
    return TIMEOUTS.get(operation, default)
